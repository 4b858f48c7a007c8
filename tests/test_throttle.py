"""
Tests for the min-interval push gate.
"""

import pytest

from thcontrol.sync import MinIntervalGate


class TestMinIntervalGate:
    def test_first_attempt_passes(self, clock):
        gate = MinIntervalGate(2.0, clock=clock)

        assert gate.try_acquire() is True
        assert gate.last_attempt == clock.now

    def test_attempt_inside_window_rejected(self, clock):
        gate = MinIntervalGate(2.0, clock=clock)
        gate.try_acquire()

        clock.advance(1.999)

        assert gate.try_acquire() is False

    def test_rejected_attempt_does_not_move_window(self, clock):
        gate = MinIntervalGate(2.0, clock=clock)
        gate.try_acquire()
        clock.advance(1.5)
        gate.try_acquire()

        clock.advance(0.5)

        assert gate.try_acquire() is True

    def test_zero_interval_always_passes(self, clock):
        gate = MinIntervalGate(0, clock=clock)

        assert gate.try_acquire() is True
        assert gate.try_acquire() is True

    def test_reset(self, clock):
        gate = MinIntervalGate(2.0, clock=clock)
        gate.try_acquire()

        gate.reset()

        assert gate.last_attempt is None
        assert gate.try_acquire() is True

    def test_negative_interval_rejected(self):
        with pytest.raises(ValueError):
            MinIntervalGate(-1)
