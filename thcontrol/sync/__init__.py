"""Remote synchronization: pull, throttled push and sync status."""

from thcontrol.sync.synchronizer import Synchronizer, seed_snapshot
from thcontrol.sync.throttle import MinIntervalGate

__all__ = ["MinIntervalGate", "Synchronizer", "seed_snapshot"]
