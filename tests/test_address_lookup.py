"""
Tests for the best-effort public address lookup.
"""

import httpx
import pytest

from thcontrol.config import AddressLookupSettings
from thcontrol.services.network import PublicAddressLookup


def _lookup(handler, **overrides) -> PublicAddressLookup:
    settings = AddressLookupSettings(
        url="https://ip.test/?format=json",
        timeout_seconds=1,
        attempts=overrides.pop("attempts", 2),
        **overrides,
    )
    return PublicAddressLookup(settings=settings, transport=httpx.MockTransport(handler))


class TestPublicAddressLookup:
    @pytest.mark.asyncio
    async def test_returns_address(self):
        lookup = _lookup(lambda request: httpx.Response(200, json={"ip": " 198.51.100.4 "}))

        assert await lookup.lookup() == "198.51.100.4"

    @pytest.mark.asyncio
    async def test_retries_then_gives_up(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500)

        lookup = _lookup(handler, attempts=2)

        assert await lookup.lookup() is None
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_recovers_on_second_attempt(self):
        responses = [httpx.Response(502), httpx.Response(200, json={"ip": "198.51.100.4"})]

        lookup = _lookup(lambda request: responses.pop(0), attempts=2)

        assert await lookup.lookup() == "198.51.100.4"

    @pytest.mark.asyncio
    async def test_unexpected_body_is_none(self):
        lookup = _lookup(lambda request: httpx.Response(200, json={"address": "x"}), attempts=1)

        assert await lookup.lookup() is None

    @pytest.mark.asyncio
    async def test_disabled_makes_no_request(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"ip": "198.51.100.4"})

        lookup = _lookup(handler, enabled=False)

        assert await lookup.lookup() is None
        assert calls == []
