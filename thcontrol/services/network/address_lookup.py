"""
Public Network Address Lookup

Suggestions may carry the submitter's public address, obtained from a
third-party "what is my IP" service. The lookup is strictly best effort:
any failure yields None and the suggestion is submitted without it.
"""

from typing import Optional

import httpx
import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from thcontrol.config import AddressLookupSettings, get_settings

logger = structlog.get_logger(__name__)


class AddressLookupError(Exception):
    """The lookup service did not return a usable address."""
    pass


class PublicAddressLookup:
    """Client for an ipify-style endpoint returning {"ip": "..."}."""

    def __init__(
        self,
        settings: Optional[AddressLookupSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._settings = settings or get_settings().address_lookup
        self._transport = transport
        self._fetch_with_retry = retry(
            stop=stop_after_attempt(self._settings.attempts),
            wait=wait_exponential(multiplier=0.2, min=0.2, max=1),
            retry=retry_if_exception_type((httpx.HTTPError, AddressLookupError)),
            reraise=True,
        )(self._fetch)

    async def _fetch(self) -> str:
        async with httpx.AsyncClient(
            timeout=self._settings.timeout_seconds,
            transport=self._transport,
        ) as client:
            response = await client.get(self._settings.url)
            response.raise_for_status()
            data = response.json()

        address = data.get("ip") if isinstance(data, dict) else None
        if not isinstance(address, str) or not address.strip():
            raise AddressLookupError(f"Unexpected lookup response: {data!r}")
        return address.strip()

    async def lookup(self) -> Optional[str]:
        """Return the public address, or None if disabled or unavailable."""
        if not self._settings.enabled:
            return None
        try:
            return await self._fetch_with_retry()
        except (httpx.HTTPError, AddressLookupError, ValueError) as e:
            logger.warning("address_lookup_failed", error=str(e))
            return None
