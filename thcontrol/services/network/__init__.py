"""Network lookup services package."""

from thcontrol.services.network.address_lookup import (
    AddressLookupError,
    PublicAddressLookup,
)

__all__ = ["AddressLookupError", "PublicAddressLookup"]
