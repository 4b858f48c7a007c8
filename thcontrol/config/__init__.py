"""Configuration package."""

from thcontrol.config.settings import (
    AddressLookupSettings,
    AppSettings,
    AuthSettings,
    RemoteStoreSettings,
    Settings,
    SyncSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AddressLookupSettings",
    "AppSettings",
    "AuthSettings",
    "RemoteStoreSettings",
    "Settings",
    "SyncSettings",
    "get_settings",
    "validate_all_settings",
]
