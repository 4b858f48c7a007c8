"""Services package."""

from thcontrol.services.network import (
    AddressLookupError,
    PublicAddressLookup,
)
from thcontrol.services.storage import (
    DocumentStoreInterface,
    InMemoryKeyValueStore,
    JsonBlobDocumentStore,
    JsonFileKeyValueStore,
    KeyValueStoreInterface,
    NotFoundError,
    RemoteUnavailableError,
    StorageError,
)

__all__ = [
    # Network services
    "AddressLookupError",
    "PublicAddressLookup",
    # Storage services
    "DocumentStoreInterface",
    "InMemoryKeyValueStore",
    "JsonBlobDocumentStore",
    "JsonFileKeyValueStore",
    "KeyValueStoreInterface",
    "NotFoundError",
    "RemoteUnavailableError",
    "StorageError",
]
