"""
Storage Services Package

Provides abstract interfaces and concrete implementations for the remote
document store and for durable local storage.
"""

from thcontrol.services.storage.interface import (
    DocumentStoreInterface,
    KeyValueStoreInterface,
    NotFoundError,
    RemoteUnavailableError,
    StorageError,
)
from thcontrol.services.storage.jsonblob import (
    JsonBlobDocumentStore,
    document_id_from_location,
)
from thcontrol.services.storage.local import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
)

__all__ = [
    # Interfaces
    "DocumentStoreInterface",
    "KeyValueStoreInterface",
    # Exceptions
    "NotFoundError",
    "RemoteUnavailableError",
    "StorageError",
    # Implementations
    "InMemoryKeyValueStore",
    "JsonBlobDocumentStore",
    "JsonFileKeyValueStore",
    "document_id_from_location",
]
