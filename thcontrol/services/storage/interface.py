"""
Abstract Storage Interfaces

DESIGN DECISION: We define abstract interfaces for both kinds of storage
the application touches:
1. The remote document store - one JSON document per condominium,
   addressed by an opaque id, whole-document replace only
2. Durable local storage - a handful of keys that survive restarts
   (the last known document id and the session mirror)

This allows us to:
1. Swap jsonblob for another document store later
2. Use in-memory storage for testing
3. Keep the synchronizer decoupled from HTTP and the filesystem

The document interface is intentionally tiny: no queries, no pagination,
no partial updates, no version tokens.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from thcontrol.models.condo import AppSnapshot


class DocumentStoreInterface(ABC):
    """
    Abstract interface for the remote JSON document store.

    Whoever holds a document id can read and overwrite the whole
    document, so ids must be treated as secrets.
    """

    @abstractmethod
    async def create(self, snapshot: AppSnapshot) -> str:
        """
        Create a new document holding `snapshot`.

        Returns:
            The id assigned by the store

        Raises:
            RemoteUnavailableError: If the store is unreachable, refuses the
                request or does not return an id
        """
        pass

    @abstractmethod
    async def fetch(self, document_id: str) -> AppSnapshot:
        """
        Read a document.

        Raises:
            NotFoundError: If the id is unknown or expired
            RemoteUnavailableError: If the store is unreachable or the
                document cannot be read
        """
        pass

    @abstractmethod
    async def replace(self, document_id: str, snapshot: AppSnapshot) -> None:
        """
        Overwrite a document unconditionally (last write wins).

        Raises:
            RemoteUnavailableError: On network failure or non-success status
        """
        pass


class KeyValueStoreInterface(ABC):
    """
    Abstract interface for durable local storage.

    Values are JSON-compatible objects. Implementations never raise on
    write failures: local storage is best effort.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the stored value, or None if missing or unreadable."""
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store a value under `key`."""
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete `key`. No-op if absent."""
        pass


class StorageError(Exception):
    """Base exception for remote storage operations."""
    pass


class NotFoundError(StorageError):
    """Document id unknown to the remote store."""
    pass


class RemoteUnavailableError(StorageError):
    """Network failure or non-success status with no further detail."""
    pass
