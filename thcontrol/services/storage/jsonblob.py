"""
JSON Blob Document Store Implementation

DESIGN DECISION: The ledger lives in a single public JSON blob because:
1. No backend to deploy or maintain
2. Any device holding the document id can sync
3. The whole ledger is small enough to transfer on every change

TRADEOFFS:
- The id is the only credential (anyone holding it can overwrite the data)
- No versioning: concurrent writers overwrite each other (last write wins)
- Documents can expire on the provider side; callers handle NotFoundError

Uses raw HTTP via httpx for true async. A fresh AsyncClient is opened per
call so the store is not tied to one event loop.
"""

import json
from typing import Optional

import httpx
import structlog
from pydantic import ValidationError as SchemaError

from thcontrol.config import RemoteStoreSettings, get_settings
from thcontrol.models.audit import redact_document_id
from thcontrol.models.condo import AppSnapshot
from thcontrol.services.storage.interface import (
    DocumentStoreInterface,
    NotFoundError,
    RemoteUnavailableError,
)

logger = structlog.get_logger(__name__)

JSON_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


def document_id_from_location(location: Optional[str]) -> Optional[str]:
    """Extract the document id from a Location header (its last path segment)."""
    if not location:
        return None
    path = location.split("?", 1)[0].rstrip("/")
    document_id = path.rsplit("/", 1)[-1]
    return document_id or None


class JsonBlobDocumentStore(DocumentStoreInterface):
    """
    jsonblob.com-style document store.

    - POST {base_url}        -> 201, Location: {base_url}/{id}
    - GET  {base_url}/{id}   -> 200 document | 404
    - PUT  {base_url}/{id}   -> 200
    """

    def __init__(
        self,
        settings: Optional[RemoteStoreSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._settings = settings or get_settings().remote
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._settings.timeout_seconds,
            headers=JSON_HEADERS,
            transport=self._transport,
        )

    def _document_url(self, document_id: str) -> str:
        return f"{self._settings.base_url}/{document_id}"

    async def create(self, snapshot: AppSnapshot) -> str:
        """Create a document and return the id from the Location header."""
        try:
            async with self._client() as client:
                response = await client.post(
                    self._settings.base_url,
                    json=snapshot.to_document(),
                )
        except httpx.HTTPError as e:
            raise RemoteUnavailableError(f"Failed to create document: {e}") from e

        if not response.is_success:
            logger.error("document_create_rejected", status_code=response.status_code)
            raise RemoteUnavailableError(
                f"Document store rejected creation: HTTP {response.status_code}"
            )

        document_id = document_id_from_location(response.headers.get("Location"))
        if document_id is None:
            raise RemoteUnavailableError("Document store did not return a document id")

        logger.info("document_created", document=redact_document_id(document_id))
        return document_id

    async def fetch(self, document_id: str) -> AppSnapshot:
        """Read and parse a document."""
        try:
            async with self._client() as client:
                response = await client.get(self._document_url(document_id))
        except httpx.HTTPError as e:
            raise RemoteUnavailableError(f"Failed to fetch document: {e}") from e

        if response.is_client_error:
            raise NotFoundError(
                f"Document {redact_document_id(document_id)} not found "
                f"(HTTP {response.status_code})"
            )
        if not response.is_success:
            raise RemoteUnavailableError(
                f"Document store error: HTTP {response.status_code}"
            )

        try:
            return AppSnapshot.from_document(response.json())
        except (json.JSONDecodeError, SchemaError) as e:
            logger.error(
                "document_unreadable",
                document=redact_document_id(document_id),
                error=str(e),
            )
            raise RemoteUnavailableError(f"Document is not a valid snapshot: {e}") from e

    async def replace(self, document_id: str, snapshot: AppSnapshot) -> None:
        """Overwrite a document with the full snapshot."""
        try:
            async with self._client() as client:
                response = await client.put(
                    self._document_url(document_id),
                    json=snapshot.to_document(),
                )
        except httpx.HTTPError as e:
            raise RemoteUnavailableError(f"Failed to save document: {e}") from e

        if not response.is_success:
            raise RemoteUnavailableError(
                f"Document store rejected save: HTTP {response.status_code}"
            )
