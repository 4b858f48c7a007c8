"""
Shared fixtures.

No real network: the remote document store is an in-memory fake that
records every call, and time is driven by a manual clock.
"""

from typing import Optional

import pytest

from thcontrol.audit import AuditLogger
from thcontrol.config import Settings, SyncSettings
from thcontrol.models import AppSnapshot, User, UserRole
from thcontrol.orchestrator import create_app_context
from thcontrol.services.storage import (
    DocumentStoreInterface,
    InMemoryKeyValueStore,
    NotFoundError,
)
from thcontrol.state import LocalStateStore
from thcontrol.sync import MinIntervalGate, Synchronizer


class FakeDocumentStore(DocumentStoreInterface):
    """In-memory document store that records calls."""

    def __init__(self):
        self.documents: dict[str, dict] = {}
        self.create_calls: list[AppSnapshot] = []
        self.fetch_calls: list[str] = []
        self.replace_calls: list[tuple[str, AppSnapshot]] = []
        self.create_error: Optional[Exception] = None
        self.fetch_error: Optional[Exception] = None
        self.replace_error: Optional[Exception] = None
        self._next = 0

    async def create(self, snapshot: AppSnapshot) -> str:
        self.create_calls.append(snapshot)
        if self.create_error:
            raise self.create_error
        self._next += 1
        document_id = f"doc-{self._next}"
        self.documents[document_id] = snapshot.to_document()
        return document_id

    async def fetch(self, document_id: str) -> AppSnapshot:
        self.fetch_calls.append(document_id)
        if self.fetch_error:
            raise self.fetch_error
        if document_id not in self.documents:
            raise NotFoundError(document_id)
        return AppSnapshot.from_document(self.documents[document_id])

    async def replace(self, document_id: str, snapshot: AppSnapshot) -> None:
        self.replace_calls.append((document_id, snapshot))
        if self.replace_error:
            raise self.replace_error
        self.documents[document_id] = snapshot.to_document()


class ManualClock:
    """Monotonic clock the test advances by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeAddressLookup:
    def __init__(self, address: Optional[str] = "203.0.113.7"):
        self.address = address
        self.calls = 0

    async def lookup(self) -> Optional[str]:
        self.calls += 1
        return self.address


@pytest.fixture
def remote():
    return FakeDocumentStore()


@pytest.fixture
def key_store():
    return InMemoryKeyValueStore()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def sync_settings(tmp_path):
    return SyncSettings(data_dir=tmp_path)


@pytest.fixture
def store(key_store, sync_settings):
    return LocalStateStore(cache=key_store, state_key=sync_settings.state_key)


@pytest.fixture
def gate(clock):
    return MinIntervalGate(2.0, clock=clock)


@pytest.fixture
def synchronizer(store, remote, key_store, sync_settings, gate):
    return Synchronizer(
        store=store,
        remote=remote,
        key_store=key_store,
        settings=sync_settings,
        audit_logger=AuditLogger(),
        gate=gate,
    )


@pytest.fixture
def admin():
    return User(role=UserRole.ADMIN, username="Admin", condo_key="Admin1")


@pytest.fixture
def resident():
    return User(
        role=UserRole.RESIDENT,
        username="Vecino",
        condo_key="VecinoTH",
        house_id="TH01A",
    )


@pytest.fixture
def address_lookup():
    return FakeAddressLookup()


@pytest.fixture
def context(remote, key_store, gate, address_lookup):
    return create_app_context(
        settings=Settings(),
        remote=remote,
        key_store=key_store,
        address_lookup=address_lookup,
        gate=gate,
    )
