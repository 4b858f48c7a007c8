"""
Synchronizer

DESIGN DECISION: The remote document is a full copy of the ledger that
is pulled once per session and overwritten after every local change.

PULL (login, manual refresh):
1. Pick the id: manual > in memory > stored on this device
2. No id -> create a document seeded with the house list
3. Known id -> fetch it and replace the local snapshot
4. Stale stored id -> forget it and create a replacement once

PUSH (after every mutation):
1. Needs a document id and a logged-in user
2. At most one attempt per throttle window; skipped attempts are not queued
3. Replaces the whole document (last write wins)

IMPORTANT: Remote errors never escape this class. They become the
`last_error` flag (the "local mode" badge) and a PullOutcome, and they
never roll back local state. There is no retry loop: the next mutation
or a manual refresh tries again.
"""

import asyncio
import time
from contextlib import contextmanager
from typing import Callable, Optional

from thcontrol.audit import AuditLogger
from thcontrol.config import SyncSettings, get_settings
from thcontrol.models.condo import AppSnapshot
from thcontrol.models.houses import initial_houses
from thcontrol.models.session import PullOutcome, SyncIndicator
from thcontrol.services.storage.interface import (
    DocumentStoreInterface,
    KeyValueStoreInterface,
    NotFoundError,
    RemoteUnavailableError,
)
from thcontrol.state.store import LocalStateStore
from thcontrol.sync.throttle import MinIntervalGate


def seed_snapshot() -> AppSnapshot:
    """Fixed house list, empty collections."""
    return AppSnapshot(houses=initial_houses())


def _counts(snapshot: AppSnapshot) -> dict[str, int]:
    return {
        "houses": len(snapshot.houses),
        "payments": len(snapshot.payments),
        "expenses": len(snapshot.expenses),
        "suggestions": len(snapshot.suggestions),
    }


class Synchronizer:
    """
    Keeps the local store and the remote document in step.

    All methods run on one event loop. Pulls and pushes suspend only
    inside the document store calls.
    """

    def __init__(
        self,
        store: LocalStateStore,
        remote: DocumentStoreInterface,
        key_store: KeyValueStoreInterface,
        settings: Optional[SyncSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
        gate: Optional[MinIntervalGate] = None,
        wall_clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._remote = remote
        self._key_store = key_store
        self._settings = settings or get_settings().sync
        self._audit_logger = audit_logger
        self._gate = gate or MinIntervalGate(self._settings.min_push_interval_seconds)
        self._wall_clock = wall_clock

        self._document_id: Optional[str] = None
        self._in_flight = 0
        self._pulling = False
        self._last_error = False
        self._last_outcome: Optional[PullOutcome] = None
        self._pending: set[asyncio.Task] = set()

    # =========================================================================
    # STATUS
    # =========================================================================

    @property
    def document_id(self) -> Optional[str]:
        return self._document_id

    @property
    def stored_document_id(self) -> Optional[str]:
        """The id persisted on this device, if any."""
        value = self._key_store.get(self._settings.document_id_key)
        return value if isinstance(value, str) and value else None

    @property
    def syncing(self) -> bool:
        return self._in_flight > 0

    @property
    def last_error(self) -> bool:
        return self._last_error

    @property
    def last_push_at(self) -> Optional[float]:
        return self._gate.last_attempt

    @property
    def last_outcome(self) -> Optional[PullOutcome]:
        return self._last_outcome

    @property
    def status(self) -> SyncIndicator:
        if self.syncing:
            return SyncIndicator.SYNCING
        if self._last_error:
            return SyncIndicator.LOCAL_MODE
        return SyncIndicator.UP_TO_DATE

    @contextmanager
    def _in_progress(self):
        """Hold the syncing flag for the duration of a remote round-trip."""
        self._in_flight += 1
        try:
            yield
        finally:
            self._in_flight -= 1

    def _remember_id(self, document_id: str) -> None:
        self._document_id = document_id
        self._key_store.set(self._settings.document_id_key, document_id)

    def _forget_id(self) -> None:
        self._document_id = None
        self._key_store.remove(self._settings.document_id_key)

    # =========================================================================
    # PULL
    # =========================================================================

    async def pull(self, manual_id: Optional[str] = None) -> PullOutcome:
        """
        Load the remote document into the local store.

        Returns a PullOutcome; INVALID_CODE is the signal the view turns
        into the "invalid code" message.
        """
        if self._pulling:
            if self._audit_logger:
                await self._audit_logger.log_pull_skipped()
            return PullOutcome.SKIPPED

        self._pulling = True
        try:
            with self._in_progress():
                outcome = await self._pull((manual_id or "").strip() or None)
        finally:
            self._pulling = False

        self._last_outcome = outcome
        return outcome

    async def _pull(self, manual_id: Optional[str]) -> PullOutcome:
        candidate = manual_id or self._document_id or self.stored_document_id

        if candidate is None:
            return await self._create_seeded(recovered=False)

        try:
            snapshot = await self._remote.fetch(candidate)
        except NotFoundError:
            self._last_error = True
            if self._audit_logger:
                await self._audit_logger.log_document_not_found(
                    candidate, manual=manual_id is not None
                )
            if manual_id is not None:
                return PullOutcome.INVALID_CODE
            return await self._recover_stale_id()
        except RemoteUnavailableError as e:
            self._last_error = True
            if self._audit_logger:
                await self._audit_logger.log_pull_failed(candidate, str(e))
            return PullOutcome.OFFLINE

        if not snapshot.houses:
            snapshot = snapshot.model_copy(update={"houses": initial_houses()})
        self._remember_id(candidate)
        self._store.replace_snapshot(snapshot)
        self._last_error = False
        if self._audit_logger:
            await self._audit_logger.log_document_loaded(candidate, _counts(snapshot))
        return PullOutcome.LOADED

    async def _create_seeded(self, recovered: bool) -> PullOutcome:
        seed = seed_snapshot()
        try:
            document_id = await self._remote.create(seed)
        except RemoteUnavailableError as e:
            self._last_error = True
            if self._audit_logger:
                await self._audit_logger.log_pull_failed(None, str(e))
            return PullOutcome.OFFLINE

        self._remember_id(document_id)
        if self._audit_logger:
            await self._audit_logger.log_document_created(document_id, recovered)
        if recovered:
            return PullOutcome.RECOVERED

        self._store.replace_snapshot(seed)
        self._last_error = False
        return PullOutcome.CREATED

    async def _recover_stale_id(self) -> PullOutcome:
        """
        The stored id no longer exists: forget it and mint a replacement.

        The error flag stays set for this cycle whatever the outcome, and
        the local snapshot is left alone so unsynced entries survive.
        """
        self._forget_id()
        outcome = await self._create_seeded(recovered=True)
        self._last_error = True
        return outcome

    # =========================================================================
    # PUSH
    # =========================================================================

    async def push(self) -> bool:
        """
        Replace the remote document with the current snapshot.

        Returns True only if a replace call succeeded.
        """
        document_id = self._document_id
        if document_id is None or self._store.user is None:
            return False
        if not self._gate.try_acquire():
            return False

        snapshot = self._store.snapshot().model_copy(
            update={"last_update": int(self._wall_clock() * 1000)}
        )
        with self._in_progress():
            try:
                await self._remote.replace(document_id, snapshot)
            except RemoteUnavailableError as e:
                self._last_error = True
                if self._audit_logger:
                    await self._audit_logger.log_push_failed(document_id, str(e))
                return False

        self._last_error = False
        if self._audit_logger:
            await self._audit_logger.log_push_completed(document_id, _counts(snapshot))
        return True

    def schedule_push(self) -> asyncio.Task:
        """
        Schedule a push on the running loop without suspending the caller.

        The snapshot is read when the task runs, so mutations made before
        the loop regains control travel in the same push.
        """
        task = asyncio.get_running_loop().create_task(self.push())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def wait_for_pending(self) -> None:
        """Wait until every scheduled push has finished."""
        while True:
            pending = [task for task in self._pending if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending)
