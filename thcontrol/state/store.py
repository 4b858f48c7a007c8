"""
Local State Store

DESIGN DECISION: The device keeps one in-memory snapshot of the ledger and
treats it as authoritative. Mutations are applied synchronously and are
visible immediately; the remote copy catches up later.

This provides:
1. Optimistic updates (the form shows the new record before the push)
2. Most-recent-first ordering of every collection
3. A local mirror of the session so a restart works offline

IMPORTANT: There is no rollback. A failed push never undoes a mutation.
"""

from typing import Optional, Union

import structlog
from pydantic import ValidationError as SchemaError

from thcontrol.models.condo import (
    AppSnapshot,
    Expense,
    House,
    Payment,
    Suggestion,
    SuggestionStatus,
)
from thcontrol.models.houses import initial_houses
from thcontrol.models.session import User
from thcontrol.services.storage.interface import KeyValueStoreInterface

logger = structlog.get_logger(__name__)

LedgerEntry = Union[Payment, Expense, Suggestion]


class LocalStateStore:
    """
    Single mutable snapshot plus the session user.

    Collections are exposed as tuples so callers cannot mutate them
    behind the store's back.
    """

    def __init__(
        self,
        cache: Optional[KeyValueStoreInterface] = None,
        state_key: str = "th_control_state",
        houses: Optional[list[House]] = None,
    ):
        self._cache = cache
        self._state_key = state_key
        self._user: Optional[User] = None
        self._houses: list[House] = list(houses) if houses is not None else initial_houses()
        self._payments: list[Payment] = []
        self._expenses: list[Expense] = []
        self._suggestions: list[Suggestion] = []
        self._extra: dict = {}

    # =========================================================================
    # READS
    # =========================================================================

    @property
    def user(self) -> Optional[User]:
        return self._user

    @property
    def houses(self) -> tuple[House, ...]:
        return tuple(self._houses)

    @property
    def payments(self) -> tuple[Payment, ...]:
        return tuple(self._payments)

    @property
    def expenses(self) -> tuple[Expense, ...]:
        return tuple(self._expenses)

    @property
    def suggestions(self) -> tuple[Suggestion, ...]:
        return tuple(self._suggestions)

    def snapshot(self) -> AppSnapshot:
        """A detached copy of the current ledger."""
        return AppSnapshot(
            houses=list(self._houses),
            payments=list(self._payments),
            expenses=list(self._expenses),
            suggestions=list(self._suggestions),
            **self._extra,
        )

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def set_user(self, user: Optional[User]) -> None:
        """Start or end the session. The ledger is left as is."""
        self._user = user
        self._mirror()

    def replace_snapshot(self, snapshot: AppSnapshot) -> None:
        """Overwrite every collection with the given snapshot."""
        self._houses = list(snapshot.houses)
        self._payments = list(snapshot.payments)
        self._expenses = list(snapshot.expenses)
        self._suggestions = list(snapshot.suggestions)
        # Unknown top-level keys from other clients are written back on push.
        self._extra = dict(snapshot.model_extra or {})
        self._mirror()

    def append(self, entry: LedgerEntry) -> None:
        """Insert a record at the head of its collection."""
        if isinstance(entry, Payment):
            self._payments.insert(0, entry)
        elif isinstance(entry, Expense):
            self._expenses.insert(0, entry)
        elif isinstance(entry, Suggestion):
            self._suggestions.insert(0, entry)
        else:
            raise TypeError(f"Cannot append {type(entry).__name__} to the ledger")
        self._mirror()

    def remove_payment(self, payment_id: str) -> bool:
        """Remove a payment by id. Returns False if it was not there."""
        remaining = [p for p in self._payments if p.id != payment_id]
        if len(remaining) == len(self._payments):
            return False
        self._payments = remaining
        self._mirror()
        return True

    def update_suggestion_status(
        self,
        suggestion_id: str,
        status: SuggestionStatus,
    ) -> bool:
        """Replace a suggestion with a copy carrying the new status."""
        for index, suggestion in enumerate(self._suggestions):
            if suggestion.id == suggestion_id:
                self._suggestions[index] = suggestion.model_copy(
                    update={"status": SuggestionStatus(status)}
                )
                self._mirror()
                return True
        return False

    # =========================================================================
    # SESSION MIRROR
    # =========================================================================

    def _mirror(self) -> None:
        """Write {user, houses, payments, ...} while a user is logged in."""
        if self._cache is None or self._user is None:
            return
        document = self.snapshot().to_document()
        document.pop("lastUpdate", None)
        document["user"] = self._user.model_dump(mode="json", by_alias=True)
        self._cache.set(self._state_key, document)

    def restore_cached(self) -> bool:
        """
        Load the collections from the session mirror.

        The user is never restored: a restart always asks for login again.
        Returns True if a usable mirror was found.
        """
        if self._cache is None:
            return False
        cached = self._cache.get(self._state_key)
        if not isinstance(cached, dict):
            return False

        data = {k: v for k, v in cached.items() if k != "user"}
        try:
            snapshot = AppSnapshot.from_document(data)
        except SchemaError as e:
            logger.warning("session_mirror_unreadable", error=str(e))
            return False

        if not snapshot.houses:
            snapshot = snapshot.model_copy(update={"houses": initial_houses()})
        self.replace_snapshot(snapshot)
        return True
