"""
Main Orchestrator for TH Control

This module ties together all the components and defines the entry
points the view calls:
1. Session (login -> pull, logout, manual refresh)
2. Ledger (record payment, delete payment, record expense)
3. Suggestions (submit, change status)

DESIGN DECISION: Every mutation entry point follows the same steps:
- Check the session and the role
- Validate the form; reject before touching anything
- Apply the change to the local store (visible immediately)
- Schedule a push in the same step, without suspending in between
- Audit

Remote failures never surface here: they show up as the sync badge.
"""

from datetime import datetime
from typing import Callable, Optional

from thcontrol.audit import AuditLogger
from thcontrol.config import AuthSettings, Settings, get_settings
from thcontrol.models.condo import (
    ADMIN_SENTINEL,
    Expense,
    ExpenseCategory,
    Payment,
    PaymentType,
    Suggestion,
    SuggestionStatus,
    TimeBasedIdGenerator,
    ValidationResult,
    utc_now,
)
from thcontrol.models.session import PullOutcome, User, UserRole
from thcontrol.services.network import PublicAddressLookup
from thcontrol.services.storage import (
    DocumentStoreInterface,
    JsonBlobDocumentStore,
    JsonFileKeyValueStore,
    KeyValueStoreInterface,
)
from thcontrol.state import LocalStateStore
from thcontrol.sync import MinIntervalGate, Synchronizer
from thcontrol.validation import (
    EntryValidator,
    ValidationError,
    parse_decimal,
    try_convert_to_usd,
)
from thcontrol.validation.currency import NumberLike


class AuthenticationError(Exception):
    """Login refused: wrong key or no house selected."""
    pass


class NotAuthorizedError(Exception):
    """No session, or the session's role may not perform the action."""
    pass


class Authenticator:
    """
    Static key check, as the condominium has always done it.

    Admins use one of the configured admin keys; residents share one key
    and must pick an existing house.
    """

    def __init__(self, settings: Optional[AuthSettings] = None):
        self._settings = settings or get_settings().auth

    def authenticate(
        self,
        role: UserRole,
        username: str,
        condo_key: str,
        house_id: Optional[str] = None,
        known_house_ids: Optional[set[str]] = None,
    ) -> User:
        try:
            role = UserRole(role)
        except ValueError:
            raise AuthenticationError(f"Unknown role: {role!r}") from None
        if role == UserRole.ADMIN:
            if condo_key not in self._settings.admin_keys_list:
                raise AuthenticationError("Incorrect administrator key")
            return User(role=role, username=username, condo_key=condo_key)

        if condo_key != self._settings.resident_key:
            raise AuthenticationError("Incorrect resident key")
        if not house_id:
            raise AuthenticationError("Please select your house")
        if known_house_ids is not None and house_id not in known_house_ids:
            raise AuthenticationError(f"House {house_id} does not exist")
        return User(
            role=role,
            username=username or house_id,
            condo_key=condo_key,
            house_id=house_id,
        )


class _Flow:
    """Shared session checks for the entry points."""

    def __init__(
        self,
        store: LocalStateStore,
        synchronizer: Synchronizer,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._synchronizer = synchronizer
        self._audit_logger = audit_logger

    def _require_user(self, admin: bool = False) -> User:
        user = self._store.user
        if user is None:
            raise NotAuthorizedError("Log in first")
        if admin and not user.is_admin:
            raise NotAuthorizedError("Only the administrator can do this")
        return user

    async def _reject(self, result: ValidationResult) -> None:
        if self._audit_logger:
            await self._audit_logger.log_entry_rejected(
                result.entry,
                [issue.model_dump() for issue in result.issues],
            )
        raise ValidationError(result)


class SessionFlow(_Flow):
    """
    Login, logout and manual refresh.

    Login binds the user first and then pulls, so a failed pull still
    leaves a usable session in local mode.
    """

    def __init__(
        self,
        store: LocalStateStore,
        synchronizer: Synchronizer,
        authenticator: Optional[Authenticator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(store, synchronizer, audit_logger)
        self._authenticator = authenticator or Authenticator()

    async def login(
        self,
        role: UserRole,
        username: str,
        condo_key: str,
        house_id: Optional[str] = None,
        manual_document_id: Optional[str] = None,
    ) -> PullOutcome:
        """
        Authenticate, start the session and pull the remote document.

        Raises:
            AuthenticationError: If the key or the house is wrong
        """
        known = {house.id for house in self._store.houses}
        try:
            user = self._authenticator.authenticate(
                role, username, condo_key, house_id, known
            )
        except AuthenticationError as e:
            if self._audit_logger:
                role_name = role.value if isinstance(role, UserRole) else str(role)
                await self._audit_logger.log_login_rejected(role_name, str(e))
            raise

        self._store.set_user(user)
        if self._audit_logger:
            await self._audit_logger.log_session_started(
                user.username, user.role.value, user.house_id
            )
        return await self._synchronizer.pull(manual_document_id)

    async def logout(self) -> None:
        """End the session. The ledger stays on this device."""
        user = self._store.user
        if user is None:
            return
        self._store.set_user(None)
        if self._audit_logger:
            await self._audit_logger.log_session_ended(user.username)

    async def refresh(self, manual_document_id: Optional[str] = None) -> PullOutcome:
        """Pull again, e.g. from the "retry" button of the local-mode badge."""
        self._require_user()
        return await self._synchronizer.pull(manual_document_id)


class LedgerFlow(_Flow):
    """Payments and expenses."""

    def __init__(
        self,
        store: LocalStateStore,
        synchronizer: Synchronizer,
        validator: Optional[EntryValidator] = None,
        id_generator: Optional[TimeBasedIdGenerator] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        super().__init__(store, synchronizer, audit_logger)
        self._validator = validator or EntryValidator()
        self._ids = id_generator or TimeBasedIdGenerator()
        self._clock = clock

    async def record_payment(
        self,
        house_id: str,
        amount_bs: NumberLike,
        exchange_rate: NumberLike,
        bank_reference: str,
        payment_type: PaymentType = PaymentType.ORDINARY,
        extraordinary_reason: Optional[str] = None,
        receipt_url: Optional[str] = None,
        method: str = "Transferencia",
    ) -> Payment:
        """
        Register a payment in USD converted from Bs.

        Raises:
            NotAuthorizedError: Without a session
            ValidationError: If the form is invalid (nothing is stored)
        """
        user = self._require_user()
        result = self._validator.validate_payment(
            user=user,
            house_id=house_id,
            amount_bs=amount_bs,
            exchange_rate=exchange_rate,
            bank_reference=bank_reference,
            payment_type=payment_type,
            extraordinary_reason=extraordinary_reason,
            known_house_ids=[house.id for house in self._store.houses],
        )
        if result.has_errors:
            await self._reject(result)

        payment_type = PaymentType(payment_type)
        usd = try_convert_to_usd(amount_bs, exchange_rate)
        payment = Payment(
            id=self._ids.next_id(),
            house_id=house_id,
            amount=usd,
            date=self._clock(),
            payment_type=payment_type,
            extraordinary_reason=(
                extraordinary_reason.strip()
                if payment_type == PaymentType.EXTRAORDINARY
                else None
            ),
            method=method,
            bank_reference=bank_reference,
            amount_bs=parse_decimal(amount_bs),
            exchange_rate=parse_decimal(exchange_rate),
            total_usd=usd,
            receipt_url=receipt_url or None,
        )

        self._store.append(payment)
        self._synchronizer.schedule_push()

        if self._audit_logger:
            await self._audit_logger.log_payment_recorded(
                payment_id=payment.id,
                house_id=payment.house_id,
                amount=str(payment.amount),
                username=user.username,
            )
        return payment

    async def delete_payment(self, payment_id: str) -> bool:
        """Remove a payment (admin only). Returns False if it did not exist."""
        user = self._require_user(admin=True)
        removed = self._store.remove_payment(payment_id)
        if not removed:
            return False
        self._synchronizer.schedule_push()

        if self._audit_logger:
            await self._audit_logger.log_payment_deleted(payment_id, user.username)
        return True

    async def record_expense(
        self,
        concept: str,
        category: ExpenseCategory,
        amount_bs: NumberLike,
        exchange_rate: NumberLike,
        invoice_url: Optional[str] = None,
    ) -> Expense:
        """
        Register an expense (admin only).

        Raises:
            NotAuthorizedError: Without an admin session
            ValidationError: If the form is invalid (nothing is stored)
        """
        user = self._require_user(admin=True)
        result = self._validator.validate_expense(
            concept=concept,
            category=category,
            amount_bs=amount_bs,
            exchange_rate=exchange_rate,
        )
        if result.has_errors:
            await self._reject(result)

        usd = try_convert_to_usd(amount_bs, exchange_rate)
        expense = Expense(
            id=self._ids.next_id(),
            concept=concept,
            category=ExpenseCategory(category),
            amount=usd,
            date=self._clock(),
            amount_bs=parse_decimal(amount_bs),
            exchange_rate=parse_decimal(exchange_rate),
            total_usd=usd,
            invoice_url=invoice_url or None,
        )

        self._store.append(expense)
        self._synchronizer.schedule_push()

        if self._audit_logger:
            await self._audit_logger.log_expense_recorded(
                expense_id=expense.id,
                category=expense.category.value,
                amount=str(expense.amount),
                username=user.username,
            )
        return expense


class SuggestionFlow(_Flow):
    """Suggestion box."""

    def __init__(
        self,
        store: LocalStateStore,
        synchronizer: Synchronizer,
        validator: Optional[EntryValidator] = None,
        id_generator: Optional[TimeBasedIdGenerator] = None,
        address_lookup: Optional[PublicAddressLookup] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        super().__init__(store, synchronizer, audit_logger)
        self._validator = validator or EntryValidator()
        self._ids = id_generator or TimeBasedIdGenerator()
        self._address_lookup = address_lookup
        self._clock = clock

    async def submit_suggestion(self, message: str) -> Suggestion:
        """
        Leave a suggestion for the administrator.

        The public address is looked up first and simply omitted if the
        lookup fails.
        """
        user = self._require_user()
        result = self._validator.validate_suggestion(user, message)
        if result.has_errors:
            await self._reject(result)

        address = None
        if self._address_lookup is not None:
            address = await self._address_lookup.lookup()

        suggestion = Suggestion(
            id=self._ids.next_id(),
            house_id=ADMIN_SENTINEL if user.is_admin else user.house_id,
            message=message,
            date=self._clock(),
            ip_address=address,
        )

        self._store.append(suggestion)
        self._synchronizer.schedule_push()

        if self._audit_logger:
            await self._audit_logger.log_suggestion_submitted(
                suggestion_id=suggestion.id,
                house_id=suggestion.house_id,
                has_address=address is not None,
            )
        return suggestion

    async def update_suggestion_status(
        self,
        suggestion_id: str,
        status: SuggestionStatus,
    ) -> bool:
        """Mark a suggestion reviewed/resolved/pending (admin only)."""
        user = self._require_user(admin=True)
        status = SuggestionStatus(status)
        if not self._store.update_suggestion_status(suggestion_id, status):
            return False
        self._synchronizer.schedule_push()

        if self._audit_logger:
            await self._audit_logger.log_suggestion_status_changed(
                suggestion_id=suggestion_id,
                status=status.value,
                username=user.username,
            )
        return True


class AppContext:
    """
    Everything one user session needs, built by `create_app_context`.

    The session user lives in `store`, so a context must never be shared
    between sessions. The stateless pieces (settings, key store, remote
    client, audit logger) may be; see `create_shared_components`.
    """

    def __init__(
        self,
        settings: Settings,
        key_store: KeyValueStoreInterface,
        store: LocalStateStore,
        remote: DocumentStoreInterface,
        synchronizer: Synchronizer,
        audit_logger: AuditLogger,
        session: SessionFlow,
        ledger: LedgerFlow,
        suggestions: SuggestionFlow,
    ):
        self.settings = settings
        self.key_store = key_store
        self.store = store
        self.remote = remote
        self.synchronizer = synchronizer
        self.audit_logger = audit_logger
        self.session = session
        self.ledger = ledger
        self.suggestions = suggestions


def create_shared_components(settings: Optional[Settings] = None) -> dict:
    """
    Create the components that hold no session state.

    These can be reused by every session of one process; pass them to
    `create_app_context` as keyword arguments.
    """
    settings = settings or get_settings()
    address_lookup = None
    if settings.address_lookup.enabled:
        address_lookup = PublicAddressLookup(settings.address_lookup)
    return {
        "settings": settings,
        "key_store": JsonFileKeyValueStore(settings.sync.data_dir),
        "remote": JsonBlobDocumentStore(settings.remote),
        "address_lookup": address_lookup,
        "audit_logger": AuditLogger(),
    }


def create_app_context(
    settings: Optional[Settings] = None,
    remote: Optional[DocumentStoreInterface] = None,
    key_store: Optional[KeyValueStoreInterface] = None,
    address_lookup: Optional[PublicAddressLookup] = None,
    gate: Optional[MinIntervalGate] = None,
    audit_logger: Optional[AuditLogger] = None,
    restore_cache: bool = True,
) -> AppContext:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to use; defaults to get_settings()
        remote: Document store; defaults to the jsonblob client
        key_store: Durable local storage; defaults to files in the data dir
        address_lookup: Public address lookup; defaults to the ipify client
        gate: Push throttle; defaults to the configured min interval
        restore_cache: Load the last session mirror into the store

    Returns:
        AppContext
    """
    settings = settings or get_settings()
    sync_settings = settings.sync

    key_store = key_store or JsonFileKeyValueStore(sync_settings.data_dir)
    remote = remote or JsonBlobDocumentStore(settings.remote)
    audit_logger = audit_logger or AuditLogger()
    if address_lookup is None and settings.address_lookup.enabled:
        address_lookup = PublicAddressLookup(settings.address_lookup)

    store = LocalStateStore(cache=key_store, state_key=sync_settings.state_key)
    if restore_cache:
        store.restore_cached()

    synchronizer = Synchronizer(
        store=store,
        remote=remote,
        key_store=key_store,
        settings=sync_settings,
        audit_logger=audit_logger,
        gate=gate,
    )

    id_generator = TimeBasedIdGenerator()
    validator = EntryValidator()

    return AppContext(
        settings=settings,
        key_store=key_store,
        store=store,
        remote=remote,
        synchronizer=synchronizer,
        audit_logger=audit_logger,
        session=SessionFlow(
            store, synchronizer, Authenticator(settings.auth), audit_logger
        ),
        ledger=LedgerFlow(
            store, synchronizer, validator, id_generator, audit_logger
        ),
        suggestions=SuggestionFlow(
            store, synchronizer, validator, id_generator, address_lookup, audit_logger
        ),
    )
