"""
End-to-end tests for the entry points wired by create_app_context.

Flow: login -> pull -> mutate locally -> scheduled push -> fake remote.
"""

from decimal import Decimal

import pytest

from thcontrol.models import (
    ADMIN_SENTINEL,
    AuditEventType,
    ExpenseCategory,
    PaymentType,
    PullOutcome,
    SuggestionStatus,
    UserRole,
)
from thcontrol.orchestrator import (
    AuthenticationError,
    Authenticator,
    NotAuthorizedError,
)
from thcontrol.config import AuthSettings
from thcontrol.validation import ValidationError


async def _login_admin(context):
    return await context.session.login(UserRole.ADMIN, "Admin", "Admin1")


async def _login_resident(context, house_id="TH01A"):
    return await context.session.login(
        UserRole.RESIDENT, "Vecino", "VecinoTH", house_id=house_id
    )


class TestAuthenticator:
    """Static key matching."""

    def test_admin_key(self):
        auth = Authenticator(AuthSettings(admin_keys="Admin1,Admin2"))
        user = auth.authenticate(UserRole.ADMIN, "Ana", "Admin2")
        assert user.is_admin

    def test_wrong_admin_key(self):
        auth = Authenticator(AuthSettings())
        with pytest.raises(AuthenticationError):
            auth.authenticate(UserRole.ADMIN, "Ana", "VecinoTH")

    def test_resident_needs_house(self):
        auth = Authenticator(AuthSettings())
        with pytest.raises(AuthenticationError, match="select your house"):
            auth.authenticate(UserRole.RESIDENT, "Luis", "VecinoTH")

    def test_resident_house_must_exist(self):
        auth = Authenticator(AuthSettings())
        with pytest.raises(AuthenticationError):
            auth.authenticate(UserRole.RESIDENT, "Luis", "VecinoTH", "TH99Z", {"TH01A"})

    def test_resident_username_defaults_to_house(self):
        auth = Authenticator(AuthSettings())
        user = auth.authenticate(UserRole.RESIDENT, "", "VecinoTH", "TH01A", {"TH01A"})
        assert user.username == "TH01A"
        assert user.house_id == "TH01A"

    def test_unknown_role(self):
        auth = Authenticator(AuthSettings())
        with pytest.raises(AuthenticationError):
            auth.authenticate("guest", "x", "Admin1")


class TestSessionFlow:
    """Login, logout and refresh."""

    @pytest.mark.asyncio
    async def test_login_pulls(self, context, remote):
        outcome = await _login_admin(context)

        assert outcome == PullOutcome.CREATED
        assert context.store.user.is_admin
        assert context.synchronizer.document_id == "doc-1"

    @pytest.mark.asyncio
    async def test_rejected_login_is_audited(self, context, remote):
        with pytest.raises(AuthenticationError):
            await context.session.login(UserRole.ADMIN, "x", "wrong")

        assert context.store.user is None
        assert remote.create_calls == []
        assert context.audit_logger.recent_events[0].event_type == AuditEventType.LOGIN_REJECTED

    @pytest.mark.asyncio
    async def test_login_with_unknown_code_keeps_session(self, context):
        outcome = await context.session.login(
            UserRole.ADMIN, "Admin", "Admin1", manual_document_id="nope"
        )

        assert outcome == PullOutcome.INVALID_CODE
        assert context.store.user is not None

    @pytest.mark.asyncio
    async def test_logout_keeps_snapshot(self, context):
        await _login_admin(context)
        await context.ledger.record_payment("TH01A", "500", "50", "123456")
        await context.synchronizer.wait_for_pending()

        await context.session.logout()

        assert context.store.user is None
        assert len(context.store.payments) == 1

    @pytest.mark.asyncio
    async def test_refresh_requires_session(self, context):
        with pytest.raises(NotAuthorizedError):
            await context.session.refresh()

    @pytest.mark.asyncio
    async def test_refresh_loads_other_device_changes(self, context, remote):
        await _login_admin(context)
        remote.documents["doc-1"]["payments"] = [
            {"id": "99", "houseId": "TH02A", "amount": 15.5}
        ]

        outcome = await context.session.refresh()

        assert outcome == PullOutcome.LOADED
        assert [p.id for p in context.store.payments] == ["99"]


class TestLedgerFlow:
    """Payments and expenses."""

    @pytest.mark.asyncio
    async def test_admin_payment_end_to_end(self, context, remote):
        """Bs. 500 at rate 50 for TH01A becomes a 10.00 USD payment."""
        await _login_admin(context)

        payment = await context.ledger.record_payment(
            house_id="TH01A",
            amount_bs=500,
            exchange_rate=50,
            bank_reference="123456",
        )
        await context.synchronizer.wait_for_pending()

        assert payment.total_usd == Decimal("10.00")
        assert payment.amount == Decimal("10.00")
        assert payment.payment_type == PaymentType.ORDINARY
        assert context.store.payments[0] == payment
        assert len(remote.replace_calls) == 1
        _, payload = remote.replace_calls[0]
        assert payment in payload.payments
        assert remote.documents["doc-1"]["payments"][0]["totalUsd"] == 10.0

    @pytest.mark.asyncio
    async def test_two_payments_in_one_window_share_one_push(self, context, remote):
        await _login_admin(context)

        await context.ledger.record_payment("TH01A", "500", "50", "123456")
        await context.ledger.record_payment("TH02A", "250", "50", "654321")
        await context.synchronizer.wait_for_pending()

        assert len(remote.replace_calls) == 1
        _, payload = remote.replace_calls[0]
        assert payload.payments == context.store.snapshot().payments
        assert [p.house_id for p in payload.payments] == ["TH02A", "TH01A"]

    @pytest.mark.asyncio
    async def test_invalid_reference_rejected_before_mutation(self, context, remote):
        await _login_admin(context)

        with pytest.raises(ValidationError) as exc_info:
            await context.ledger.record_payment("TH01A", "500", "50", "12a456")
        await context.synchronizer.wait_for_pending()

        assert exc_info.value.result.issues[0].field == "bank_reference"
        assert context.store.payments == ()
        assert remote.replace_calls == []

    @pytest.mark.asyncio
    async def test_unknown_payment_type_is_a_validation_error(self, context, remote):
        await _login_admin(context)

        with pytest.raises(ValidationError) as exc_info:
            await context.ledger.record_payment(
                "TH01A", "500", "50", "123456", payment_type="Donación"
            )
        await context.synchronizer.wait_for_pending()

        assert exc_info.value.result.issues[0].field == "payment_type"
        assert context.store.payments == ()
        assert remote.replace_calls == []

    @pytest.mark.asyncio
    async def test_zero_amount_payment_rejected(self, context):
        await _login_admin(context)

        with pytest.raises(ValidationError):
            await context.ledger.record_payment("TH01A", "0", "50", "123456")
        assert context.store.payments == ()

    @pytest.mark.asyncio
    async def test_extraordinary_payment_needs_reason(self, context):
        await _login_admin(context)

        with pytest.raises(ValidationError):
            await context.ledger.record_payment(
                "TH01A", "500", "50", "123456",
                payment_type=PaymentType.EXTRAORDINARY,
            )

        payment = await context.ledger.record_payment(
            "TH01A", "500", "50", "123456",
            payment_type=PaymentType.EXTRAORDINARY,
            extraordinary_reason="Pintura de fachada",
        )
        assert payment.extraordinary_reason == "Pintura de fachada"

    @pytest.mark.asyncio
    async def test_resident_pays_only_own_house(self, context):
        await _login_resident(context, "TH01A")

        with pytest.raises(ValidationError):
            await context.ledger.record_payment("TH02A", "500", "50", "123456")

        payment = await context.ledger.record_payment("TH01A", "500", "50", "123456")
        assert payment.house_id == "TH01A"

    @pytest.mark.asyncio
    async def test_payment_requires_session(self, context):
        with pytest.raises(NotAuthorizedError):
            await context.ledger.record_payment("TH01A", "500", "50", "123456")

    @pytest.mark.asyncio
    async def test_resident_cannot_delete_or_record_expense(self, context):
        await _login_resident(context)

        with pytest.raises(NotAuthorizedError):
            await context.ledger.delete_payment("1")
        with pytest.raises(NotAuthorizedError):
            await context.ledger.record_expense(
                "Bombillos", ExpenseCategory.MAINTENANCE, "100", "50"
            )

    @pytest.mark.asyncio
    async def test_delete_payment(self, context, remote, clock):
        await _login_admin(context)
        payment = await context.ledger.record_payment("TH01A", "500", "50", "123456")
        await context.synchronizer.wait_for_pending()
        clock.advance(3)

        assert await context.ledger.delete_payment(payment.id) is True
        await context.synchronizer.wait_for_pending()

        assert context.store.payments == ()
        assert remote.documents["doc-1"]["payments"] == []
        assert await context.ledger.delete_payment("missing") is False

    @pytest.mark.asyncio
    async def test_record_expense(self, context):
        await _login_admin(context)

        expense = await context.ledger.record_expense(
            concept="Vigilancia nocturna",
            category="Seguridad",
            amount_bs="1000",
            exchange_rate="40",
        )

        assert expense.category == ExpenseCategory.SECURITY
        assert expense.amount == Decimal("25.00")
        assert context.store.expenses[0] == expense

    @pytest.mark.asyncio
    async def test_expense_with_zero_rate_rejected(self, context):
        await _login_admin(context)

        with pytest.raises(ValidationError):
            await context.ledger.record_expense("Agua", "Servicios", "100", "0")
        assert context.store.expenses == ()

    @pytest.mark.asyncio
    async def test_push_failure_keeps_mutation(self, context, remote):
        from thcontrol.services.storage import RemoteUnavailableError

        await _login_admin(context)
        remote.replace_error = RemoteUnavailableError("HTTP 503")

        await context.ledger.record_payment("TH01A", "500", "50", "123456")
        await context.synchronizer.wait_for_pending()

        assert len(context.store.payments) == 1
        assert context.synchronizer.last_error is True


class TestSuggestionFlow:
    """Suggestion box."""

    @pytest.mark.asyncio
    async def test_empty_suggestion_rejected(self, context, remote, address_lookup):
        await _login_resident(context)
        before = context.store.suggestions

        with pytest.raises(ValidationError):
            await context.suggestions.submit_suggestion("   ")
        await context.synchronizer.wait_for_pending()

        assert context.store.suggestions == before
        assert remote.replace_calls == []
        assert address_lookup.calls == 0

    @pytest.mark.asyncio
    async def test_resident_suggestion_carries_house_and_address(self, context):
        await _login_resident(context, "TH05B")

        suggestion = await context.suggestions.submit_suggestion("Arreglar el portón")

        assert suggestion.house_id == "TH05B"
        assert suggestion.ip_address == "203.0.113.7"
        assert suggestion.status == SuggestionStatus.PENDING
        assert context.store.suggestions[0] == suggestion

    @pytest.mark.asyncio
    async def test_admin_suggestion_uses_sentinel(self, context):
        await _login_admin(context)

        suggestion = await context.suggestions.submit_suggestion("Reunión el sábado")

        assert suggestion.house_id == ADMIN_SENTINEL
        assert suggestion.from_admin

    @pytest.mark.asyncio
    async def test_failed_lookup_omits_address(self, context, address_lookup):
        address_lookup.address = None
        await _login_resident(context)

        suggestion = await context.suggestions.submit_suggestion("Más luz en Calle B")

        assert suggestion.ip_address is None
        assert len(context.store.suggestions) == 1

    @pytest.mark.asyncio
    async def test_status_change_admin_only(self, context):
        await _login_resident(context)
        suggestion = await context.suggestions.submit_suggestion("Podar árboles")
        await context.synchronizer.wait_for_pending()

        with pytest.raises(NotAuthorizedError):
            await context.suggestions.update_suggestion_status(
                suggestion.id, SuggestionStatus.RESOLVED
            )

        await context.session.logout()
        await _login_admin(context)
        assert await context.suggestions.update_suggestion_status(
            suggestion.id, SuggestionStatus.RESOLVED
        ) is True
        assert context.store.suggestions[0].status == SuggestionStatus.RESOLVED
        assert context.store.suggestions[0].message == "Podar árboles"
