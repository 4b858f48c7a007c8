"""
Audit Logger

DESIGN DECISION: Every session change, ledger mutation and sync round-trip
is logged. This provides:
1. Traceability of who recorded or deleted a payment
2. A history of when the device fell back to local mode
3. Debugging capability when devices disagree

The audit logger:
- Is async so flows can await it at the same points they await I/O
- Never raises: a logging failure must not break a mutation
- Keeps a short in-memory trail for the view's activity panel
"""

from collections import deque
from typing import Optional

import structlog

from thcontrol.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events to the structured local log and keeps the most recent
    ones in memory.
    """

    def __init__(self, history_size: int = 200):
        self._logger = structlog.get_logger("thcontrol.audit")
        self._recent: deque[AuditEvent] = deque(maxlen=history_size)

    @property
    def recent_events(self) -> list[AuditEvent]:
        """Most recent events, newest first."""
        return list(reversed(self._recent))

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns True if the event was written to the local log.
        """
        self._recent.append(event)
        log_dict = event.to_log_dict()

        try:
            if event.severity == AuditSeverity.ERROR:
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception as e:
            # Never let logging break the main flow
            print(f"WARNING: Failed to write audit event {event.event_id}: {e}")
            return False

        return True

    async def log_session_started(
        self,
        username: str,
        role: str,
        house_id: Optional[str],
    ) -> None:
        await self.log(AuditEventBuilder.session_started(username, role, house_id))

    async def log_session_ended(self, username: str) -> None:
        await self.log(AuditEventBuilder.session_ended(username))

    async def log_login_rejected(self, role: str, reason: str) -> None:
        await self.log(AuditEventBuilder.login_rejected(role, reason))

    async def log_payment_recorded(
        self,
        payment_id: str,
        house_id: str,
        amount: str,
        username: str,
    ) -> None:
        """Log a new payment."""
        event = AuditEventBuilder.payment_recorded(
            payment_id=payment_id,
            house_id=house_id,
            amount=amount,
            username=username,
        )
        await self.log(event)

    async def log_payment_deleted(self, payment_id: str, username: str) -> None:
        await self.log(AuditEventBuilder.payment_deleted(payment_id, username))

    async def log_expense_recorded(
        self,
        expense_id: str,
        category: str,
        amount: str,
        username: str,
    ) -> None:
        """Log a new expense."""
        event = AuditEventBuilder.expense_recorded(
            expense_id=expense_id,
            category=category,
            amount=amount,
            username=username,
        )
        await self.log(event)

    async def log_suggestion_submitted(
        self,
        suggestion_id: str,
        house_id: str,
        has_address: bool,
    ) -> None:
        event = AuditEventBuilder.suggestion_submitted(
            suggestion_id=suggestion_id,
            house_id=house_id,
            has_address=has_address,
        )
        await self.log(event)

    async def log_suggestion_status_changed(
        self,
        suggestion_id: str,
        status: str,
        username: str,
    ) -> None:
        event = AuditEventBuilder.suggestion_status_changed(
            suggestion_id=suggestion_id,
            status=status,
            username=username,
        )
        await self.log(event)

    async def log_entry_rejected(self, entry: str, issues: list[dict]) -> None:
        """Log a form entry that failed validation."""
        await self.log(AuditEventBuilder.entry_rejected(entry, issues))

    async def log_document_created(self, document_id: str, recovered: bool = False) -> None:
        await self.log(AuditEventBuilder.document_created(document_id, recovered))

    async def log_document_loaded(self, document_id: str, counts: dict[str, int]) -> None:
        await self.log(AuditEventBuilder.document_loaded(document_id, counts))

    async def log_document_not_found(self, document_id: str, manual: bool) -> None:
        await self.log(AuditEventBuilder.document_not_found(document_id, manual))

    async def log_pull_failed(self, document_id: Optional[str], error_message: str) -> None:
        await self.log(AuditEventBuilder.pull_failed(document_id, error_message))

    async def log_pull_skipped(self) -> None:
        await self.log(AuditEventBuilder.pull_skipped())

    async def log_push_completed(self, document_id: str, counts: dict[str, int]) -> None:
        await self.log(AuditEventBuilder.push_completed(document_id, counts))

    async def log_push_failed(self, document_id: str, error_message: str) -> None:
        await self.log(AuditEventBuilder.push_failed(document_id, error_message))
