"""
Audit Models for TH Control

Every session change, ledger mutation and sync round-trip is logged.
This provides:
1. Traceability of who recorded or deleted what
2. Debugging information when the cloud copy falls behind
3. A record of every time the device went into local mode

DESIGN DECISION: Document ids act as bearer secrets, so events only ever
carry a short prefix of them (see `redact_document_id`).
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Session
    SESSION_STARTED = "session_started"
    SESSION_ENDED = "session_ended"
    LOGIN_REJECTED = "login_rejected"

    # Ledger mutations
    PAYMENT_RECORDED = "payment_recorded"
    PAYMENT_DELETED = "payment_deleted"
    EXPENSE_RECORDED = "expense_recorded"
    SUGGESTION_SUBMITTED = "suggestion_submitted"
    SUGGESTION_STATUS_CHANGED = "suggestion_status_changed"
    ENTRY_REJECTED = "entry_rejected"

    # Remote document lifecycle
    DOCUMENT_CREATED = "document_created"
    DOCUMENT_LOADED = "document_loaded"
    DOCUMENT_NOT_FOUND = "document_not_found"
    DOCUMENT_RECOVERED = "document_recovered"
    PULL_FAILED = "pull_failed"
    PULL_SKIPPED = "pull_skipped"
    PUSH_COMPLETED = "push_completed"
    PUSH_FAILED = "push_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


def redact_document_id(document_id: Optional[str]) -> Optional[str]:
    """Keep only enough of a document id to tell documents apart in logs."""
    if not document_id:
        return None
    return f"{document_id[:6]}…"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'payment', 'document', 'session')"
    )
    entity_id: Optional[str] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.payment_recorded(payment_id, house_id, amount, username)
        event = AuditEventBuilder.push_failed(document_id, error_message)
    """

    @staticmethod
    def session_started(username: str, role: str, house_id: Optional[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_STARTED,
            entity_type="session",
            description=f"{role} session started",
            details={"username": username, "role": role, "house_id": house_id},
            is_user_action=True,
        )

    @staticmethod
    def session_ended(username: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_ENDED,
            entity_type="session",
            description="Session ended",
            details={"username": username},
            is_user_action=True,
        )

    @staticmethod
    def login_rejected(role: str, reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGIN_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="session",
            description=f"Login rejected for {role}",
            error_message=reason,
            details={"role": role},
            is_user_action=True,
        )

    @staticmethod
    def payment_recorded(
        payment_id: str,
        house_id: str,
        amount: str,
        username: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_RECORDED,
            entity_type="payment",
            entity_id=payment_id,
            description=f"Payment recorded: {house_id} - ${amount}",
            details={"house_id": house_id, "amount_usd": amount, "by": username},
            is_user_action=True,
        )

    @staticmethod
    def payment_deleted(payment_id: str, username: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_DELETED,
            severity=AuditSeverity.WARNING,
            entity_type="payment",
            entity_id=payment_id,
            description="Payment deleted",
            details={"by": username},
            is_user_action=True,
        )

    @staticmethod
    def expense_recorded(
        expense_id: str,
        category: str,
        amount: str,
        username: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_RECORDED,
            entity_type="expense",
            entity_id=expense_id,
            description=f"Expense recorded: {category} - ${amount}",
            details={"category": category, "amount_usd": amount, "by": username},
            is_user_action=True,
        )

    @staticmethod
    def suggestion_submitted(
        suggestion_id: str,
        house_id: str,
        has_address: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUGGESTION_SUBMITTED,
            entity_type="suggestion",
            entity_id=suggestion_id,
            description=f"Suggestion submitted by {house_id}",
            details={"house_id": house_id, "has_address": has_address},
            is_user_action=True,
        )

    @staticmethod
    def suggestion_status_changed(
        suggestion_id: str,
        status: str,
        username: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUGGESTION_STATUS_CHANGED,
            entity_type="suggestion",
            entity_id=suggestion_id,
            description=f"Suggestion marked {status}",
            details={"status": status, "by": username},
            is_user_action=True,
        )

    @staticmethod
    def entry_rejected(entry: str, issues: list[dict]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type=entry,
            description=f"{entry.capitalize()} entry rejected with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def document_created(document_id: str, recovered: bool = False) -> AuditEvent:
        event_type = (
            AuditEventType.DOCUMENT_RECOVERED
            if recovered
            else AuditEventType.DOCUMENT_CREATED
        )
        return AuditEvent(
            event_type=event_type,
            severity=AuditSeverity.WARNING if recovered else AuditSeverity.INFO,
            entity_type="document",
            entity_id=redact_document_id(document_id),
            description=(
                "Stale document replaced by a new one"
                if recovered
                else "New remote document created"
            ),
        )

    @staticmethod
    def document_loaded(document_id: str, counts: dict[str, int]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DOCUMENT_LOADED,
            entity_type="document",
            entity_id=redact_document_id(document_id),
            description="Remote document loaded",
            details=counts,
        )

    @staticmethod
    def document_not_found(document_id: str, manual: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DOCUMENT_NOT_FOUND,
            severity=AuditSeverity.WARNING,
            entity_type="document",
            entity_id=redact_document_id(document_id),
            description=(
                "Entered sync code does not exist"
                if manual
                else "Stored document id is no longer valid"
            ),
            details={"manual": manual},
        )

    @staticmethod
    def pull_failed(document_id: Optional[str], error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PULL_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="document",
            entity_id=redact_document_id(document_id),
            description="Could not reach the remote store; working in local mode",
            error_message=error_message,
        )

    @staticmethod
    def pull_skipped() -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PULL_SKIPPED,
            severity=AuditSeverity.DEBUG,
            entity_type="document",
            description="Pull ignored while another pull is running",
        )

    @staticmethod
    def push_completed(document_id: str, counts: dict[str, int]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PUSH_COMPLETED,
            severity=AuditSeverity.DEBUG,
            entity_type="document",
            entity_id=redact_document_id(document_id),
            description="Snapshot pushed to the remote store",
            details=counts,
        )

    @staticmethod
    def push_failed(document_id: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PUSH_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="document",
            entity_id=redact_document_id(document_id),
            description="Push failed; local data stays authoritative",
            error_message=error_message,
        )
