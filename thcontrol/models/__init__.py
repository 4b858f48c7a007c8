"""
Data Models Package

This package contains all Pydantic models used in TH Control.
Everything stored in the remote document conforms to these schemas.
"""

from thcontrol.models.condo import (
    ADMIN_SENTINEL,
    AppSnapshot,
    Expense,
    ExpenseCategory,
    House,
    Payment,
    PaymentType,
    Suggestion,
    SuggestionStatus,
    TimeBasedIdGenerator,
    ValidationIssue,
    ValidationResult,
)
from thcontrol.models.houses import STREETS, initial_houses
from thcontrol.models.session import (
    PullOutcome,
    SyncIndicator,
    User,
    UserRole,
)
from thcontrol.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    redact_document_id,
)

__all__ = [
    # Ledger models
    "ADMIN_SENTINEL",
    "AppSnapshot",
    "Expense",
    "ExpenseCategory",
    "House",
    "Payment",
    "PaymentType",
    "Suggestion",
    "SuggestionStatus",
    "TimeBasedIdGenerator",
    "ValidationIssue",
    "ValidationResult",
    "STREETS",
    "initial_houses",
    # Session models
    "PullOutcome",
    "SyncIndicator",
    "User",
    "UserRole",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    "redact_document_id",
]
