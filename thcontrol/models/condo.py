"""
Core Data Models for TH Control

These models define the records that make up the shared ledger of the
condominium. They are designed to:
1. Round-trip the JSON document format used by the remote store
2. Stay readable when older documents lack newer fields
3. Be immutable once created (status changes produce a new record)

DESIGN DECISION: Python attributes are snake_case, the wire format keeps
the camelCase keys every device already writes. Models accept both on
input and always serialize by alias.
"""

import threading
import time
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
)


# Amounts are Decimal in Python and plain JSON numbers on the wire.
Money = Annotated[
    Decimal,
    PlainSerializer(float, return_type=float, when_used="json"),
]

ADMIN_SENTINEL = "admin"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class PaymentType(str, Enum):
    """
    Payment classification.

    Extraordinary payments always carry a free-text reason.
    """
    ORDINARY = "Cuota Ordinaria mensual"
    EXTRAORDINARY = "Cuota Extraordinaria"


class ExpenseCategory(str, Enum):
    """Fixed expense categories offered by the expense form."""
    MAINTENANCE = "Mantenimiento"
    SERVICES = "Servicios"
    REPAIRS = "Reparaciones"
    CLEANING = "Limpieza"
    SECURITY = "Seguridad"
    GARDENING = "Jardinería"
    OTHER = "Otros"


class SuggestionStatus(str, Enum):
    """
    Suggestion lifecycle.

    pending -> reviewed | resolved, and any status can be reset to pending.
    """
    PENDING = "pending"
    REVIEWED = "reviewed"
    RESOLVED = "resolved"


# =============================================================================
# LEDGER RECORDS
# =============================================================================

_RECORD_CONFIG = ConfigDict(
    populate_by_name=True,
    frozen=True,
    extra="allow",
    str_strip_whitespace=True,
)


class House(BaseModel):
    """
    A townhouse in the condominium.

    Houses are seeded once and never deleted at runtime.
    """
    model_config = _RECORD_CONFIG

    id: str = Field(
        ...,
        min_length=1,
        description="Stable human-readable code, e.g. TH01A"
    )
    name: str
    owner: str = ""
    street: str
    balance: Money = Decimal("0")


class Payment(BaseModel):
    """
    A payment made by a house.

    `amount` and `total_usd` hold the same converted USD value; the Bs.
    amount and exchange rate are kept so the conversion can be audited.
    Older documents may lack the Bs. fields and the bank reference.
    """
    model_config = _RECORD_CONFIG

    id: str
    house_id: str = Field(..., alias="houseId")
    amount: Money = Field(
        ...,
        description="Amount in USD"
    )
    date: datetime = Field(default_factory=utc_now)
    payment_type: PaymentType = Field(
        default=PaymentType.ORDINARY,
        alias="paymentType",
    )
    extraordinary_reason: Optional[str] = Field(
        default=None,
        alias="extraordinaryReason",
    )
    method: str = "Transferencia"
    bank_reference: Optional[str] = Field(
        default=None,
        alias="referenciaBancaria",
        description="Last 6 digits of the bank transfer reference"
    )
    amount_bs: Optional[Money] = Field(default=None, alias="montoBs")
    exchange_rate: Optional[Money] = Field(default=None, alias="tasaCambio")
    total_usd: Optional[Money] = Field(default=None, alias="totalUsd")
    receipt_url: Optional[str] = Field(
        default=None,
        alias="receiptUrl",
        description="Opaque reference returned by the file storage"
    )


class Expense(BaseModel):
    """An expense recorded by the administrator. Append-only."""
    model_config = _RECORD_CONFIG

    id: str
    concept: str
    category: ExpenseCategory = ExpenseCategory.MAINTENANCE
    amount: Money = Field(
        ...,
        description="Amount in USD"
    )
    date: datetime = Field(default_factory=utc_now)
    amount_bs: Optional[Money] = Field(default=None, alias="montoBs")
    exchange_rate: Optional[Money] = Field(default=None, alias="tasaCambio")
    total_usd: Optional[Money] = Field(default=None, alias="totalUsd")
    invoice_url: Optional[str] = Field(default=None, alias="invoiceUrl")


class Suggestion(BaseModel):
    """
    A message left in the suggestion box.

    `house_id` is ADMIN_SENTINEL when the administrator wrote it.
    """
    model_config = _RECORD_CONFIG

    id: str
    house_id: str = Field(..., alias="houseId")
    message: str
    date: datetime = Field(default_factory=utc_now)
    status: SuggestionStatus = SuggestionStatus.PENDING
    ip_address: Optional[str] = Field(default=None, alias="ipAddress")

    @field_validator('ip_address', mode='before')
    @classmethod
    def blank_address_is_none(cls, v: Any) -> Any:
        """The original client stored '' when the lookup failed."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def from_admin(self) -> bool:
        return self.house_id == ADMIN_SENTINEL


# =============================================================================
# SNAPSHOT - the unit of remote persistence
# =============================================================================

class AppSnapshot(BaseModel):
    """
    The full ledger: houses, payments, expenses and suggestions.

    This is the whole remote document. There is no partial update: every
    push replaces the document with a complete snapshot.
    """
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    houses: list[House] = Field(default_factory=list)
    payments: list[Payment] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)
    suggestions: list[Suggestion] = Field(default_factory=list)

    last_update: Optional[int] = Field(
        default=None,
        alias="lastUpdate",
        description="Epoch milliseconds of the last push (informational)"
    )

    @field_validator('houses', 'payments', 'expenses', 'suggestions', mode='before')
    @classmethod
    def missing_collection_is_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @classmethod
    def from_document(cls, data: Any) -> "AppSnapshot":
        """Parse a remote JSON document."""
        return cls.model_validate(data)

    def to_document(self) -> dict:
        """Serialize to the remote JSON document format."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def house_ids(self) -> set[str]:
        return {house.id for house in self.houses}

    def dangling_references(self) -> list[str]:
        """
        List records pointing at houses that are not in `houses`.

        Returns human-readable descriptions, empty when consistent.
        """
        known = self.house_ids()
        problems = []
        for payment in self.payments:
            if payment.house_id not in known:
                problems.append(f"payment {payment.id} -> {payment.house_id}")
        for suggestion in self.suggestions:
            if not suggestion.from_admin and suggestion.house_id not in known:
                problems.append(f"suggestion {suggestion.id} -> {suggestion.house_id}")
        return problems


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single problem found in a form entry."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'not_found')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """Result of validating one form entry before it touches the store."""

    entry: str = Field(
        ...,
        description="Which form was validated (payment, expense, suggestion)"
    )
    validated_at: datetime = Field(default_factory=utc_now)
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]


# =============================================================================
# IDENTIFIERS
# =============================================================================

class TimeBasedIdGenerator:
    """
    Generates record ids from the current time in epoch milliseconds.

    Ids are strictly increasing within one generator, so two records
    created in the same millisecond still get distinct ids.
    """

    def __init__(self, clock=time.time):
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            candidate = int(self._clock() * 1000)
            if candidate <= self._last:
                candidate = self._last + 1
            self._last = candidate
            return str(candidate)
