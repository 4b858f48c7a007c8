"""
Entry Validation

DESIGN DECISION: Every create form is validated before anything touches
the local state store or the network.

Checks cover:
- Required fields (house, concept, message)
- Formats (6-digit bank reference)
- Convertibility of the Bs. amount at the given exchange rate
- Ownership (a resident only pays for their own house)

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the form can show what to correct.
"""

import re
from typing import Iterable, Optional

from thcontrol.models.condo import (
    ExpenseCategory,
    PaymentType,
    ValidationIssue,
    ValidationResult,
)
from thcontrol.models.session import User
from thcontrol.validation.currency import NumberLike, try_convert_to_usd


BANK_REFERENCE_PATTERN = re.compile(r"[0-9]{6}")


class ValidationError(Exception):
    """A form entry was rejected. Carries the full ValidationResult."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = "; ".join(
            issue.message for issue in result.issues if issue.severity == "error"
        )
        super().__init__(f"Invalid {result.entry}: {messages}")


def is_valid_bank_reference(value: Optional[str]) -> bool:
    """Exactly six ASCII digits, nothing else."""
    if not isinstance(value, str):
        return False
    return BANK_REFERENCE_PATTERN.fullmatch(value) is not None


def _missing(field: str, message: str, fix: Optional[str] = None) -> ValidationIssue:
    return ValidationIssue(
        field=field,
        issue_type="missing",
        message=message,
        severity="error",
        suggested_fix=fix,
    )


class EntryValidator:
    """
    Validates the payment, expense and suggestion forms.

    Each method returns a ValidationResult; callers raise
    ValidationError when it has errors.
    """

    def _check_conversion(
        self,
        amount_bs: NumberLike,
        exchange_rate: NumberLike,
    ) -> list[ValidationIssue]:
        issues = []
        if amount_bs is None or (isinstance(amount_bs, str) and not amount_bs.strip()):
            issues.append(_missing("amount_bs", "Amount in Bs. is required"))
        if exchange_rate is None or (
            isinstance(exchange_rate, str) and not exchange_rate.strip()
        ):
            issues.append(_missing("exchange_rate", "Exchange rate is required"))
        if issues:
            return issues

        converted = try_convert_to_usd(amount_bs, exchange_rate)
        if converted is None:
            issues.append(ValidationIssue(
                field="exchange_rate",
                issue_type="invalid_value",
                message="Amount and exchange rate must be numbers, with a rate above zero",
                severity="error",
                suggested_fix="Enter the Bs. amount and the rate of the day, e.g. 500 and 50",
            ))
        elif converted <= 0:
            # also catches amounts that round down to 0.00 USD
            issues.append(ValidationIssue(
                field="amount_bs",
                issue_type="invalid_value",
                message="Amount must be above zero",
                severity="error",
                suggested_fix="Enter the Bs. amount that was transferred",
            ))
        return issues

    def validate_payment(
        self,
        user: Optional[User],
        house_id: Optional[str],
        amount_bs: NumberLike,
        exchange_rate: NumberLike,
        bank_reference: Optional[str],
        payment_type: PaymentType = PaymentType.ORDINARY,
        extraordinary_reason: Optional[str] = None,
        known_house_ids: Iterable[str] = (),
    ) -> ValidationResult:
        """Validate the payment form."""
        issues = []

        if not house_id:
            issues.append(_missing("house_id", "Select the house making the payment"))
        elif house_id not in set(known_house_ids):
            issues.append(ValidationIssue(
                field="house_id",
                issue_type="not_found",
                message=f"House {house_id} does not exist",
                severity="error",
            ))
        elif user is not None and not user.is_admin and user.house_id != house_id:
            issues.append(ValidationIssue(
                field="house_id",
                issue_type="not_allowed",
                message="Residents can only register payments for their own house",
                severity="error",
                suggested_fix=f"Register the payment for {user.house_id}",
            ))

        if not is_valid_bank_reference(bank_reference):
            issues.append(ValidationIssue(
                field="bank_reference",
                issue_type="invalid_format",
                message="Bank reference must be exactly the last 6 digits",
                severity="error",
                suggested_fix="Copy the last 6 digits of the transfer reference",
            ))

        issues.extend(self._check_conversion(amount_bs, exchange_rate))

        try:
            payment_type = PaymentType(payment_type)
        except ValueError:
            issues.append(ValidationIssue(
                field="payment_type",
                issue_type="invalid_value",
                message=f"Unknown payment type: {payment_type!r}",
                severity="error",
                suggested_fix=", ".join(t.value for t in PaymentType),
            ))

        if payment_type == PaymentType.EXTRAORDINARY and not (
            extraordinary_reason and extraordinary_reason.strip()
        ):
            issues.append(_missing(
                "extraordinary_reason",
                "Extraordinary payments need a reason",
                "Describe what the extraordinary fee is for",
            ))

        return ValidationResult(entry="payment", issues=issues)

    def validate_expense(
        self,
        concept: Optional[str],
        category: Optional[str],
        amount_bs: NumberLike,
        exchange_rate: NumberLike,
    ) -> ValidationResult:
        """Validate the expense form."""
        issues = []

        if not concept or not concept.strip():
            issues.append(_missing("concept", "Describe what the expense was for"))

        try:
            ExpenseCategory(category)
        except ValueError:
            issues.append(ValidationIssue(
                field="category",
                issue_type="invalid_value",
                message=f"Unknown expense category: {category!r}",
                severity="error",
                suggested_fix=", ".join(c.value for c in ExpenseCategory),
            ))

        issues.extend(self._check_conversion(amount_bs, exchange_rate))

        return ValidationResult(entry="expense", issues=issues)

    def validate_suggestion(
        self,
        user: Optional[User],
        message: Optional[str],
    ) -> ValidationResult:
        issues = []

        if not message or not message.strip():
            issues.append(_missing("message", "The suggestion cannot be empty"))

        if user is not None and not user.is_admin and not user.house_id:
            issues.append(_missing("house_id", "Resident session has no house"))

        return ValidationResult(entry="suggestion", issues=issues)

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        Summarize a validation result for the form.

        This is what residents and the administrator see.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed."

        lines = []
        if result.has_errors:
            lines.append("❌ Please fix the following:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            lines.append("")
            lines.append("⚠️ Please verify:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
