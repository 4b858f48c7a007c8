"""
Read models for the dashboard and the reports tab.

All functions are pure: they take a snapshot and return new values,
never touching the store.

Date filters compare against the UTC calendar date of each record, the
same date the record carries in the remote document.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel, Field, model_validator

from thcontrol.models.condo import (
    AppSnapshot,
    Expense,
    Payment,
    Suggestion,
    SuggestionStatus,
)
from thcontrol.models.session import User


def _total(amounts: Iterable[Decimal]) -> Decimal:
    return sum(amounts, Decimal("0"))


def _utc_date_prefix(moment: datetime, fmt: str) -> str:
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime(fmt)


# =============================================================================
# DASHBOARD
# =============================================================================

class HouseTotal(BaseModel):
    """Amount paid by one house."""
    house_id: str
    name: str
    street: str
    paid: Decimal = Decimal("0")


class DashboardSummary(BaseModel):
    total_income: Decimal
    total_expenses: Decimal
    balance: Decimal
    house_count: int
    pending_suggestions: int
    houses: list[HouseTotal] = Field(default_factory=list)


def payments_by_house(
    snapshot: AppSnapshot,
    payments: Optional[Iterable[Payment]] = None,
    street: Optional[str] = None,
) -> list[HouseTotal]:
    """Total paid per house, in house-list order."""
    paid: dict[str, Decimal] = {}
    for payment in snapshot.payments if payments is None else payments:
        paid[payment.house_id] = paid.get(payment.house_id, Decimal("0")) + payment.amount

    return [
        HouseTotal(
            house_id=house.id,
            name=house.name,
            street=house.street,
            paid=paid.get(house.id, Decimal("0")),
        )
        for house in snapshot.houses
        if street is None or house.street == street
    ]


def build_dashboard(
    snapshot: AppSnapshot,
    street: Optional[str] = None,
) -> DashboardSummary:
    """
    Headline figures for the whole ledger.

    `street` only narrows the per-house list, never the totals.
    """
    income = _total(p.amount for p in snapshot.payments)
    expenses = _total(e.amount for e in snapshot.expenses)
    return DashboardSummary(
        total_income=income,
        total_expenses=expenses,
        balance=income - expenses,
        house_count=len(snapshot.houses),
        pending_suggestions=sum(
            1 for s in snapshot.suggestions if s.status == SuggestionStatus.PENDING
        ),
        houses=payments_by_house(snapshot, street=street),
    )


# =============================================================================
# REPORTS
# =============================================================================

class ReportPeriod(str, Enum):
    MONTH = "month"
    YEAR = "year"
    STREET = "street"


class ReportFilter(BaseModel):
    """
    Which slice of the ledger a report covers.

    month is 'YYYY-MM', year is 'YYYY'. The street filter applies to
    payments only; expenses belong to the whole condominium.
    """

    period: ReportPeriod = ReportPeriod.MONTH
    month: Optional[str] = Field(default=None, pattern=r"^\d{4}-\d{2}$")
    year: Optional[str] = Field(default=None, pattern=r"^\d{4}$")
    street: Optional[str] = None

    @model_validator(mode='after')
    def value_for_period(self) -> 'ReportFilter':
        if self.period == ReportPeriod.MONTH and not self.month:
            raise ValueError("A monthly report needs a month (YYYY-MM)")
        if self.period == ReportPeriod.YEAR and not self.year:
            raise ValueError("A yearly report needs a year (YYYY)")
        return self

    @property
    def label(self) -> str:
        if self.period == ReportPeriod.MONTH:
            return self.month
        if self.period == ReportPeriod.YEAR:
            return self.year
        return self.street or "Todas las calles"


class FinancialReport(BaseModel):
    filter: ReportFilter
    total_income: Decimal
    total_expenses: Decimal
    balance: Decimal
    expenses_by_category: dict[str, Decimal] = Field(default_factory=dict)
    payments_by_house: list[HouseTotal] = Field(default_factory=list)
    payment_count: int = 0
    expense_count: int = 0


def _in_period(moment: datetime, report_filter: ReportFilter) -> bool:
    if report_filter.period == ReportPeriod.MONTH:
        return _utc_date_prefix(moment, "%Y-%m") == report_filter.month
    if report_filter.period == ReportPeriod.YEAR:
        return _utc_date_prefix(moment, "%Y") == report_filter.year
    return True


def build_report(snapshot: AppSnapshot, report_filter: ReportFilter) -> FinancialReport:
    """Totals, balance, expenses per category and payments per house."""
    payments: list[Payment] = [
        p for p in snapshot.payments if _in_period(p.date, report_filter)
    ]
    expenses: list[Expense] = [
        e for e in snapshot.expenses if _in_period(e.date, report_filter)
    ]

    street = None
    if report_filter.period == ReportPeriod.STREET and report_filter.street:
        street = report_filter.street
        street_houses = {h.id for h in snapshot.houses if h.street == street}
        payments = [p for p in payments if p.house_id in street_houses]

    by_category: dict[str, Decimal] = {}
    for expense in expenses:
        key = expense.category.value
        by_category[key] = by_category.get(key, Decimal("0")) + expense.amount

    income = _total(p.amount for p in payments)
    spent = _total(e.amount for e in expenses)
    return FinancialReport(
        filter=report_filter,
        total_income=income,
        total_expenses=spent,
        balance=income - spent,
        expenses_by_category=by_category,
        payments_by_house=payments_by_house(snapshot, payments, street=street),
        payment_count=len(payments),
        expense_count=len(expenses),
    )


# =============================================================================
# ROLE-BASED VISIBILITY
# =============================================================================

def visible_payments(snapshot: AppSnapshot, user: Optional[User]) -> list[Payment]:
    """Admins see every payment, residents only their house's."""
    if user is None:
        return []
    if user.is_admin:
        return list(snapshot.payments)
    return [p for p in snapshot.payments if p.house_id == user.house_id]


def visible_suggestions(snapshot: AppSnapshot, user: Optional[User]) -> list[Suggestion]:
    if user is None:
        return []
    if user.is_admin:
        return list(snapshot.suggestions)
    return [s for s in snapshot.suggestions if s.house_id == user.house_id]
