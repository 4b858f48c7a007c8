"""Dashboard and report read models."""

from thcontrol.reports.summary import (
    DashboardSummary,
    FinancialReport,
    HouseTotal,
    ReportFilter,
    ReportPeriod,
    build_dashboard,
    build_report,
    payments_by_house,
    visible_payments,
    visible_suggestions,
)

__all__ = [
    "DashboardSummary",
    "FinancialReport",
    "HouseTotal",
    "ReportFilter",
    "ReportPeriod",
    "build_dashboard",
    "build_report",
    "payments_by_house",
    "visible_payments",
    "visible_suggestions",
]
