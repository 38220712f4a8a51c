import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional

from django.core.exceptions import ValidationError

from ..money import ZERO
from ..services.balances import account_activity
from ..services.classifier import AccountClass, ExpenseCategory, expense_category
from ..services.common import require_owner, validate_date_range
from .base import Report, shift_year

logger = logging.getLogger(__name__)

MAX_RANGE_DAYS = 3650
PREVIOUS_PERIOD = "previous-period"
PREVIOUS_YEAR = "previous-year"


@dataclass
class StatementRow(Report):
    account_id: int
    account_number: str
    account_name: str
    account_type: str
    amount: Decimal


@dataclass
class IncomeStatementReport(Report):
    from_date: date
    to_date: date
    revenues: List[StatementRow] = field(default_factory=list)
    expenses: List[StatementRow] = field(default_factory=list)
    total_revenue: Decimal = ZERO
    total_expenses: Decimal = ZERO

    extra_fields = ("net_income",)

    @property
    def net_income(self):
        return self.total_revenue - self.total_expenses


@dataclass
class PeriodComparison(Report):
    type: str
    from_date: date
    to_date: date
    total_revenue: Decimal
    total_expenses: Decimal
    net_income: Decimal


@dataclass
class ProfitLossReport(IncomeStatementReport):
    cost_of_sales: Decimal = ZERO
    operating_expenses: Decimal = ZERO
    comparison: Optional[PeriodComparison] = None

    extra_fields = ("net_income", "gross_profit", "operating_income")

    @property
    def gross_profit(self):
        return self.total_revenue - self.cost_of_sales

    @property
    def operating_income(self):
        return self.gross_profit - self.operating_expenses


def _collect(owner, from_date, to_date, report):
    """Fill revenue/expense rows; only strictly positive amounts become rows."""
    for act in account_activity(owner, since=from_date, until=to_date):
        account_class = act.account_class
        if account_class == AccountClass.REVENUE:
            amount, rows = act.credit_total - act.debit_total, report.revenues
        elif account_class == AccountClass.EXPENSE:
            amount, rows = act.debit_total - act.credit_total, report.expenses
        else:
            continue
        if amount <= ZERO:
            continue
        rows.append(
            StatementRow(
                account_id=act.account_id,
                account_number=act.account_number,
                account_name=act.account_name,
                account_type=act.account_type,
                amount=amount,
            )
        )
        if account_class == AccountClass.REVENUE:
            report.total_revenue += amount
        else:
            report.total_expenses += amount
    return report


def income_statement(owner, from_date, to_date) -> IncomeStatementReport:
    require_owner(owner)
    validate_date_range(from_date, to_date)
    return _collect(owner, from_date, to_date, IncomeStatementReport(from_date, to_date))


def comparison_window(kind, from_date, to_date):
    """Dates of the comparison period, or None for an unsupported kind."""
    kind = (kind or "").strip().lower()
    if kind == PREVIOUS_PERIOD:
        comp_to = from_date - timedelta(days=1)
        return kind, comp_to - (to_date - from_date), comp_to
    if kind == PREVIOUS_YEAR:
        return kind, shift_year(from_date), shift_year(to_date)
    return None


def profit_loss(owner, from_date, to_date, comparison=None) -> ProfitLossReport:
    """
    Income statement plus gross profit / operating income, optionally
    side by side with an earlier period. An unsupported comparison kind
    (including "budget") leaves ``comparison`` empty instead of failing.
    """
    require_owner(owner)
    validate_date_range(from_date, to_date)
    if (to_date - from_date).days > MAX_RANGE_DAYS:
        raise ValidationError("Date range cannot exceed 10 years")

    report = _collect(owner, from_date, to_date, ProfitLossReport(from_date, to_date))
    for row in report.expenses:
        category = expense_category(row.account_name, row.account_number)
        if category == ExpenseCategory.COST_OF_SALES:
            report.cost_of_sales += row.amount
        elif category == ExpenseCategory.OPERATING:
            report.operating_expenses += row.amount

    if comparison:
        window = comparison_window(comparison, from_date, to_date)
        if window is None:
            logger.warning("Unsupported comparison type %r; report returned without comparison", comparison)
        else:
            kind, comp_from, comp_to = window
            prior = income_statement(owner, comp_from, comp_to)
            report.comparison = PeriodComparison(
                type=kind,
                from_date=comp_from,
                to_date=comp_to,
                total_revenue=prior.total_revenue,
                total_expenses=prior.total_expenses,
                net_income=prior.net_income,
            )
    return report
