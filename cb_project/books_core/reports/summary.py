"""
Dashboard summaries built on the balance engine.

Monthly windows are whole calendar months ending with the month that
contains ``today``. Period totals pass the day before the window as the
engine's exclusive ``from_date``.
"""
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional

from django.core.exceptions import ValidationError
from django.db.models import Sum

from ..models import Voucher, VoucherStatus
from ..money import ZERO, quantize
from ..services.balances import account_balances, resolve_account_class
from ..services.classifier import STATEMENT_CLASSES, AccountClass
from ..services.common import require_owner, validate_date_range
from .base import Report, add_months, month_end, month_start, shift_year

METRIC_COUNT = "count"
METRIC_AMOUNT = "amount"
MAX_MONTHS = 120
MAX_TOP_ACCOUNTS = 100


@dataclass
class FinancialOverview(Report):
    as_of_date: date
    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal
    net_income: Decimal


@dataclass
class ClassTotal(Report):
    account_type: str
    balance: Decimal


@dataclass
class AccountDistribution(Report):
    as_of_date: date
    distribution: List[ClassTotal] = field(default_factory=list)


@dataclass
class MonthlyPoint(Report):
    month: str
    revenue: Decimal
    expenses: Decimal
    net_income: Decimal


@dataclass
class CashFlowPoint(Report):
    month: str
    inflow: Decimal
    outflow: Decimal
    net_flow: Decimal


@dataclass
class TopAccount(Report):
    account_id: int
    account_number: str
    account_name: str
    balance: Decimal


@dataclass
class TopAccounts(Report):
    account_type: str
    top_accounts: List[TopAccount] = field(default_factory=list)


@dataclass
class VolumePoint(Report):
    month: str
    value: Decimal


@dataclass
class TransactionVolume(Report):
    metric: str
    volume_points: List[VolumePoint] = field(default_factory=list)


@dataclass
class PeriodSummary(Report):
    revenue: Decimal
    expenses: Decimal
    net_income: Decimal
    assets: Decimal


@dataclass
class FinancialSummary(Report):
    from_date: date
    to_date: date
    current_period: PeriodSummary
    previous_period: PeriodSummary


@dataclass
class BalanceSheetSummary(Report):
    as_of_date: date
    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal


@dataclass
class Dashboard(Report):
    financial_overview: FinancialOverview
    account_distribution: AccountDistribution
    monthly_trends: List[MonthlyPoint]
    cash_flow: List[CashFlowPoint]
    top_accounts: TopAccounts
    transaction_volume: TransactionVolume
    balance_sheet_summary: BalanceSheetSummary
    financial_summary: FinancialSummary


def _check_count(value, upper, name):
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a whole number")
    if not 1 <= value <= upper:
        raise ValidationError(f"{name} must be between 1 and {upper}")
    return value


def _class_total(owner, account_class, as_of_date, from_date=None):
    return sum((r.balance for r in account_balances(owner, account_class, as_of_date, from_date)), ZERO)


def _period_total(owner, account_class, start, end):
    # inclusive [start, end]
    return _class_total(owner, account_class, end, start - timedelta(days=1))


def _month_windows(today, months):
    first = month_start(today)
    for offset in range(months - 1, -1, -1):
        start = add_months(first, -offset)
        yield start, month_end(start)


def _label(day):
    return day.strftime("%b %Y")


def financial_overview(owner, as_of_date) -> FinancialOverview:
    """Balance-sheet totals, with year-to-date earnings folded into equity."""
    require_owner(owner)
    start_of_year = date(as_of_date.year, 1, 1)
    net_income = _period_total(owner, AccountClass.REVENUE, start_of_year, as_of_date) - _period_total(
        owner, AccountClass.EXPENSE, start_of_year, as_of_date
    )
    return FinancialOverview(
        as_of_date=as_of_date,
        total_assets=_class_total(owner, AccountClass.ASSET, as_of_date),
        total_liabilities=_class_total(owner, AccountClass.LIABILITY, as_of_date),
        total_equity=_class_total(owner, AccountClass.EQUITY, as_of_date) + net_income,
        net_income=net_income,
    )


def account_distribution(owner, as_of_date) -> AccountDistribution:
    require_owner(owner)
    report = AccountDistribution(as_of_date=as_of_date)
    for account_class in STATEMENT_CLASSES:
        total = sum((abs(r.balance) for r in account_balances(owner, account_class, as_of_date)), ZERO)
        if total > ZERO:
            report.distribution.append(ClassTotal(account_type=account_class.value, balance=total))
    return report


def monthly_trends(owner, months=12, today=None) -> List[MonthlyPoint]:
    require_owner(owner)
    months = _check_count(months, MAX_MONTHS, "months")
    today = today or date.today()
    points = []
    for start, end in _month_windows(today, months):
        revenue = _period_total(owner, AccountClass.REVENUE, start, end)
        expenses = _period_total(owner, AccountClass.EXPENSE, start, end)
        points.append(MonthlyPoint(_label(start), revenue, expenses, revenue - expenses))
    return points


def cash_flow(owner, months=6, today=None) -> List[CashFlowPoint]:
    """Approximate cash movement: revenue in, expenses out."""
    return [
        CashFlowPoint(month=p.month, inflow=p.revenue, outflow=p.expenses, net_flow=p.net_income)
        for p in monthly_trends(owner, months, today)
    ]


def top_accounts(owner, account_type="Expense", count=10, as_of_date=None) -> TopAccounts:
    require_owner(owner)
    count = _check_count(count, MAX_TOP_ACCOUNTS, "count")
    account_class = resolve_account_class(account_type)
    rows = account_balances(owner, account_class, as_of_date or date.today())
    rows.sort(key=lambda r: abs(r.balance), reverse=True)
    return TopAccounts(
        account_type=account_class.value,
        top_accounts=[
            TopAccount(r.account_id, r.account_number, r.account_name, abs(r.balance))
            for r in rows[:count]
        ],
    )


def transaction_volume(owner, months=12, metric=METRIC_COUNT, today=None) -> TransactionVolume:
    """Non-void vouchers per month, counted or summed by total amount."""
    require_owner(owner)
    months = _check_count(months, MAX_MONTHS, "months")
    metric = (metric or METRIC_COUNT).strip().lower()
    if metric not in (METRIC_COUNT, METRIC_AMOUNT):
        raise ValidationError("metric must be 'count' or 'amount'")
    today = today or date.today()

    vouchers = Voucher.objects.for_owner(owner).exclude(status=VoucherStatus.VOID)
    report = TransactionVolume(metric=metric)
    for start, end in _month_windows(today, months):
        in_month = vouchers.filter(voucher_date__gte=start, voucher_date__lte=end)
        if metric == METRIC_COUNT:
            value = Decimal(in_month.count())
        else:
            value = quantize(in_month.aggregate(total=Sum("total_amount"))["total"])
        report.volume_points.append(VolumePoint(_label(start), value))
    return report


def balance_sheet_summary(owner, as_of_date) -> BalanceSheetSummary:
    require_owner(owner)
    return BalanceSheetSummary(
        as_of_date=as_of_date,
        total_assets=_class_total(owner, AccountClass.ASSET, as_of_date),
        total_liabilities=_class_total(owner, AccountClass.LIABILITY, as_of_date),
        total_equity=_class_total(owner, AccountClass.EQUITY, as_of_date),
    )


def _period_summary(owner, from_date, to_date):
    revenue = _period_total(owner, AccountClass.REVENUE, from_date, to_date)
    expenses = _period_total(owner, AccountClass.EXPENSE, from_date, to_date)
    return PeriodSummary(
        revenue=revenue,
        expenses=expenses,
        net_income=revenue - expenses,
        assets=_class_total(owner, AccountClass.ASSET, to_date),
    )


def financial_summary(owner, from_date, to_date) -> FinancialSummary:
    """Current period against the same dates one year earlier."""
    require_owner(owner)
    validate_date_range(from_date, to_date)
    return FinancialSummary(
        from_date=from_date,
        to_date=to_date,
        current_period=_period_summary(owner, from_date, to_date),
        previous_period=_period_summary(owner, shift_year(from_date), shift_year(to_date)),
    )


def dashboard(owner, today: Optional[date] = None) -> Dashboard:
    require_owner(owner)
    today = today or date.today()
    return Dashboard(
        financial_overview=financial_overview(owner, today),
        account_distribution=account_distribution(owner, today),
        monthly_trends=monthly_trends(owner, 12, today),
        cash_flow=cash_flow(owner, 6, today),
        top_accounts=top_accounts(owner, AccountClass.EXPENSE, 10, today),
        transaction_volume=transaction_volume(owner, 12, METRIC_COUNT, today),
        balance_sheet_summary=balance_sheet_summary(owner, today),
        financial_summary=financial_summary(owner, date(today.year, 1, 1), today),
    )
