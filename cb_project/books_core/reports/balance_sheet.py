from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional

from ..money import ZERO
from ..services.balances import account_activity
from ..services.classifier import AccountClass
from ..services.common import require_owner
from .base import Report, amounts_match

CURRENT_EARNINGS = "Current Earnings"


@dataclass
class BalanceSheetRow(Report):
    account_id: Optional[int]
    account_number: str
    account_name: str
    account_type: str
    amount: Decimal


@dataclass
class BalanceSheetReport(Report):
    as_of_date: date
    assets: List[BalanceSheetRow] = field(default_factory=list)
    liabilities: List[BalanceSheetRow] = field(default_factory=list)
    equity: List[BalanceSheetRow] = field(default_factory=list)
    total_assets: Decimal = ZERO
    total_liabilities: Decimal = ZERO
    total_equity: Decimal = ZERO
    # revenue - expenses not yet closed to an equity account
    current_earnings: Decimal = ZERO

    extra_fields = ("is_balanced",)

    @property
    def is_balanced(self):
        return amounts_match(self.total_assets, self.total_liabilities + self.total_equity)


def _credit_side(balance):
    # normal credit balances (negative debit - credit) show as positive
    return -balance


def balance_sheet(owner, as_of_date) -> BalanceSheetReport:
    """
    Position at ``as_of_date``. Per account balance is ``debit - credit``;
    assets show it as-is, liabilities and equity show it credit-positive.
    Revenue and expense activity that has not been closed into equity is
    carried as a "Current Earnings" equity line so the sheet balances.
    """
    require_owner(owner)
    report = BalanceSheetReport(as_of_date=as_of_date)

    for act in account_activity(owner, until=as_of_date):
        balance = act.raw_balance
        if balance == ZERO:
            continue
        account_class = act.account_class
        if account_class == AccountClass.ASSET:
            rows, amount = report.assets, balance
        elif account_class == AccountClass.LIABILITY:
            rows, amount = report.liabilities, _credit_side(balance)
        elif account_class == AccountClass.EQUITY:
            rows, amount = report.equity, _credit_side(balance)
        elif account_class in (AccountClass.REVENUE, AccountClass.EXPENSE):
            report.current_earnings -= balance
            continue
        else:
            continue
        rows.append(
            BalanceSheetRow(
                account_id=act.account_id,
                account_number=act.account_number,
                account_name=act.account_name,
                account_type=act.account_type,
                amount=amount,
            )
        )

    if report.current_earnings != ZERO:
        report.equity.append(
            BalanceSheetRow(
                account_id=None,
                account_number="",
                account_name=CURRENT_EARNINGS,
                account_type="Equity",
                amount=report.current_earnings,
            )
        )

    report.total_assets = sum((r.amount for r in report.assets), ZERO)
    report.total_liabilities = sum((r.amount for r in report.liabilities), ZERO)
    report.total_equity = sum((r.amount for r in report.equity), ZERO)
    return report
