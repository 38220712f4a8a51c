from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List

from ..money import ZERO
from ..services.balances import account_activity
from ..services.common import require_owner
from .base import Report, amounts_match


@dataclass
class TrialBalanceRow(Report):
    account_id: int
    account_number: str
    account_name: str
    account_type: str
    debit_balance: Decimal
    credit_balance: Decimal


@dataclass
class TrialBalanceReport(Report):
    as_of_date: date
    entries: List[TrialBalanceRow] = field(default_factory=list)
    total_debits: Decimal = ZERO
    total_credits: Decimal = ZERO

    extra_fields = ("is_balanced",)

    @property
    def is_balanced(self):
        return amounts_match(self.total_debits, self.total_credits)


def trial_balance(owner, as_of_date) -> TrialBalanceReport:
    """Net balance per account up to ``as_of_date``, split into a debit
    column and a credit column. Only one column is ever nonzero."""
    require_owner(owner)
    report = TrialBalanceReport(as_of_date=as_of_date)
    for act in account_activity(owner, until=as_of_date):
        net = act.raw_balance
        if net == ZERO:
            continue
        row = TrialBalanceRow(
            account_id=act.account_id,
            account_number=act.account_number,
            account_name=act.account_name,
            account_type=act.account_type,
            debit_balance=net if net > ZERO else ZERO,
            credit_balance=-net if net < ZERO else ZERO,
        )
        report.total_debits += row.debit_balance
        report.total_credits += row.credit_balance
        report.entries.append(row)
    return report
