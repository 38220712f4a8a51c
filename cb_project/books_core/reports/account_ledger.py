from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List

from ..models import Account
from ..money import ZERO
from ..services.balances import ledger_lines, raw_balance
from ..services.common import get_owned, require_owner, validate_date_range
from .base import Report


@dataclass
class AccountLedgerEntry(Report):
    date: date
    voucher_id: int
    voucher_number: str
    description: str
    debit_amount: Decimal
    credit_amount: Decimal
    balance: Decimal


@dataclass
class AccountLedgerReport(Report):
    account_id: int
    account_number: str
    account_name: str
    account_type: str
    from_date: date
    to_date: date
    opening_balance: Decimal = ZERO
    closing_balance: Decimal = ZERO
    entries: List[AccountLedgerEntry] = field(default_factory=list)


def account_ledger(owner, account_id, from_date, to_date) -> AccountLedgerReport:
    """
    Statement of one account. The opening balance is the raw
    ``debit - credit`` of everything dated before ``from_date`` (no sign
    flip for credit-normal accounts); each entry moves the running total.
    """
    require_owner(owner)
    validate_date_range(from_date, to_date)
    account = get_owned(Account, owner, account_id, "Account")

    opening = raw_balance(owner, before=from_date, account=account)
    report = AccountLedgerReport(
        account_id=account.pk,
        account_number=account.account_number,
        account_name=account.name,
        account_type=account.account_type,
        from_date=from_date,
        to_date=to_date,
        opening_balance=opening,
    )

    running = opening
    lines = (
        ledger_lines(owner, since=from_date, until=to_date, account=account)
        .select_related("voucher")
        .order_by("voucher__voucher_date", "voucher_id", "id")
    )
    for line in lines:
        running += line.signed_amount
        report.entries.append(
            AccountLedgerEntry(
                date=line.voucher.voucher_date,
                voucher_id=line.voucher_id,
                voucher_number=line.voucher.voucher_number,
                description=line.description or line.voucher.description,
                debit_amount=line.debit_amount,
                credit_amount=line.credit_amount,
                balance=running,
            )
        )
    report.closing_balance = running
    return report
