from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional

from ..models import Account
from ..money import ZERO
from ..services.balances import ledger_lines
from ..services.common import get_owned, require_owner, validate_date_range
from .base import Report


@dataclass
class GeneralLedgerEntry(Report):
    date: date
    voucher_id: int
    voucher_number: str
    account_id: int
    account_number: str
    account_name: str
    description: str
    debit_amount: Decimal
    credit_amount: Decimal
    balance: Decimal


@dataclass
class GeneralLedgerReport(Report):
    from_date: date
    to_date: date
    account_id: Optional[int]
    entries: List[GeneralLedgerEntry] = field(default_factory=list)
    total_debits: Decimal = ZERO
    total_credits: Decimal = ZERO


def general_ledger(owner, from_date, to_date, account_id=None) -> GeneralLedgerReport:
    """
    Every non-void line in [from_date, to_date] in posting order, with a
    running ``debit - credit`` total that starts at zero. This is a raw
    listing, so the running total is never seeded with an opening balance.
    """
    require_owner(owner)
    validate_date_range(from_date, to_date)
    account = get_owned(Account, owner, account_id, "Account") if account_id is not None else None

    lines = (
        ledger_lines(owner, since=from_date, until=to_date, account=account)
        .select_related("voucher", "account")
        .order_by("voucher__voucher_date", "voucher_id", "id")
    )

    report = GeneralLedgerReport(
        from_date=from_date, to_date=to_date, account_id=account.pk if account else None
    )
    running = ZERO
    for line in lines:
        running += line.signed_amount
        report.total_debits += line.debit_amount
        report.total_credits += line.credit_amount
        report.entries.append(
            GeneralLedgerEntry(
                date=line.voucher.voucher_date,
                voucher_id=line.voucher_id,
                voucher_number=line.voucher.voucher_number,
                account_id=line.account_id,
                account_number=line.account.account_number,
                account_name=line.account.name,
                description=line.description or line.voucher.description,
                debit_amount=line.debit_amount,
                credit_amount=line.credit_amount,
                balance=running,
            )
        )
    return report
