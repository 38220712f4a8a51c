"""
Balance Engine.

Balances are computed from voucher lines inside a date window. Void
vouchers never contribute. Raw balances are ``debit - credit``; natural
balances flip the sign for credit-normal classes so the normal side reads
positive.
"""
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List, Optional

from django.core.exceptions import ValidationError
from django.db.models import Q, Sum

from ..models import Account, VoucherLine, VoucherStatus
from ..money import ZERO, quantize
from .classifier import AccountClass, classify, is_debit_normal, parse_account_class
from .common import get_owned, require_owner

logger = logging.getLogger(__name__)


@dataclass
class AccountActivity:
    """Debit and credit sums for one account over a window."""

    account_id: int
    account_number: str
    account_name: str
    account_type: str
    debit_total: Decimal
    credit_total: Decimal

    @property
    def account_class(self):
        return classify(self.account_type, self.account_number)

    @property
    def raw_balance(self):
        return self.debit_total - self.credit_total

    @property
    def natural_balance(self):
        return natural_sign(self.account_class, self.raw_balance)


@dataclass
class AccountBalance:
    account_id: int
    account_number: str
    account_name: str
    account_type: str
    account_class: str
    balance: Decimal

    def to_dict(self):
        return {
            "accountId": self.account_id,
            "accountNumber": self.account_number,
            "accountName": self.account_name,
            "accountType": self.account_type,
            "accountClass": str(self.account_class),
            "balance": self.balance,
        }


def natural_sign(account_class, raw_balance):
    """Debit-normal: debit - credit. Credit-normal: credit - debit."""
    return raw_balance if is_debit_normal(account_class) else -raw_balance


def ledger_lines(owner, *, until=None, since=None, after=None, before=None, account=None):
    """Owner's non-void voucher lines with voucher_date in the window.

    Lower bounds: ``since`` inclusive, ``after`` exclusive. Upper bounds:
    ``until`` inclusive, ``before`` exclusive.
    """
    require_owner(owner)
    qs = VoucherLine.objects.for_owner(owner).exclude(voucher__status=VoucherStatus.VOID)
    if until is not None:
        qs = qs.filter(voucher__voucher_date__lte=until)
    if since is not None:
        qs = qs.filter(voucher__voucher_date__gte=since)
    if after is not None:
        qs = qs.filter(voucher__voucher_date__gt=after)
    if before is not None:
        qs = qs.filter(voucher__voucher_date__lt=before)
    if account is not None:
        qs = qs.filter(account=account)
    return qs


def _sum_sides(lines):
    aggs = lines.aggregate(
        debit=Sum("amount", filter=Q(is_debit=True)),
        credit=Sum("amount", filter=Q(is_debit=False)),
    )
    return quantize(aggs["debit"]), quantize(aggs["credit"])


def raw_balance(owner, *, until=None, since=None, after=None, before=None, account=None) -> Decimal:
    debit, credit = _sum_sides(
        ledger_lines(owner, until=until, since=since, after=after, before=before, account=account)
    )
    return debit - credit


def account_activity(owner, *, until=None, since=None, after=None) -> List[AccountActivity]:
    """Per-account debit/credit sums in one grouped query, ordered by number."""
    rows = (
        ledger_lines(owner, until=until, since=since, after=after)
        .values(
            "account_id",
            "account__account_number",
            "account__name",
            "account__account_type",
        )
        .annotate(
            debit=Sum("amount", filter=Q(is_debit=True)),
            credit=Sum("amount", filter=Q(is_debit=False)),
        )
        .order_by("account__account_number", "account_id")
    )
    return [
        AccountActivity(
            account_id=r["account_id"],
            account_number=r["account__account_number"],
            account_name=r["account__name"],
            account_type=r["account__account_type"],
            debit_total=quantize(r["debit"]),
            credit_total=quantize(r["credit"]),
        )
        for r in rows
    ]


def resolve_account_class(value):
    account_class = value if isinstance(value, AccountClass) else parse_account_class(value)
    if account_class is None:
        raise ValidationError(f"Unknown account type: {value}")
    return account_class


def _check_window(as_of_date: date, from_date: Optional[date]):
    if from_date is not None and from_date > as_of_date:
        raise ValidationError("From date cannot be later than as-of date")


def compute_balance(owner, *, account=None, account_type=None, as_of_date, from_date=None) -> Decimal:
    """
    Natural-sign balance of one account, or of every account in one
    class, over (from_date, as_of_date].
    """
    require_owner(owner)
    if (account is None) == (account_type is None):
        raise ValidationError("Pass exactly one of account or account_type")
    _check_window(as_of_date, from_date)

    if account is not None:
        if not isinstance(account, Account):
            account = get_owned(Account, owner, account, "Account")
        raw = raw_balance(owner, until=as_of_date, after=from_date, account=account)
        return natural_sign(account.account_class, raw)

    account_class = resolve_account_class(account_type)
    total = ZERO
    for act in account_activity(owner, until=as_of_date, after=from_date):
        if act.account_class == account_class:
            total += act.natural_balance
    return total


def account_balances(owner, account_type, as_of_date, from_date=None) -> List[AccountBalance]:
    """
    One row per account of ``account_type``. Point-in-time queries drop
    zero balances; period queries (``from_date`` given) keep every
    account of the class, including ones with no movement.
    """
    require_owner(owner)
    _check_window(as_of_date, from_date)
    account_class = resolve_account_class(account_type)

    activity = {a.account_id: a for a in account_activity(owner, until=as_of_date, after=from_date)}
    rows = []
    for account in Account.objects.for_owner(owner).order_by("account_number", "id"):
        if account.account_class != account_class:
            continue
        act = activity.get(account.pk)
        balance = natural_sign(account_class, act.raw_balance) if act else ZERO
        if balance == ZERO and from_date is None:
            continue
        rows.append(
            AccountBalance(
                account_id=account.pk,
                account_number=account.account_number,
                account_name=account.name,
                account_type=account.account_type,
                account_class=account_class,
                balance=balance,
            )
        )
    logger.debug(
        "account balances owner=%s class=%s as_of=%s from=%s rows=%d",
        getattr(owner, "pk", owner), account_class, as_of_date, from_date, len(rows),
    )
    return rows
