import logging
from typing import Dict, List

from django.core.exceptions import ValidationError
from django.db import transaction

from ..exceptions import ConflictError, NotFoundError
from ..models import Account, Voucher, VoucherLine, VoucherStatus
from ..money import parse_amount, parse_positive_amount
from ..signals import ensure_voucher_deletable
from .common import clean_text, get_owned, require_fields, require_owner, to_date
from .numbering import next_number
from .payment import update_voucher_status

logger = logging.getLogger(__name__)

VOUCHER_HEADER_FIELDS = ("voucher_number", "voucher_date", "transaction_type", "total_amount")


def _clean_header(header: Dict) -> Dict:
    require_fields(header, VOUCHER_HEADER_FIELDS)
    total = parse_amount(header["total_amount"], "total_amount")
    if total < 0:
        raise ValidationError("total_amount cannot be negative")
    return {
        "voucher_number": clean_text(header, "voucher_number"),
        "voucher_date": to_date(header["voucher_date"], "voucher_date"),
        "transaction_type": clean_text(header, "transaction_type"),
        "description": clean_text(header, "description"),
        "total_amount": total,
    }


def _clean_lines(owner, lines) -> List[Dict]:
    if not lines:
        raise ValidationError("A voucher needs at least one line")
    account_ids = set()
    cleaned = []
    for line in lines:
        try:
            account_id = int(line.get("account_id"))
        except (TypeError, ValueError):
            raise ValidationError("Each voucher line needs an account_id")
        is_debit = line.get("is_debit")
        if not isinstance(is_debit, bool):
            raise ValidationError("Each voucher line needs is_debit true or false")
        cleaned.append(
            {
                "account_id": account_id,
                "is_debit": is_debit,
                "amount": parse_positive_amount(line.get("amount"), "amount"),
                "description": clean_text(line, "description"),
            }
        )
        account_ids.add(account_id)

    if Account.objects.for_owner(owner).filter(pk__in=account_ids).count() != len(account_ids):
        raise NotFoundError("One or more accounts were not found")
    return cleaned


def _check_unique_number(owner, number, exclude=None):
    qs = Voucher.objects.for_owner(owner).filter(voucher_number=number)
    if exclude is not None:
        qs = qs.exclude(pk=exclude)
    if qs.exists():
        raise ConflictError("Voucher number already exists")


def _write_lines(voucher, lines):
    for line in lines:
        VoucherLine.objects.create(voucher=voucher, **line)
    if not voucher.is_balanced():
        logger.warning(
            "voucher %s is unbalanced by %s", voucher.voucher_number, voucher.balance_difference()
        )


def create_voucher(owner, header: Dict, lines) -> Voucher:
    """Create a voucher and its lines as one unit. Starts Pending."""
    require_owner(owner)
    fields = _clean_header(header)
    lines = _clean_lines(owner, lines)

    with transaction.atomic():
        _check_unique_number(owner, fields["voucher_number"])
        voucher = Voucher(owner=owner, status=VoucherStatus.PENDING, **fields)
        voucher.full_clean()
        voucher.save()
        _write_lines(voucher, lines)

    logger.info("voucher %s created with %d line(s)", voucher.voucher_number, len(lines))
    return voucher


def update_voucher(owner, voucher_id, header: Dict, lines) -> Voucher:
    """Replace header and lines. Paid and void vouchers are frozen."""
    require_owner(owner)
    fields = _clean_header(header)
    lines = _clean_lines(owner, lines)

    with transaction.atomic():
        voucher = get_owned(
            Voucher, owner, voucher_id, "Voucher", queryset=Voucher.objects.select_for_update()
        )
        if voucher.status == VoucherStatus.PAID:
            raise ConflictError("Cannot modify a voucher that has been paid")
        if voucher.is_void:
            raise ConflictError("Cannot modify a void voucher")
        _check_unique_number(owner, fields["voucher_number"], exclude=voucher.pk)

        for name, value in fields.items():
            setattr(voucher, name, value)
        voucher.full_clean()
        voucher.save()
        voucher.lines.all().delete()
        _write_lines(voucher, lines)
        # total may have moved relative to what has been paid
        update_voucher_status(voucher.pk, owner)

    logger.info("voucher %s updated", voucher.voucher_number)
    voucher.refresh_from_db()
    return voucher


def delete_voucher(owner, voucher_id):
    require_owner(owner)
    voucher = get_owned(Voucher, owner, voucher_id, "Voucher")
    number = voucher.voucher_number
    ensure_voucher_deletable(voucher)
    voucher.delete()
    logger.info("voucher %s deleted", number)


def void_voucher(owner, voucher_id) -> Voucher:
    """Take a voucher out of every balance and report."""
    require_owner(owner)
    with transaction.atomic():
        voucher = get_owned(
            Voucher, owner, voucher_id, "Voucher", queryset=Voucher.objects.select_for_update()
        )
        if voucher.is_void:
            return voucher
        if voucher.payment_lines.exists():
            raise ConflictError("Cannot void a voucher that is used in payments")
        voucher.status = VoucherStatus.VOID
        voucher.save(update_fields=["status", "updated_at"])
    logger.info("voucher %s voided", voucher.voucher_number)
    return voucher


def next_voucher_number(owner) -> str:
    """V-00001, V-00002, ..."""
    require_owner(owner)
    return next_number(Voucher.objects.for_owner(owner), "voucher_number", "V-", 5)
