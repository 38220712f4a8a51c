import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Q, Sum

from ..exceptions import ConflictError, NotFoundError
from ..models import (Account, Payment, PaymentAttachment, PaymentLine,
                      PaymentStatus, Voucher, VoucherStatus)
from ..money import ZERO, parse_positive_amount, quantize
from ..reports.base import Report
from .common import (clean_text, get_owned, require_fields, require_owner,
                     to_date)
from .numbering import next_number

logger = logging.getLogger(__name__)

PAYMENT_HEADER_FIELDS = (
    "payment_number", "payment_date", "payee_name", "payment_method", "account_id", "total_amount",
)
PENDING_LIMIT = 50


# ----------------------------
# Voucher status state machine
# ----------------------------
def voucher_status_for(total_amount: Decimal, paid_total: Decimal) -> str:
    """Pure function of (total, paid): the only source of voucher status."""
    if paid_total >= total_amount:
        return VoucherStatus.PAID
    if paid_total > ZERO:
        return VoucherStatus.PARTIALLY_PAID
    return VoucherStatus.PENDING


def paid_total(voucher) -> Decimal:
    """Sum of allocations from payments that are actually Paid."""
    total = PaymentLine.objects.filter(
        voucher=voucher, payment__status=PaymentStatus.PAID
    ).aggregate(total=Sum("amount_paid"))["total"]
    return quantize(total)


def remaining_amount(voucher) -> Decimal:
    return voucher.total_amount - paid_total(voucher)


def update_voucher_status(voucher_id, owner) -> str:
    """Recompute and persist one voucher's status. Idempotent; void
    vouchers stay void."""
    voucher = get_owned(Voucher, owner, voucher_id, "Voucher")
    if voucher.is_void:
        return voucher.status
    status = voucher_status_for(voucher.total_amount, paid_total(voucher))
    if status != voucher.status:
        logger.info("voucher %s status %s -> %s", voucher.voucher_number, voucher.status, status)
        voucher.status = status
        voucher.save(update_fields=["status", "updated_at"])
    return status


def _recompute(owner, voucher_ids: Iterable[int]):
    for voucher_id in sorted(set(voucher_ids)):
        update_voucher_status(voucher_id, owner)


# ----------------------------
# Payment-related workflows
# ----------------------------
def _clean_header(header: Dict) -> Dict:
    require_fields(header, PAYMENT_HEADER_FIELDS)
    raw_status = clean_text(header, "status") or PaymentStatus.DRAFT
    status = {v.lower(): v for v in PaymentStatus.values}.get(raw_status.lower())
    if status is None:
        raise ValidationError(f"Invalid payment status: {raw_status}")
    return {
        "payment_number": clean_text(header, "payment_number"),
        "payment_date": to_date(header["payment_date"], "payment_date"),
        "payee_name": clean_text(header, "payee_name"),
        "payment_method": clean_text(header, "payment_method"),
        "account_id": header["account_id"],
        "total_amount": parse_positive_amount(header["total_amount"], "total_amount"),
        "reference_number": clean_text(header, "reference_number"),
        "description": clean_text(header, "description"),
        "status": status,
    }


def _clean_lines(lines) -> List[Dict]:
    cleaned = []
    for line in lines or ():
        voucher_id = line.get("voucher_id")
        try:
            voucher_id = int(voucher_id)
        except (TypeError, ValueError):
            raise ValidationError("Each payment line needs a voucher_id")
        amount = line.get("amount", line.get("amount_paid"))
        cleaned.append({"voucher_id": voucher_id, "amount": parse_positive_amount(amount, "amount")})
    return cleaned


def _check_unique_number(owner, number, exclude=None):
    qs = Payment.objects.for_owner(owner).filter(payment_number=number)
    if exclude is not None:
        qs = qs.exclude(pk=exclude)
    if qs.exists():
        raise ConflictError("Payment number already exists")


def _lock_vouchers(owner, voucher_ids) -> Dict[int, Voucher]:
    """Lock referenced voucher rows until the transaction ends, so two
    payments can't both pass the fully-paid check for the same voucher."""
    ids = sorted(set(voucher_ids))
    if not ids:
        return {}
    vouchers = {
        v.pk: v
        for v in Voucher.objects.for_owner(owner).select_for_update().filter(pk__in=ids).order_by("pk")
    }
    if len(vouchers) != len(ids):
        raise NotFoundError("One or more vouchers were not found")
    return vouchers


def _check_payable(vouchers: Dict[int, Voucher]):
    for voucher in vouchers.values():
        if voucher.is_void:
            raise ConflictError(f"Voucher {voucher.voucher_number} is void")
        if paid_total(voucher) >= voucher.total_amount:
            raise ConflictError(f"Voucher {voucher.voucher_number} is already fully paid")


def _create_lines(payment, lines, vouchers):
    for line in lines:
        PaymentLine.objects.create(
            payment=payment,
            voucher=vouchers[line["voucher_id"]],
            amount_paid=line["amount"],
        )


def _save_attachments(payment, attachments, stored=None):
    for upload in attachments or ():
        attachment = PaymentAttachment(
            payment=payment,
            file_name=upload.name,
            file_type=getattr(upload, "content_type", "") or "",
        )
        attachment.file.save(upload.name, upload, save=True)
        if stored is not None:
            stored.append(attachment.file)


@contextmanager
def _discard_files_on_failure():
    """Files written inside a failed transaction are not rolled back with
    their rows, so remove them before re-raising."""
    stored = []
    try:
        yield stored
    except Exception:
        for field_file in stored:
            logger.warning("removing orphaned attachment %s", field_file.name)
            field_file.storage.delete(field_file.name)
        raise


def record_payment(owner, header: Dict, lines=(), attachments=()) -> Payment:
    """
    Record a payment with its voucher allocations and attachments.
    Everything is validated before the first write, and the whole
    unit rolls back if any step fails.
    """
    require_owner(owner)
    fields = _clean_header(header)
    lines = _clean_lines(lines)

    with _discard_files_on_failure() as stored, transaction.atomic():
        _check_unique_number(owner, fields["payment_number"])
        fields["account"] = get_owned(Account, owner, fields.pop("account_id"), "Account")
        vouchers = _lock_vouchers(owner, (line["voucher_id"] for line in lines))
        _check_payable(vouchers)

        payment = Payment(owner=owner, **fields)
        payment.full_clean()
        payment.save()
        _create_lines(payment, lines, vouchers)
        _save_attachments(payment, attachments, stored)
        _recompute(owner, vouchers)

    logger.info(
        "payment %s recorded: %s to %s, %d line(s), status %s",
        payment.payment_number, payment.total_amount, payment.payee_name, len(lines), payment.status,
    )
    return payment


def update_payment(owner, payment_id, header: Dict, lines=(), attachments=()) -> Payment:
    """Replace a draft payment's header and allocations. Paid payments
    are final."""
    require_owner(owner)
    fields = _clean_header(header)
    lines = _clean_lines(lines)

    with _discard_files_on_failure() as stored, transaction.atomic():
        payment = get_owned(
            Payment, owner, payment_id, "Payment", queryset=Payment.objects.select_for_update()
        )
        if payment.is_paid:
            raise ConflictError("Cannot modify a payment that has already been processed")
        _check_unique_number(owner, fields["payment_number"], exclude=payment.pk)
        account = get_owned(Account, owner, fields.pop("account_id"), "Account")

        # release the old allocations first
        released = list(payment.lines.values_list("voucher_id", flat=True))
        payment.lines.all().delete()
        _recompute(owner, released)

        vouchers = _lock_vouchers(owner, (line["voucher_id"] for line in lines))
        _check_payable(vouchers)

        for name, value in fields.items():
            setattr(payment, name, value)
        payment.account = account
        payment.full_clean()
        payment.save()
        _create_lines(payment, lines, vouchers)
        _save_attachments(payment, attachments, stored)
        _recompute(owner, vouchers)

    logger.info("payment %s updated: %d line(s), status %s", payment.payment_number, len(lines), payment.status)
    return payment


def delete_payment(owner, payment_id):
    require_owner(owner)
    with transaction.atomic():
        payment = get_owned(
            Payment, owner, payment_id, "Payment", queryset=Payment.objects.select_for_update()
        )
        if payment.is_paid:
            raise ConflictError("Cannot delete a payment that has already been processed")
        released = list(payment.lines.values_list("voucher_id", flat=True))
        number = payment.payment_number
        for attachment in payment.attachments.all():
            attachment.file.delete(save=False)
        payment.delete()
        _recompute(owner, released)
    logger.info("payment %s deleted", number)


def next_payment_number(owner, on_date: date = None) -> str:
    """PMT-YYYYMMDD-NNN, numbered per day."""
    require_owner(owner)
    on_date = on_date or date.today()
    return next_number(Payment.objects.for_owner(owner), "payment_number", f"PMT-{on_date:%Y%m%d}-", 3)


@dataclass
class PendingVoucher(Report):
    voucher_id: int
    voucher_number: str
    voucher_date: date
    description: str
    total_amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    status: str


def pending_vouchers(owner, search="") -> List[PendingVoucher]:
    """Vouchers that can still take a payment, oldest first."""
    require_owner(owner)
    qs = (
        Voucher.objects.for_owner(owner)
        .exclude(status__in=[VoucherStatus.PAID, VoucherStatus.VOID])
        .annotate(
            paid=Sum(
                "payment_lines__amount_paid",
                filter=Q(payment_lines__payment__status=PaymentStatus.PAID),
            )
        )
        .order_by("voucher_date", "pk")
    )
    search = (search or "").strip()
    if search:
        qs = qs.filter(Q(voucher_number__icontains=search) | Q(description__icontains=search))

    pending = []
    for voucher in qs:
        paid = quantize(voucher.paid)
        remaining = voucher.total_amount - paid
        if remaining <= ZERO:
            continue
        pending.append(
            PendingVoucher(
                voucher_id=voucher.pk,
                voucher_number=voucher.voucher_number,
                voucher_date=voucher.voucher_date,
                description=voucher.description,
                total_amount=voucher.total_amount,
                paid_amount=paid,
                remaining_amount=remaining,
                status=voucher.status,
            )
        )
        if len(pending) == PENDING_LIMIT:
            break
    return pending
