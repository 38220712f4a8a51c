import logging
from datetime import date, datetime
from typing import Dict

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from ..exceptions import ConflictError, NotFoundError
from ..models import Receipt
from ..money import ZERO, parse_amount
from .common import clean_text, get_owned, require_owner, to_date
from .numbering import next_number

logger = logging.getLogger(__name__)

REQUIRED_MESSAGE = "All required fields must be provided and amount must be greater than 0."
RECEIPT_FIELDS = ("payer_name", "amount", "currency", "date", "payment_method", "description")


def _clean(data: Dict) -> Dict:
    if any(data.get(f) in (None, "") for f in RECEIPT_FIELDS):
        raise ValidationError(REQUIRED_MESSAGE)
    amount = parse_amount(data["amount"])
    if amount <= ZERO:
        raise ValidationError(REQUIRED_MESSAGE)
    return {
        "receipt_number": clean_text(data, "receipt_number"),
        "payer_name": clean_text(data, "payer_name"),
        "amount": amount,
        "currency": clean_text(data, "currency").upper(),
        "date": to_date(data["date"], "date"),
        "payment_method": clean_text(data, "payment_method"),
        "description": clean_text(data, "description"),
    }


def _check_unique_number(owner, number, exclude=None):
    qs = Receipt.objects.for_owner(owner).filter(receipt_number=number)
    if exclude is not None:
        qs = qs.exclude(pk=exclude)
    if qs.exists():
        raise ConflictError("Receipt number already exists")


def next_receipt_number(owner, on_date: date = None) -> str:
    """REC-YYYY-MM-NNNN, numbered per month."""
    require_owner(owner)
    on_date = on_date or date.today()
    return next_number(Receipt.objects.for_owner(owner), "receipt_number", f"REC-{on_date:%Y-%m}-", 4)


def create_receipt(owner, data: Dict) -> Receipt:
    require_owner(owner)
    fields = _clean(data)
    with transaction.atomic():
        if not fields["receipt_number"]:
            fields["receipt_number"] = next_receipt_number(owner, fields["date"])
        _check_unique_number(owner, fields["receipt_number"])
        receipt = Receipt(owner=owner, **fields)
        receipt.full_clean()
        receipt.save()
    logger.info("receipt %s issued: %s %s from %s", receipt.receipt_number, receipt.amount, receipt.currency, receipt.payer_name)
    return receipt


def _parse_stamp(value):
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    try:
        stamp = parse_datetime(str(value))
    except ValueError:
        stamp = None
    if stamp is None:
        raise ValidationError("updated_at must be an ISO timestamp")
    return stamp


def update_receipt(owner, receipt_id, data: Dict, expected_updated_at=None) -> Receipt:
    """
    Edit a receipt. The write only lands if the row still carries the
    ``updated_at`` we read (or the one the caller last saw). When nothing
    matched, the row either vanished (NotFoundError) or someone else wrote
    it first (ConflictError; re-read and retry).
    """
    require_owner(owner)
    receipt = get_owned(Receipt, owner, receipt_id, "Receipt")
    fields = _clean(data)
    if not fields["receipt_number"]:
        fields["receipt_number"] = receipt.receipt_number
    _check_unique_number(owner, fields["receipt_number"], exclude=receipt.pk)

    seen = _parse_stamp(expected_updated_at) or receipt.updated_at
    for name, value in fields.items():
        setattr(receipt, name, value)
    receipt.full_clean()

    fields["updated_at"] = timezone.now()
    matched = Receipt.objects.for_owner(owner).filter(pk=receipt.pk, updated_at=seen).update(**fields)
    if not matched:
        if not Receipt.objects.for_owner(owner).filter(pk=receipt.pk).exists():
            raise NotFoundError("Receipt not found")
        raise ConflictError("Receipt was changed by another request; reload and try again")

    receipt.updated_at = fields["updated_at"]
    logger.info("receipt %s updated", receipt.receipt_number)
    return receipt


def delete_receipt(owner, receipt_id):
    receipt = get_owned(Receipt, owner, receipt_id, "Receipt")
    receipt.delete()
    logger.info("receipt %s deleted", receipt.receipt_number)
