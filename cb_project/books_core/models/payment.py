import os
import uuid

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from ..managers import PaymentLineManager
from .account import Account
from .base import OwnedModel, TimeStampedModel
from .voucher import Voucher


class PaymentStatus(models.TextChoices):
    DRAFT = "Draft", "Draft"
    PAID = "Paid", "Paid"


class Payment(OwnedModel):
    payment_number = models.CharField(max_length=50)
    payment_date = models.DateField()
    payee_name = models.CharField(max_length=200)
    payment_method = models.CharField(max_length=50)
    # funding account the money leaves from
    account = models.ForeignKey(Account, on_delete=models.PROTECT, related_name="payments")
    total_amount = models.DecimalField(max_digits=18, decimal_places=2)
    reference_number = models.CharField(max_length=100, blank=True)
    description = models.TextField(blank=True)
    status = models.CharField(
        max_length=10, choices=PaymentStatus.choices, default=PaymentStatus.DRAFT
    )

    class Meta:
        indexes = [
            models.Index(fields=["owner", "payment_date"], name="payment_owner_date_idx"),
            models.Index(fields=["owner", "status"], name="payment_owner_status_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["owner", "payment_number"], name="uq_owner_payment_number"
            ),
            models.CheckConstraint(condition=Q(total_amount__gt=0), name="payment_total_positive"),
        ]

    def __str__(self):
        return f"{self.payment_number} {self.payee_name} [{self.status}]"

    @property
    def is_paid(self):
        return self.status == PaymentStatus.PAID


class PaymentLine(TimeStampedModel):
    payment = models.ForeignKey(Payment, on_delete=models.CASCADE, related_name="lines")
    # a voucher with payments against it can't be deleted
    voucher = models.ForeignKey(Voucher, on_delete=models.PROTECT, related_name="payment_lines")
    amount_paid = models.DecimalField(max_digits=18, decimal_places=2)

    objects = PaymentLineManager()

    class Meta:
        ordering = ["payment_id", "id"]
        constraints = [
            models.CheckConstraint(condition=Q(amount_paid__gt=0), name="payment_line_amount_positive"),
        ]

    def __str__(self):
        return f"{self.payment_id} -> {self.voucher_id}: {self.amount_paid}"

    def clean(self):
        if self.voucher_id and self.payment_id and self.voucher.owner_id != self.payment.owner_id:
            raise ValidationError("Voucher not found")

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)


def attachment_upload_to(instance, filename):
    _, ext = os.path.splitext(filename)
    return f"payments/{instance.payment_id}/{uuid.uuid4().hex}{ext.lower()}"


class PaymentAttachment(models.Model):
    payment = models.ForeignKey(Payment, on_delete=models.CASCADE, related_name="attachments")
    file = models.FileField(upload_to=attachment_upload_to, max_length=500)
    file_name = models.CharField(max_length=255)
    file_type = models.CharField(max_length=100, blank=True)
    upload_date = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.file_name
