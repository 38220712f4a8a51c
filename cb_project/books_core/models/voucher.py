from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q, Sum

from ..managers import VoucherLineManager
from ..money import CENT, ZERO, quantize
from .account import Account
from .base import OwnedModel, TimeStampedModel


class VoucherStatus(models.TextChoices):
    PENDING = "Pending", "Pending"
    PARTIALLY_PAID = "Partially Paid", "Partially Paid"
    PAID = "Paid", "Paid"
    VOID = "Void", "Void"


# ---------- Voucher (journal entry header) & VoucherLine ----------
class Voucher(OwnedModel):
    voucher_number = models.CharField(max_length=50)
    voucher_date = models.DateField()
    transaction_type = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    total_amount = models.DecimalField(max_digits=18, decimal_places=2)
    # Cached projection of the paid total; only payment allocation and
    # voiding write it.
    status = models.CharField(
        max_length=20,
        choices=VoucherStatus.choices,
        default=VoucherStatus.PENDING,
    )

    class Meta:
        indexes = [
            models.Index(fields=["owner", "voucher_date"], name="voucher_owner_date_idx"),
            models.Index(fields=["owner", "status"], name="voucher_owner_status_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["owner", "voucher_number"], name="uq_owner_voucher_number"
            ),
            models.CheckConstraint(
                condition=Q(total_amount__gte=0), name="voucher_total_non_negative"
            ),
        ]

    def __str__(self):
        return f"{self.voucher_number} {self.voucher_date} [{self.status}]"

    def compute_totals(self):
        """Return (debits, credits) summed over the lines."""
        aggs = self.lines.aggregate(
            total_debit=Sum("amount", filter=Q(is_debit=True)),
            total_credit=Sum("amount", filter=Q(is_debit=False)),
        )
        return quantize(aggs["total_debit"]), quantize(aggs["total_credit"])

    def balance_difference(self):
        debit, credit = self.compute_totals()
        return debit - credit

    # Imbalance is flagged, never blocked
    def is_balanced(self):
        return abs(self.balance_difference()) < CENT

    @property
    def is_void(self):
        return self.status == VoucherStatus.VOID


class VoucherLine(TimeStampedModel):
    voucher = models.ForeignKey(Voucher, on_delete=models.CASCADE, related_name="lines")
    # can't delete an account that has postings
    account = models.ForeignKey(Account, on_delete=models.PROTECT, related_name="voucher_lines")
    is_debit = models.BooleanField()
    amount = models.DecimalField(max_digits=18, decimal_places=2)
    description = models.CharField(max_length=400, blank=True)

    objects = VoucherLineManager()

    class Meta:
        ordering = ["voucher_id", "id"]
        indexes = [models.Index(fields=["account", "voucher"], name="voucherline_account_idx")]
        constraints = [
            models.CheckConstraint(condition=Q(amount__gt=0), name="voucher_line_amount_positive"),
        ]

    def __str__(self):
        side = "Dr" if self.is_debit else "Cr"
        return f"{side} {self.account_id} {self.amount}"

    @property
    def signed_amount(self):
        """+amount for a debit, -amount for a credit."""
        return self.amount if self.is_debit else -self.amount

    @property
    def debit_amount(self):
        return self.amount if self.is_debit else ZERO

    @property
    def credit_amount(self):
        return ZERO if self.is_debit else self.amount

    def clean(self):
        if self.amount is not None and self.amount <= 0:
            raise ValidationError("Line amount must be greater than 0")
        # tenant consistency between header and account
        if self.account_id and self.voucher_id and self.account.owner_id != self.voucher.owner_id:
            raise ValidationError("Account not found")

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)
