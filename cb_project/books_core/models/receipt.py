from django.db import models
from django.db.models import Q

from .base import OwnedModel


class Receipt(OwnedModel):
    """Money received. Stands alone, never posted to the ledger."""

    receipt_number = models.CharField(max_length=50)
    payer_name = models.CharField(max_length=200)
    amount = models.DecimalField(max_digits=18, decimal_places=2)
    currency = models.CharField(max_length=10)
    date = models.DateField()
    payment_method = models.CharField(max_length=50)
    description = models.TextField()

    class Meta:
        ordering = ["-date", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["owner", "receipt_number"], name="uq_owner_receipt_number"
            ),
            models.CheckConstraint(condition=Q(amount__gt=0), name="receipt_amount_positive"),
        ]

    def __str__(self):
        return f"{self.receipt_number} {self.payer_name} {self.amount} {self.currency}"
