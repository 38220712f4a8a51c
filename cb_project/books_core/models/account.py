from django.core.exceptions import ValidationError
from django.db import models

from ..services.classifier import classify, is_debit_normal
from .base import OwnedModel


class Account(OwnedModel):
    """
    Chart of accounts entry.
    - account_number is unique per owner and drives the prefix fallback
      of the classifier ("1xxx" = Asset, ...)
    - account_type is free text ("Current Asset", "Sales", ...); the
      classifier maps it onto the five statement classes
    """

    account_number = models.CharField(max_length=50)
    name = models.CharField(max_length=200)
    account_type = models.CharField(max_length=100)
    # Optional hierarchy (1000 Cash, 1001 Petty Cash, ...)
    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="children",
    )
    subaccount = models.CharField(max_length=100, blank=True)
    description = models.TextField(blank=True)

    class Meta:
        ordering = ["account_number"]
        indexes = [
            models.Index(fields=["owner", "account_type"], name="account_owner_type_idx"),
            models.Index(fields=["owner", "parent"], name="account_owner_parent_idx"),
        ]
        # Numbers repeat across users but must be unique within one
        constraints = [
            models.UniqueConstraint(
                fields=["owner", "account_number"], name="uq_owner_account_number"
            )
        ]

    def __str__(self):
        return f"{self.account_number} {self.name}"

    @property
    def account_class(self):
        return classify(self.account_type, self.account_number)

    @property
    def is_debit_normal(self):
        return is_debit_normal(self.account_class)

    def clean(self):
        if self.parent_id:
            if self.pk and self.parent_id == self.pk:
                raise ValidationError("An account cannot be its own parent.")
            if self.parent.owner_id != self.owner_id:
                raise ValidationError("Parent account not found")


class GLMapping(OwnedModel):
    """Default debit/credit account pair for a transaction type."""

    transaction_type = models.CharField(max_length=100)
    debit_account = models.ForeignKey(
        Account, on_delete=models.PROTECT, related_name="debit_mappings"
    )
    credit_account = models.ForeignKey(
        Account, on_delete=models.PROTECT, related_name="credit_mappings"
    )

    class Meta:
        ordering = ["transaction_type"]
        indexes = [models.Index(fields=["owner", "transaction_type"], name="glmapping_owner_type_idx")]

    def __str__(self):
        return f"{self.transaction_type}: Dr {self.debit_account_id} / Cr {self.credit_account_id}"

    def clean(self):
        if not (self.debit_account_id and self.credit_account_id):
            return
        for acct in (self.debit_account, self.credit_account):
            if acct.owner_id != self.owner_id:
                raise ValidationError("Mapped accounts must belong to the mapping owner.")
