from django.db.models.signals import pre_delete
from django.dispatch import receiver

from .exceptions import ConflictError
from .models import Account, GLMapping, Payment, PaymentLine, Voucher, VoucherLine


def ensure_account_deletable(account):
    """Block account deletion while anything still points at it."""
    if Account.objects.filter(parent=account).exists():
        raise ConflictError("Cannot delete account with child accounts")
    if GLMapping.objects.filter(debit_account=account).exists() or GLMapping.objects.filter(
        credit_account=account
    ).exists():
        raise ConflictError("Cannot delete account that is used in GL mappings")
    if VoucherLine.objects.filter(account=account).exists():
        raise ConflictError("Cannot delete account that is used in vouchers")
    if Payment.objects.filter(account=account).exists():
        raise ConflictError("Cannot delete account that is used in payments")


def ensure_voucher_deletable(voucher):
    """Block voucher deletion once a payment references it."""
    if PaymentLine.objects.filter(voucher=voucher).exists():
        raise ConflictError("Cannot delete voucher that is used in payments")


# PROTECT foreign keys are enforced before pre_delete fires, so the
# services call the checks above directly as well.
@receiver(pre_delete, sender=Account)
def prevent_delete_account_in_use(sender, instance, **kwargs):
    ensure_account_deletable(instance)


@receiver(pre_delete, sender=Voucher)
def prevent_delete_voucher_with_payments(sender, instance, **kwargs):
    ensure_voucher_deletable(instance)
