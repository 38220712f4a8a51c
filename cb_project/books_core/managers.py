from django.contrib.auth.base_user import BaseUserManager
from django.db import models

from .exceptions import AuthorizationError


# -----------------------------------------
# Enforce owner scoping across every model
# that belongs to a user
# -----------------------------------------
class OwnerQuerySet(models.QuerySet):
    # lookup path from this model to its owning user
    owner_field = "owner"

    def for_owner(self, owner):
        if owner is None:
            raise AuthorizationError("Authentication required")
        return self.filter(**{self.owner_field: owner})


class VoucherLineQuerySet(OwnerQuerySet):
    owner_field = "voucher__owner"


class PaymentLineQuerySet(OwnerQuerySet):
    owner_field = "payment__owner"


class OwnerManager(models.Manager.from_queryset(OwnerQuerySet)):
    # Ledger.objects.for_owner(request.owner)
    pass


class VoucherLineManager(models.Manager.from_queryset(VoucherLineQuerySet)):
    pass


class PaymentLineManager(models.Manager.from_queryset(PaymentLineQuerySet)):
    pass


class UserSessionQuerySet(models.QuerySet):
    def valid(self, now):
        # active, unexpired, and held by an active user
        return self.filter(is_active=True, expires_at__gt=now, user__is_active=True)


class LedgerUserManager(BaseUserManager):
    """Enforce rules around how users are created."""

    use_in_migrations = True

    # Shared by create_user() and create_superuser()
    def _create_user(self, username, email, password, **extra_fields):
        if not username:
            raise ValueError("The given username must be set")
        email = self.normalize_email(email)
        user = self.model(username=username, email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_user(self, username, email=None, password=None, **extra_fields):
        extra_fields.setdefault("is_staff", False)
        extra_fields.setdefault("is_superuser", False)
        return self._create_user(username, email, password, **extra_fields)

    def create_superuser(self, username, email=None, password=None, **extra_fields):
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        if extra_fields.get("is_staff") is not True or extra_fields.get("is_superuser") is not True:
            raise ValueError("Superuser must have is_staff=True and is_superuser=True")
        return self._create_user(username, email, password, **extra_fields)
