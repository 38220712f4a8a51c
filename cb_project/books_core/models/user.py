import secrets
from datetime import timedelta

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone

from ..managers import LedgerUserManager, UserSessionQuerySet


class User(AbstractUser):
    """Owner of a ledger. Every account, voucher, payment and receipt is
    scoped to exactly one user."""

    objects = LedgerUserManager()

    def __str__(self):
        return self.get_full_name() or self.username


class UserSession(models.Model):
    """Opaque session token issued at login, resolved by
    ``SessionTokenMiddleware`` on every request."""

    session_id = models.CharField(max_length=255, primary_key=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sessions",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    expires_at = models.DateTimeField()
    is_active = models.BooleanField(default=True)

    objects = UserSessionQuerySet.as_manager()

    class Meta:
        indexes = [models.Index(fields=["user", "is_active"], name="session_user_active_idx")]

    def __str__(self):
        return f"session for {self.user} until {self.expires_at:%Y-%m-%d %H:%M}"

    @classmethod
    def open_for(cls, user, hours=None):
        hours = hours if hours is not None else settings.BOOKS_SESSION_TTL_HOURS
        return cls.objects.create(
            session_id=secrets.token_urlsafe(32),
            user=user,
            expires_at=timezone.now() + timedelta(hours=hours),
        )

    def revoke(self):
        self.is_active = False
        self.save(update_fields=["is_active"])
