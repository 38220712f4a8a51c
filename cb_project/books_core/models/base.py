from django.conf import settings
from django.db import models

from ..managers import OwnerManager


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class OwnedModel(TimeStampedModel):
    """Row that belongs to exactly one user. Query it through
    ``objects.for_owner(owner)`` only."""

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
    )

    objects = OwnerManager()

    class Meta:
        abstract = True
