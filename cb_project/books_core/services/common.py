from datetime import date

from django.core.exceptions import ValidationError
from django.utils.dateparse import parse_date

from ..exceptions import AuthorizationError, NotFoundError


def require_owner(owner):
    """Every core operation runs on behalf of an authenticated user."""
    if owner is None:
        raise AuthorizationError("Authentication required")
    return owner


def get_owned(model, owner, pk, label=None, queryset=None):
    """Fetch one row inside the owner's scope.

    A foreign row is reported exactly like a missing one.
    """
    require_owner(owner)
    qs = queryset if queryset is not None else model.objects.all()
    try:
        return qs.for_owner(owner).get(pk=pk)
    except (model.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"{label or model._meta.verbose_name.capitalize()} not found")


def to_date(value, field="date"):
    if isinstance(value, date):
        return value
    if not value:
        raise ValidationError(f"{field} is required")
    try:
        parsed = parse_date(str(value))
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"{field} must be an ISO date (YYYY-MM-DD)")
    return parsed


def validate_date_range(from_date, to_date):
    if from_date > to_date:
        raise ValidationError("From date cannot be later than to date")


def require_fields(data, fields, message=None):
    missing = [f for f in fields if data.get(f) in (None, "")]
    if missing:
        raise ValidationError(message or f"Missing required fields: {', '.join(missing)}")


def clean_text(data, field, default=""):
    value = data.get(field)
    return default if value is None else str(value).strip()
