from django.core.exceptions import ValidationError  # noqa: F401  (re-exported)


class LedgerError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500

    def __init__(self, message=""):
        super().__init__(message)
        self.message = message


class NotFoundError(LedgerError):
    """Unknown id, or an id owned by another user. The two are deliberately
    indistinguishable."""

    status_code = 404


class AuthorizationError(LedgerError):
    """Missing, expired or invalid session."""

    status_code = 401


class ConflictError(LedgerError):
    """Duplicate number, edit of a settled voucher/payment, or delete of a
    referenced row."""

    status_code = 409


class InternalError(LedgerError):
    """Unexpected store failure. Callers only ever see a generic message."""

    status_code = 500
