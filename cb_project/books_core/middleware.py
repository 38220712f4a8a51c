import logging

from django.conf import settings
from django.utils import timezone
from django.utils.deprecation import MiddlewareMixin

from .models import UserSession

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def session_token(request):
    """Token from ``Authorization: Bearer <token>``, else the session cookie."""
    header = request.META.get("HTTP_AUTHORIZATION", "")
    if header.startswith(BEARER_PREFIX):
        return header[len(BEARER_PREFIX):].strip() or None
    return request.COOKIES.get(settings.BOOKS_SESSION_COOKIE) or None


class SessionTokenMiddleware(MiddlewareMixin):
    # Attach request.owner (the authenticated ledger owner, or None) to
    # every request. Views reject requests without one.
    def process_request(self, request):
        request.owner = None
        request.ledger_session = None
        token = session_token(request)
        if not token:
            return

        session = (
            UserSession.objects.valid(timezone.now())
            .select_related("user")
            .filter(session_id=token)
            .first()
        )
        if session is None:
            # expired, revoked, unknown, or the user was deactivated
            logger.info("rejected session token for %s", request.path)
            return
        request.owner = session.user
        request.ledger_session = session
