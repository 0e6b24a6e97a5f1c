import logging
from collections.abc import Collection
from dataclasses import dataclass

from django.http import HttpRequest

from core.permissions import KNOWN_ROLES

logger = logging.getLogger(__name__)

ACTOR_ID_SESSION_KEY = "_actor_id"
ACTOR_ROLE_SESSION_KEY = "_actor_role"


@dataclass(frozen=True)
class Actor:
    """The authenticated caller as seen by the election endpoints.

    Issued by the external authentication layer, which stores the identity and
    role claim in the session. ``actor_id`` doubles as the voter identity.
    """

    actor_id: str = ""
    role: str = ""

    @property
    def is_authenticated(self) -> bool:
        return bool(self.actor_id) and self.role in KNOWN_ROLES

    def has_any_role(self, roles: Collection[str]) -> bool:
        return self.is_authenticated and self.role in roles


ANONYMOUS_ACTOR = Actor()


def _actor_from_session(request: HttpRequest) -> Actor:
    session = getattr(request, "session", None)
    if session is None:
        return ANONYMOUS_ACTOR

    actor_id = str(session.get(ACTOR_ID_SESSION_KEY) or "").strip()
    role = str(session.get(ACTOR_ROLE_SESSION_KEY) or "").strip().lower()
    if not actor_id:
        return ANONYMOUS_ACTOR

    if role not in KNOWN_ROLES:
        logger.warning("actor_unknown_role actor=%s role=%r", actor_id, role)
        return ANONYMOUS_ACTOR

    return Actor(actor_id=actor_id, role=role)


class ActorMiddleware:
    """Expose the session's actor identity as ``request.actor``.

    Must run after ``SessionMiddleware``.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request: HttpRequest):
        request.actor = _actor_from_session(request)
        return self.get_response(request)
