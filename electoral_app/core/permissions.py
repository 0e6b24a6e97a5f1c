from collections.abc import Callable, Collection
from functools import wraps
from typing import ParamSpec, TypeVar

from django.http import HttpRequest, HttpResponse, JsonResponse

ROLE_ADMIN = "admin"
ROLE_COORDINATOR = "coordinator"
ROLE_MEMBER = "member"

KNOWN_ROLES: frozenset[str] = frozenset({ROLE_ADMIN, ROLE_COORDINATOR, ROLE_MEMBER})

ELECTION_MANAGE_ROLES: frozenset[str] = frozenset({ROLE_ADMIN, ROLE_COORDINATOR})

ELECTION_VOTE_ROLES: frozenset[str] = frozenset({ROLE_MEMBER})

ELECTION_VIEW_ROLES: frozenset[str] = KNOWN_ROLES


P = ParamSpec("P")
R = TypeVar("R", bound=HttpResponse)


def json_role_required_any(roles: Collection[str]) -> Callable[[Callable[P, R]], Callable[P, HttpResponse]]:
    """Decorator for JSON endpoints that accept any one of several actor roles.

    Anonymous requests get a JSON 401, authenticated actors with the wrong role
    a JSON 403. The actor itself comes from ``core.middleware.ActorMiddleware``.
    """

    allowed_roles = frozenset(roles)
    if not allowed_roles:
        raise ValueError("roles must not be empty")

    def decorator(view_func: Callable[P, R]) -> Callable[P, HttpResponse]:
        @wraps(view_func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> HttpResponse:
            if not args:
                return JsonResponse({"ok": False, "error": "Permission denied."}, status=403)

            request = args[0]
            if not isinstance(request, HttpRequest):
                return JsonResponse({"ok": False, "error": "Permission denied."}, status=403)

            actor = getattr(request, "actor", None)
            if actor is None or not actor.is_authenticated:
                return JsonResponse({"ok": False, "error": "Authentication required."}, status=401)

            if not actor.has_any_role(allowed_roles):
                return JsonResponse({"ok": False, "error": "Permission denied."}, status=403)

            return view_func(*args, **kwargs)

        return wrapper

    return decorator
