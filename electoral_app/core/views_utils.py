"""Shared view utilities: actor lookup, JSON bodies, domain error rendering."""

import json
import logging
from collections.abc import Callable
from functools import wraps

from django.http import HttpRequest, JsonResponse

from core.elections_errors import (
    ElectionConflictError,
    ElectionError,
    ElectionNotFoundError,
    ElectionValidationError,
    InvalidCandidateError,
    NotVotableError,
    PartialBatchError,
)
from core.middleware import ANONYMOUS_ACTOR, Actor

logger = logging.getLogger(__name__)

# Checked in order; subclasses must come before their bases.
_ERROR_STATUSES: tuple[tuple[type[ElectionError], int], ...] = (
    (ElectionValidationError, 400),
    (InvalidCandidateError, 400),
    (ElectionNotFoundError, 404),
    (ElectionConflictError, 409),
    (NotVotableError, 409),
    (PartialBatchError, 207),
)


def get_actor(request: HttpRequest) -> Actor:
    actor = getattr(request, "actor", None)
    return actor if isinstance(actor, Actor) else ANONYMOUS_ACTOR


def get_actor_id(request: HttpRequest) -> str:
    return get_actor(request).actor_id


def parse_json_body(request: HttpRequest) -> dict[str, object]:
    """Decode a JSON object body; an empty body is an empty object."""
    try:
        raw = request.body.decode("utf-8").strip()
    except UnicodeDecodeError as exc:
        raise ElectionValidationError("request body must be UTF-8 encoded JSON") from exc
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ElectionValidationError("request body must be valid JSON") from exc
    if not isinstance(data, dict):
        raise ElectionValidationError("request body must be a JSON object")
    return data


def parse_id_list(raw: object, *, field: str) -> list[int]:
    if not isinstance(raw, list):
        raise ElectionValidationError(f"{field} must be a list of ids")
    ids: list[int] = []
    for value in raw:
        if isinstance(value, bool):
            raise ElectionValidationError(f"{field} must contain integer ids")
        try:
            ids.append(int(value))
        except (TypeError, ValueError) as exc:
            raise ElectionValidationError(f"{field} must contain integer ids") from exc
    return ids


def parse_optional_int(raw: object, *, field: str) -> int | None:
    value = str(raw or "").strip()
    if not value:
        return None
    try:
        return int(value)
    except ValueError as exc:
        raise ElectionValidationError(f"{field} must be an integer") from exc


def election_error_status(exc: ElectionError) -> int:
    for error_type, status in _ERROR_STATUSES:
        if isinstance(exc, error_type):
            return status
    return 400


def election_error_response(exc: ElectionError) -> JsonResponse:
    body: dict[str, object] = {"ok": False, "error": str(exc), "code": exc.code}
    if isinstance(exc, PartialBatchError):
        body["report"] = exc.report
    return JsonResponse(body, status=election_error_status(exc))


def json_election_errors[**P](view_func: Callable[P, JsonResponse]) -> Callable[P, JsonResponse]:
    """Render any ``ElectionError`` escaping the view as a JSON error response."""

    @wraps(view_func)
    def _wrapped(*args: P.args, **kwargs: P.kwargs) -> JsonResponse:
        try:
            return view_func(*args, **kwargs)
        except ElectionError as exc:
            logger.info("election_request_rejected code=%s error=%s", exc.code, exc)
            return election_error_response(exc)

    return _wrapped
