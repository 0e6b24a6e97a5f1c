"""Candidate registry endpoints."""

from django.http import HttpRequest, JsonResponse
from django.views.decorators.http import require_http_methods

from core import elections_candidates
from core.permissions import ELECTION_MANAGE_ROLES, json_role_required_any
from core.views_elections._helpers import _serialize_candidate
from core.views_utils import get_actor_id, json_election_errors, parse_json_body


@require_http_methods(["POST"])
@json_role_required_any(ELECTION_MANAGE_ROLES)
@json_election_errors
def election_candidate_add(request: HttpRequest, election_id: int) -> JsonResponse:
    data = parse_json_body(request)
    candidate = elections_candidates.add_candidate(
        election_id=election_id,
        name=data.get("name"),
        party_id=data.get("party_id"),
        running_mate=data.get("running_mate"),
        actor=get_actor_id(request) or None,
    )
    return JsonResponse({"ok": True, "candidate": _serialize_candidate(candidate)}, status=201)


@require_http_methods(["DELETE"])
@json_role_required_any(ELECTION_MANAGE_ROLES)
@json_election_errors
def election_candidate_remove(request: HttpRequest, election_id: int, candidate_id: int) -> JsonResponse:
    elections_candidates.remove_candidate(
        election_id=election_id,
        candidate_id=candidate_id,
        actor=get_actor_id(request) or None,
    )
    return JsonResponse({"ok": True})
