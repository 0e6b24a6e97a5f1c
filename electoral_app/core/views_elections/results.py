from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import ensure_csrf_cookie
from django.views.decorators.http import require_GET

from core.elections_ballots import get_election_results
from core.permissions import ELECTION_VIEW_ROLES, json_role_required_any
from core.views_utils import json_election_errors


@require_GET
@ensure_csrf_cookie
@json_role_required_any(ELECTION_VIEW_ROLES)
@json_election_errors
def election_results(request: HttpRequest, election_id: int) -> JsonResponse:
    results = get_election_results(election_id=election_id)
    return JsonResponse({"ok": True, "results": results.as_dict()})
