from django.http import HttpRequest, JsonResponse
from django.views.decorators.http import require_POST

from core.elections_ballots import cast_vote
from core.permissions import ELECTION_VOTE_ROLES, json_role_required_any
from core.views_utils import get_actor_id, json_election_errors, parse_json_body


@require_POST
@json_role_required_any(ELECTION_VOTE_ROLES)
@json_election_errors
def election_vote_submit(request: HttpRequest, election_id: int) -> JsonResponse:
    data = parse_json_body(request)
    vote = cast_vote(
        election_id=election_id,
        candidate_id=data.get("candidate_id"),
        voter_id=get_actor_id(request),
        integrity_tag=data.get("integrity_tag") or "",
    )
    return JsonResponse(
        {
            "ok": True,
            "vote": {
                "election_id": vote.election_id,
                "candidate_id": vote.candidate_id,
                "cast_at": vote.cast_at.isoformat(),
            },
        },
        status=201,
    )
