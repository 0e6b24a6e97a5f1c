"""Election scheduling endpoints: list, single create, bulk generate, bulk status, edit, delete."""

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import ensure_csrf_cookie
from django.views.decorators.http import require_GET, require_http_methods

from core import elections_bulk, elections_services
from core.elections_scope import elections_within_state_q, normalize_position, scope_unit_name
from core.models import Election
from core.permissions import ELECTION_MANAGE_ROLES, ELECTION_VIEW_ROLES, json_role_required_any
from core.views_elections._helpers import (
    _batch_response,
    _confirm_election_action,
    _parse_positions,
    _parse_selections,
    _serialize_candidate,
    _serialize_election,
    _serialize_elections,
)
from core.views_utils import get_actor_id, json_election_errors, parse_id_list, parse_json_body, parse_optional_int

_DEFAULT_PAGE_SIZE = 100
_MAX_PAGE_SIZE = 500


@require_http_methods(["GET", "POST"])
def elections_collection(request: HttpRequest) -> JsonResponse:
    if request.method == "POST":
        return election_create(request)
    return elections_list(request)


@require_GET
@ensure_csrf_cookie
@json_role_required_any(ELECTION_VIEW_ROLES)
@json_election_errors
def elections_list(request: HttpRequest) -> JsonResponse:
    qs = Election.objects.all()

    position = str(request.GET.get("position") or "").strip()
    if position:
        qs = qs.filter(position=normalize_position(position))

    status = str(request.GET.get("status") or "").strip()
    if status:
        qs = qs.filter(status=elections_services.normalize_status(status))

    year = parse_optional_int(request.GET.get("year"), field="year")
    if year is not None:
        qs = qs.filter(election_year=year)

    state_id = parse_optional_int(request.GET.get("state"), field="state")
    if state_id is not None:
        qs = qs.filter(elections_within_state_q(state_id))

    limit = parse_optional_int(request.GET.get("limit"), field="limit") or _DEFAULT_PAGE_SIZE
    limit = max(1, min(limit, _MAX_PAGE_SIZE))
    offset = max(0, parse_optional_int(request.GET.get("offset"), field="offset") or 0)

    total = qs.count()
    page = qs[offset : offset + limit]
    return JsonResponse(
        {
            "ok": True,
            "count": total,
            "limit": limit,
            "offset": offset,
            "elections": _serialize_elections(page),
        }
    )


@json_role_required_any(ELECTION_MANAGE_ROLES)
@json_election_errors
def election_create(request: HttpRequest) -> JsonResponse:
    data = parse_json_body(request)
    election = elections_services.create_election(
        position=data.get("position"),
        election_year=data.get("election_year"),
        election_date=data.get("election_date"),
        status=data.get("status"),
        scope_unit_id=data.get("scope_unit_id"),
        title=str(data.get("title") or ""),
        description=str(data.get("description") or ""),
        actor=get_actor_id(request) or None,
    )
    return JsonResponse(
        {"ok": True, "election": _serialize_election(election, unit_name=scope_unit_name(election.scope))},
        status=201,
    )


@require_http_methods(["POST"])
@json_role_required_any(ELECTION_MANAGE_ROLES)
@json_election_errors
def elections_bulk_create(request: HttpRequest) -> JsonResponse:
    data = parse_json_body(request)
    selections, default_selection = _parse_selections(data)
    result = elections_bulk.generate_elections(
        positions=_parse_positions(data),
        election_year=data.get("election_year"),
        election_date=data.get("election_date"),
        status=data.get("status"),
        selections=selections,
        default_selection=default_selection,
        title_template=str(data.get("title_template") or ""),
        actor=get_actor_id(request) or None,
    )
    return _batch_response(result.as_dict(), has_errors=bool(result.errors or result.rejected))


@require_http_methods(["PATCH"])
@json_role_required_any(ELECTION_MANAGE_ROLES)
@json_election_errors
def elections_bulk_status(request: HttpRequest) -> JsonResponse:
    data = parse_json_body(request)
    result = elections_services.bulk_set_election_status(
        election_ids=parse_id_list(data.get("ids"), field="ids"),
        status=data.get("status"),
        actor=get_actor_id(request) or None,
    )
    return _batch_response(result.as_dict(), has_errors=bool(result.errors))


@require_http_methods(["GET", "PATCH", "DELETE"])
def election_item(request: HttpRequest, election_id: int) -> JsonResponse:
    if request.method == "PATCH":
        return election_update(request, election_id)
    if request.method == "DELETE":
        return election_delete(request, election_id)
    return election_detail(request, election_id)


@ensure_csrf_cookie
@json_role_required_any(ELECTION_VIEW_ROLES)
@json_election_errors
def election_detail(request: HttpRequest, election_id: int) -> JsonResponse:
    election = elections_services.get_election(election_id)
    candidates = election.candidates.select_related("party").order_by("created_at", "id")
    payload = _serialize_election(election, unit_name=scope_unit_name(election.scope))
    payload["candidates"] = [_serialize_candidate(c) for c in candidates]
    return JsonResponse({"ok": True, "election": payload})


@json_role_required_any(ELECTION_MANAGE_ROLES)
@json_election_errors
def election_update(request: HttpRequest, election_id: int) -> JsonResponse:
    data = parse_json_body(request)
    election = elections_services.update_election(
        election_id=election_id,
        changes=data,
        actor=get_actor_id(request) or None,
    )
    return JsonResponse(
        {"ok": True, "election": _serialize_election(election, unit_name=scope_unit_name(election.scope))}
    )


@json_role_required_any(ELECTION_MANAGE_ROLES)
@json_election_errors
def election_delete(request: HttpRequest, election_id: int) -> JsonResponse:
    data = parse_json_body(request)
    election = elections_services.get_election(election_id)

    if not _confirm_election_action(request=request, data=data, election=election):
        preview = elections_services.election_deletion_preview(election_id=election.pk)
        return JsonResponse(
            {
                "ok": False,
                "error": "Confirmation required. Repeat the election title in 'confirm' to delete it.",
                "code": "confirmation_required",
                "preview": preview.as_dict(),
            },
            status=400,
        )

    summary = elections_services.delete_election(election_id=election.pk, actor=get_actor_id(request) or None)
    return JsonResponse({"ok": True, "deleted": summary.as_dict()})
