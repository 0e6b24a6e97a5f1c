"""Shared private helpers used across election view sub-modules."""

from collections.abc import Iterable, Mapping

from django.http import HttpRequest, JsonResponse

from core.elections_errors import ElectionValidationError
from core.elections_scope import ScopeSelection, scope_unit_names
from core.models import Candidate, Election


def _serialize_candidate(candidate: Candidate) -> dict[str, object]:
    return {
        "id": candidate.pk,
        "name": candidate.name,
        "party_id": candidate.party_id,
        "party": candidate.party.abbreviation,
        "running_mate": candidate.running_mate,
        "votes": candidate.votes,
    }


def _serialize_election(election: Election, *, unit_name: str = "") -> dict[str, object]:
    return {
        "id": election.pk,
        "title": election.title,
        "description": election.description,
        "position": election.position,
        "position_label": Election.Position(election.position).label,
        "election_year": election.election_year,
        "election_date": election.election_date.isoformat(),
        "status": election.status,
        "scope": {
            "kind": election.scope_kind,
            "id": election.scope_unit_id,
            "name": unit_name,
        },
        "total_votes_cast": election.total_votes_cast,
        "created_at": election.created_at.isoformat(),
        "updated_at": election.updated_at.isoformat(),
    }


def _serialize_elections(elections: Iterable[Election]) -> list[dict[str, object]]:
    rows = list(elections)
    names = scope_unit_names(e.scope for e in rows)
    return [_serialize_election(e, unit_name=names.get(e.scope, "")) for e in rows]


def _batch_response(report: dict[str, object], *, has_errors: bool) -> JsonResponse:
    # 207 tells the caller some items failed while the rest were applied.
    return JsonResponse({"ok": not has_errors, **report}, status=207 if has_errors else 200)


def _parse_positions(data: Mapping[str, object]) -> list[str]:
    positions = data.get("positions")
    if positions is None and data.get("position") is not None:
        positions = [data.get("position")]
    if not isinstance(positions, list) or not positions:
        raise ElectionValidationError("positions must be a non-empty list")
    return [str(p) for p in positions]


def _parse_selections(data: Mapping[str, object]) -> tuple[dict[str, ScopeSelection], ScopeSelection | None]:
    raw_selections = data.get("selections")
    if raw_selections is None:
        raw_selections = {}
    if not isinstance(raw_selections, Mapping):
        raise ElectionValidationError("selections must be an object keyed by position")

    selections = {str(position): ScopeSelection.from_payload(raw) for position, raw in raw_selections.items()}
    default_selection = ScopeSelection.from_payload(data["selection"]) if data.get("selection") is not None else None
    return selections, default_selection


def _confirm_election_action(*, request: HttpRequest, data: Mapping[str, object], election: Election) -> bool:
    raw = str(data.get("confirm") or request.GET.get("confirm") or "").strip()
    if not raw:
        return False
    expected = str(election.title or "").strip()
    if not expected:
        return False
    return raw.casefold() == expected.casefold()
