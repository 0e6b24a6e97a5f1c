from __future__ import annotations

import datetime
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from django.conf import settings
from django.db import IntegrityError, models, transaction
from django.utils.dateparse import parse_date, parse_datetime

from core.election_scopes import ElectionScope, NationalScope, scope_columns, scope_label
from core.elections_errors import (
    ElectionConflictError,
    ElectionError,
    ElectionNotFoundError,
    ElectionValidationError,
    InvalidTransitionError,
    PartialBatchError,
)
from core.elections_scope import ScopeUnit, normalize_position, resolve_scope_unit
from core.models import AuditLogEntry, Candidate, Election, Vote

logger = logging.getLogger(__name__)

ALLOWED_STATUS_TRANSITIONS: dict[str, frozenset[str]] = {
    Election.Status.upcoming: frozenset({Election.Status.ongoing, Election.Status.cancelled}),
    Election.Status.ongoing: frozenset({Election.Status.completed, Election.Status.cancelled}),
    Election.Status.completed: frozenset(),
    Election.Status.cancelled: frozenset(),
}

TERMINAL_STATUSES: frozenset[str] = frozenset({Election.Status.completed, Election.Status.cancelled})

UPDATABLE_ELECTION_FIELDS: frozenset[str] = frozenset({"title", "description", "election_date", "status"})


def normalize_status(status: object) -> str:
    value = str(status or "").strip()
    if value not in Election.Status.values:
        raise ElectionValidationError(f"unknown status: {value or '(empty)'}")
    return value


def normalize_election_year(value: object) -> int:
    if isinstance(value, bool):
        raise ElectionValidationError("election_year must be an integer")
    try:
        year = int(value)
    except (TypeError, ValueError) as exc:
        raise ElectionValidationError("election_year must be an integer") from exc
    if year < 1900 or year > 9999:
        raise ElectionValidationError("election_year is out of range")
    return year


def normalize_election_date(value: object) -> datetime.date:
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value

    raw = str(value or "").strip()
    if not raw:
        raise ElectionValidationError("election_date is required")
    try:
        parsed_date = parse_date(raw)
        if parsed_date is not None:
            return parsed_date
        parsed_datetime = parse_datetime(raw)
    except ValueError as exc:
        raise ElectionValidationError("election_date is not a valid date") from exc
    if parsed_datetime is None:
        raise ElectionValidationError("election_date is not a valid date")
    return parsed_datetime.date()


def check_max_length(model: type[models.Model], field_name: str, value: str) -> str:
    limit = model._meta.get_field(field_name).max_length
    if limit is not None and len(value) > limit:
        raise ElectionValidationError(f"{field_name} must be at most {limit} characters")
    return value


def check_status_transition(*, current: str, new: str) -> None:
    if new not in ALLOWED_STATUS_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransitionError(f"cannot move election from {current} to {new}")


def default_election_title(*, position: str, election_year: int, unit: ScopeUnit) -> str:
    label = Election.Position(position).label
    if isinstance(unit.scope, NationalScope):
        return f"{election_year} {label} Election"
    return f"{election_year} {unit.name} {label} Election"


def record_audit_event(
    *,
    election: Election,
    event_type: str,
    payload: dict[str, object] | None = None,
    actor: str | None = None,
) -> AuditLogEntry:
    return AuditLogEntry.objects.create(
        election=election,
        event_type=event_type,
        payload=payload or {},
        actor=str(actor or ""),
    )


def get_election(election_id: int, *, for_update: bool = False) -> Election:
    qs = Election.objects.select_for_update() if for_update else Election.objects.all()
    election = qs.filter(pk=election_id).first()
    if election is None:
        raise ElectionNotFoundError(f"election {election_id} does not exist")
    return election


def election_exists_for_scope(*, position: str, election_year: int, scope: ElectionScope) -> bool:
    return Election.objects.filter(
        position=position,
        election_year=election_year,
        **scope_columns(scope),
    ).exists()


def create_election_for_unit(
    *,
    position: str,
    unit: ScopeUnit,
    election_year: int,
    election_date: datetime.date,
    status: str,
    title: str = "",
    description: str = "",
    actor: str | None = None,
) -> Election:
    """Insert one election row for a resolved unit.

    Callers own the transaction; a concurrent duplicate surfaces as IntegrityError.
    """
    election = Election.objects.create(
        title=check_max_length(
            Election,
            "title",
            title.strip() or default_election_title(position=position, election_year=election_year, unit=unit),
        ),
        description=description,
        position=position,
        election_year=election_year,
        election_date=election_date,
        status=status,
        **scope_columns(unit.scope),
    )
    record_audit_event(
        election=election,
        event_type="election_created",
        payload={
            "position": position,
            "election_year": election_year,
            "scope": scope_label(unit.scope),
            "status": status,
        },
        actor=actor,
    )
    return election


@transaction.atomic
def create_election(
    *,
    position: object,
    election_year: object,
    election_date: object,
    status: object = None,
    scope_unit_id: object = None,
    title: str = "",
    description: str = "",
    actor: str | None = None,
) -> Election:
    position_value = normalize_position(position)
    year = normalize_election_year(election_year)
    date = normalize_election_date(election_date)
    status_value = normalize_status(status or settings.ELECTION_DEFAULT_STATUS)
    unit = resolve_scope_unit(position=position_value, unit_id=scope_unit_id)

    if election_exists_for_scope(position=position_value, election_year=year, scope=unit.scope):
        raise ElectionConflictError(
            f"a {position_value} election for {unit.label} in {year} already exists"
        )

    try:
        with transaction.atomic():
            election = create_election_for_unit(
                position=position_value,
                unit=unit,
                election_year=year,
                election_date=date,
                status=status_value,
                title=str(title or ""),
                description=str(description or ""),
                actor=actor,
            )
    except IntegrityError as exc:
        raise ElectionConflictError(
            f"a {position_value} election for {unit.label} in {year} already exists"
        ) from exc

    logger.info(
        "election_created election_id=%s position=%s year=%s scope=%s actor=%s",
        election.pk,
        position_value,
        year,
        scope_label(unit.scope),
        actor or "",
    )
    return election


@dataclass(frozen=True)
class StatusChange:
    election: Election
    previous_status: str
    changed: bool


def _apply_status(*, election: Election, status: str, actor: str | None) -> StatusChange:
    previous = str(election.status)
    if previous == status:
        return StatusChange(election=election, previous_status=previous, changed=False)

    check_status_transition(current=previous, new=status)
    election.status = status
    election.save(update_fields=["status", "updated_at"])
    record_audit_event(
        election=election,
        event_type="election_status_changed",
        payload={"previous_status": previous, "status": status},
        actor=actor,
    )
    logger.info(
        "election_status_changed election_id=%s from=%s to=%s actor=%s",
        election.pk,
        previous,
        status,
        actor or "",
    )
    return StatusChange(election=election, previous_status=previous, changed=True)


@transaction.atomic
def set_election_status(*, election_id: int, status: object, actor: str | None = None) -> StatusChange:
    status_value = normalize_status(status)
    election = get_election(election_id, for_update=True)
    return _apply_status(election=election, status=status_value, actor=actor)


@dataclass
class BulkStatusResult:
    status: str
    updated: int = 0
    unchanged: int = 0
    outcomes: list[dict[str, object]] = field(default_factory=list)

    @property
    def errors(self) -> list[dict[str, object]]:
        return [o for o in self.outcomes if o["outcome"] == "error"]

    def as_dict(self) -> dict[str, object]:
        return {
            "status": self.status,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "errors": self.errors,
            "outcomes": self.outcomes,
        }

    def raise_for_errors(self) -> None:
        if self.errors:
            raise PartialBatchError(
                f"{len(self.errors)} of {len(self.outcomes)} status updates failed",
                report=self.as_dict(),
            )


def bulk_set_election_status(
    *,
    election_ids: Iterable[int],
    status: object,
    actor: str | None = None,
) -> BulkStatusResult:
    """Apply one status to many elections, each in its own transaction."""
    status_value = normalize_status(status)
    result = BulkStatusResult(status=status_value)

    for election_id in dict.fromkeys(election_ids):
        try:
            change = set_election_status(election_id=election_id, status=status_value, actor=actor)
        except ElectionError as exc:
            result.outcomes.append(
                {"id": election_id, "outcome": "error", "code": exc.code, "error": str(exc)}
            )
            continue

        if change.changed:
            result.updated += 1
            outcome = "updated"
        else:
            result.unchanged += 1
            outcome = "unchanged"
        result.outcomes.append(
            {"id": election_id, "outcome": outcome, "previous_status": change.previous_status}
        )

    if result.errors:
        logger.warning(
            "election_bulk_status_partial status=%s updated=%s failed=%s actor=%s",
            status_value,
            result.updated,
            len(result.errors),
            actor or "",
        )
    return result


@transaction.atomic
def update_election(
    *,
    election_id: int,
    changes: Mapping[str, object],
    actor: str | None = None,
) -> Election:
    unknown = sorted(set(changes) - UPDATABLE_ELECTION_FIELDS)
    if unknown:
        raise ElectionValidationError(f"fields cannot be updated: {', '.join(unknown)}")

    election = get_election(election_id, for_update=True)
    update_fields: list[str] = []

    if "title" in changes:
        title = str(changes["title"] or "").strip()
        if not title:
            raise ElectionValidationError("title must not be empty")
        check_max_length(Election, "title", title)
        if title != election.title:
            election.title = title
            update_fields.append("title")

    if "description" in changes:
        description = str(changes["description"] or "")
        if description != election.description:
            election.description = description
            update_fields.append("description")

    if "election_date" in changes:
        date = normalize_election_date(changes["election_date"])
        if date != election.election_date:
            election.election_date = date
            update_fields.append("election_date")

    if update_fields:
        election.save(update_fields=[*update_fields, "updated_at"])
        record_audit_event(
            election=election,
            event_type="election_updated",
            payload={"fields": update_fields},
            actor=actor,
        )

    if "status" in changes:
        _apply_status(election=election, status=normalize_status(changes["status"]), actor=actor)

    return election


@dataclass(frozen=True)
class ElectionDeletionSummary:
    election_id: int
    title: str
    candidates: int
    votes: int

    def as_dict(self) -> dict[str, object]:
        return {
            "election_id": self.election_id,
            "title": self.title,
            "candidates": self.candidates,
            "votes": self.votes,
        }


def election_deletion_preview(*, election_id: int) -> ElectionDeletionSummary:
    election = get_election(election_id)
    return ElectionDeletionSummary(
        election_id=int(election.pk),
        title=election.title,
        candidates=Candidate.objects.filter(election=election).count(),
        votes=Vote.objects.filter(election=election).count(),
    )


@transaction.atomic
def delete_election(*, election_id: int, actor: str | None = None) -> ElectionDeletionSummary:
    """Irreversibly delete an election with its candidates, votes and audit trail."""
    election = get_election(election_id, for_update=True)
    summary = ElectionDeletionSummary(
        election_id=int(election.pk),
        title=election.title,
        candidates=Candidate.objects.filter(election=election).count(),
        votes=Vote.objects.filter(election=election).count(),
    )

    # Votes reference candidates; remove them first so the cascade order never matters.
    Vote.objects.filter(election=election).delete()
    election.delete()

    # The audit rows went with the election, so the log line is the only trace left.
    logger.warning(
        "election_deleted election_id=%s title=%r candidates=%s votes=%s actor=%s",
        summary.election_id,
        summary.title,
        summary.candidates,
        summary.votes,
        actor or "",
    )
    return summary
