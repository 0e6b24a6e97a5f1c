from __future__ import annotations

import logging

from django.db import IntegrityError, transaction

from core.elections_errors import (
    CandidateHasVotesError,
    ElectionConflictError,
    ElectionNotFoundError,
    ElectionValidationError,
)
from core.elections_services import TERMINAL_STATUSES, check_max_length, get_election, record_audit_event
from core.models import Candidate, Party, Vote

logger = logging.getLogger(__name__)


def _coerce_party_id(party_id: object) -> int:
    if party_id is None or isinstance(party_id, bool) or str(party_id).strip() == "":
        raise ElectionValidationError("party_id is required")
    try:
        return int(party_id)
    except (TypeError, ValueError) as exc:
        raise ElectionValidationError("party_id must be an integer") from exc


@transaction.atomic
def add_candidate(
    *,
    election_id: int,
    name: object,
    party_id: object,
    running_mate: object = None,
    actor: str | None = None,
) -> Candidate:
    candidate_name = str(name or "").strip()
    if not candidate_name:
        raise ElectionValidationError("candidate name is required")
    check_max_length(Candidate, "name", candidate_name)
    normalized_party_id = _coerce_party_id(party_id)

    election = get_election(election_id, for_update=True)

    party = Party.objects.filter(pk=normalized_party_id).first()
    if party is None:
        raise ElectionValidationError(f"party {normalized_party_id} does not exist")
    if not party.is_active:
        raise ElectionValidationError(f"party {party.abbreviation} is not active")

    if election.status in TERMINAL_STATUSES:
        raise ElectionConflictError(f"cannot add candidates to a {election.status} election")

    if Candidate.objects.filter(election=election, party=party).exists():
        raise ElectionConflictError(f"{party.abbreviation} already has a candidate in this election")

    # Ignored, not rejected, for positions without a running mate.
    mate = str(running_mate or "").strip() if election.accepts_running_mate else ""
    check_max_length(Candidate, "running_mate", mate)

    try:
        with transaction.atomic():
            candidate = Candidate.objects.create(
                election=election,
                party=party,
                name=candidate_name,
                running_mate=mate,
            )
    except IntegrityError as exc:
        raise ElectionConflictError(f"{party.abbreviation} already has a candidate in this election") from exc

    record_audit_event(
        election=election,
        event_type="candidate_added",
        payload={
            "candidate_id": candidate.pk,
            "name": candidate.name,
            "party": party.abbreviation,
            "running_mate": mate,
        },
        actor=actor,
    )
    logger.info(
        "election_candidate_added election_id=%s candidate_id=%s party=%s actor=%s",
        election.pk,
        candidate.pk,
        party.abbreviation,
        actor or "",
    )
    return candidate


@transaction.atomic
def remove_candidate(*, election_id: int, candidate_id: int, actor: str | None = None) -> None:
    """Delete a candidate that has not received any votes.

    Candidates with ballots can only disappear with their whole election.
    """
    election = get_election(election_id, for_update=True)

    candidate = Candidate.objects.select_for_update().filter(pk=candidate_id, election=election).first()
    if candidate is None:
        raise ElectionNotFoundError(f"candidate {candidate_id} does not exist in election {election.pk}")

    if candidate.votes > 0 or Vote.objects.filter(candidate=candidate).exists():
        raise CandidateHasVotesError(f"candidate {candidate.pk} already has votes and cannot be removed")

    payload = {"candidate_id": candidate.pk, "name": candidate.name, "party_id": candidate.party_id}
    candidate.delete()

    record_audit_event(election=election, event_type="candidate_removed", payload=payload, actor=actor)
    logger.info(
        "election_candidate_removed election_id=%s candidate_id=%s actor=%s",
        election.pk,
        candidate_id,
        actor or "",
    )
