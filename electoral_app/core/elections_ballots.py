"""Ballot/tally ledger.

A vote is one row per (election, voter). The candidate and election counters
are caches of those rows; they move only inside the transaction that inserts
the vote, by atomic ``F()`` increments, so readers never observe a vote
without its tally.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.db import IntegrityError, transaction
from django.db.models import Count, F

from core.elections_errors import (
    DuplicateVoteError,
    ElectionValidationError,
    InvalidCandidateError,
    NotVotableError,
)
from core.elections_services import check_max_length, get_election, record_audit_event
from core.models import Candidate, Election, Vote

logger = logging.getLogger(__name__)


def _coerce_id(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@transaction.atomic
def cast_vote(
    *,
    election_id: object,
    candidate_id: object,
    voter_id: object,
    integrity_tag: object = "",
) -> Vote:
    voter = str(voter_id or "").strip()
    if not voter:
        raise ElectionValidationError("voter identity is required")
    check_max_length(Vote, "voter_id", voter)
    tag = check_max_length(Vote, "integrity_tag", str(integrity_tag or "").strip())

    normalized_election_id = _coerce_id(election_id)
    election = (
        Election.objects.filter(pk=normalized_election_id).first() if normalized_election_id is not None else None
    )
    if election is None or election.status != Election.Status.ongoing:
        raise NotVotableError("this election is not open for voting")

    normalized_candidate_id = _coerce_id(candidate_id)
    candidate = (
        Candidate.objects.filter(pk=normalized_candidate_id, election=election).first()
        if normalized_candidate_id is not None
        else None
    )
    if candidate is None:
        raise InvalidCandidateError("candidate does not belong to this election")

    if Vote.objects.filter(election=election, voter_id=voter).exists():
        raise DuplicateVoteError("you have already voted in this election")

    try:
        with transaction.atomic():
            vote = Vote.objects.create(
                election=election,
                candidate=candidate,
                voter_id=voter,
                integrity_tag=tag,
            )
    except IntegrityError as exc:
        # The unique (election, voter_id) constraint settles concurrent attempts.
        if Vote.objects.filter(election=election, voter_id=voter).exists():
            raise DuplicateVoteError("you have already voted in this election") from exc
        # Otherwise the candidate vanished after the lookup.
        logger.warning(
            "election_vote_rejected election_id=%s candidate_id=%s error=%s", election.pk, candidate.pk, exc
        )
        raise InvalidCandidateError("candidate does not belong to this election") from exc

    Candidate.objects.filter(pk=candidate.pk).update(votes=F("votes") + 1)
    opened = Election.objects.filter(pk=election.pk, status=Election.Status.ongoing).update(
        total_votes_cast=F("total_votes_cast") + 1
    )
    if not opened:
        # Closed between the status check and the increment; raising rolls the vote back.
        raise NotVotableError("this election is not open for voting")

    record_audit_event(
        election=election,
        event_type="vote_cast",
        payload={"candidate_id": candidate.pk},
    )
    logger.info("election_vote_cast election_id=%s candidate_id=%s", election.pk, candidate.pk)
    return vote


@dataclass(frozen=True)
class CandidateTally:
    candidate_id: int
    name: str
    party_id: int
    party: str
    running_mate: str
    votes: int

    def as_dict(self) -> dict[str, object]:
        return {
            "id": self.candidate_id,
            "name": self.name,
            "party_id": self.party_id,
            "party": self.party,
            "running_mate": self.running_mate,
            "votes": self.votes,
        }


@dataclass(frozen=True)
class ElectionResults:
    election_id: int
    title: str
    position: str
    status: str
    total_votes: int
    candidates: tuple[CandidateTally, ...]

    @property
    def leader(self) -> CandidateTally | None:
        """The single highest-voted candidate, or None while nobody leads outright."""
        if not self.candidates or self.candidates[0].votes == 0:
            return None
        if len(self.candidates) > 1 and self.candidates[1].votes == self.candidates[0].votes:
            return None
        return self.candidates[0]

    def as_dict(self) -> dict[str, object]:
        leader = self.leader
        return {
            "election_id": self.election_id,
            "title": self.title,
            "position": self.position,
            "status": self.status,
            "total_votes": self.total_votes,
            "leader": leader.candidate_id if leader is not None else None,
            "candidates": [c.as_dict() for c in self.candidates],
        }


def get_election_results(*, election_id: int) -> ElectionResults:
    election = get_election(election_id)
    tallies = tuple(
        CandidateTally(
            candidate_id=int(candidate.pk),
            name=candidate.name,
            party_id=int(candidate.party_id),
            party=candidate.party.abbreviation,
            running_mate=candidate.running_mate,
            votes=int(candidate.votes),
        )
        for candidate in Candidate.objects.filter(election=election)
        .select_related("party")
        .order_by("-votes", "created_at", "id")
    )
    return ElectionResults(
        election_id=int(election.pk),
        title=election.title,
        position=election.position,
        status=election.status,
        total_votes=sum(t.votes for t in tallies),
        candidates=tallies,
    )


@dataclass(frozen=True)
class CandidateDrift:
    candidate_id: int
    recorded: int
    actual: int


@dataclass(frozen=True)
class TallyReconciliation:
    election_id: int
    recorded_total: int
    actual_total: int
    candidates: tuple[CandidateDrift, ...]
    fixed: bool

    @property
    def is_consistent(self) -> bool:
        return self.recorded_total == self.actual_total and not self.candidates

    def as_dict(self) -> dict[str, object]:
        return {
            "election_id": self.election_id,
            "recorded_total": self.recorded_total,
            "actual_total": self.actual_total,
            "candidates": [
                {"id": d.candidate_id, "recorded": d.recorded, "actual": d.actual} for d in self.candidates
            ],
            "consistent": self.is_consistent,
            "fixed": self.fixed,
        }


@transaction.atomic
def reconcile_election_tallies(*, election_id: int, fix: bool = False, actor: str | None = None) -> TallyReconciliation:
    """Compare the cached counters with the vote rows, optionally rewriting the counters."""
    election = get_election(election_id, for_update=True)

    actual_by_candidate = dict(
        Vote.objects.filter(election=election)
        .values("candidate_id")
        .annotate(n=Count("id"))
        .values_list("candidate_id", "n")
    )

    drifts: list[CandidateDrift] = []
    for candidate in Candidate.objects.select_for_update().filter(election=election).order_by("id"):
        actual = int(actual_by_candidate.get(candidate.pk, 0))
        if candidate.votes != actual:
            drifts.append(CandidateDrift(candidate_id=int(candidate.pk), recorded=int(candidate.votes), actual=actual))

    actual_total = sum(int(n) for n in actual_by_candidate.values())
    recorded_total = int(election.total_votes_cast)
    consistent = recorded_total == actual_total and not drifts

    fixed = False
    if fix and not consistent:
        for drift in drifts:
            Candidate.objects.filter(pk=drift.candidate_id).update(votes=drift.actual)
        Election.objects.filter(pk=election.pk).update(total_votes_cast=actual_total)
        record_audit_event(
            election=election,
            event_type="tallies_reconciled",
            payload={
                "recorded_total": recorded_total,
                "actual_total": actual_total,
                "candidates": [d.candidate_id for d in drifts],
            },
            actor=actor,
        )
        fixed = True

    if not consistent:
        logger.warning(
            "election_tally_drift election_id=%s recorded_total=%s actual_total=%s candidates=%s fixed=%s",
            election.pk,
            recorded_total,
            actual_total,
            len(drifts),
            fixed,
        )

    return TallyReconciliation(
        election_id=int(election.pk),
        recorded_total=recorded_total,
        actual_total=actual_total,
        candidates=tuple(drifts),
        fixed=fixed,
    )
