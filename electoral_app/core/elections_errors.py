from __future__ import annotations

from typing import Any


class ElectionError(Exception):
    code = "election_error"


class ElectionValidationError(ElectionError):
    code = "validation"


class ElectionNotFoundError(ElectionError):
    code = "not_found"


class ElectionConflictError(ElectionError):
    code = "conflict"


class InvalidTransitionError(ElectionConflictError):
    code = "invalid_transition"


class CandidateHasVotesError(ElectionConflictError):
    code = "candidate_has_votes"


class DuplicateVoteError(ElectionConflictError):
    code = "duplicate_vote"


class NotVotableError(ElectionError):
    code = "not_votable"


class InvalidCandidateError(ElectionError):
    code = "invalid_candidate"


class PartialBatchError(ElectionError):
    """A batch finished with per-item failures; ``report`` holds the full outcome."""

    code = "partial_batch"

    def __init__(self, message: str, *, report: dict[str, Any]) -> None:
        super().__init__(message)
        self.report = report
