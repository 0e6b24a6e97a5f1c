import functools
import operator

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q

from core.election_scopes import ElectionScope, ScopeKind, scope_for


class State(models.Model):
    name = models.CharField(max_length=128, unique=True)
    code = models.CharField(max_length=16, unique=True)
    region = models.CharField(max_length=64, blank=True, default="")
    capital = models.CharField(max_length=128, blank=True, default="")

    class Meta:
        ordering = ("name", "id")

    def __str__(self) -> str:
        return self.name


class SenatorialDistrict(models.Model):
    state = models.ForeignKey(State, on_delete=models.PROTECT, related_name="senatorial_districts")
    code = models.CharField(max_length=16, unique=True)
    name = models.CharField(max_length=128)

    class Meta:
        ordering = ("state__name", "name", "id")

    def __str__(self) -> str:
        return self.name


class Lga(models.Model):
    state = models.ForeignKey(State, on_delete=models.PROTECT, related_name="lgas")
    code = models.CharField(max_length=16, unique=True)
    name = models.CharField(max_length=128)

    class Meta:
        verbose_name = "LGA"
        verbose_name_plural = "LGAs"
        ordering = ("state__name", "name", "id")
        constraints = [
            models.UniqueConstraint(fields=["state", "name"], name="uniq_lga_state_name"),
        ]

    def __str__(self) -> str:
        return self.name


class Ward(models.Model):
    lga = models.ForeignKey(Lga, on_delete=models.PROTECT, related_name="wards")
    code = models.CharField(max_length=32, unique=True)
    name = models.CharField(max_length=128)
    ward_number = models.PositiveSmallIntegerField(blank=True, null=True)

    class Meta:
        ordering = ("lga__state__name", "lga__name", "name", "id")
        constraints = [
            models.UniqueConstraint(fields=["lga", "name"], name="uniq_ward_lga_name"),
        ]

    def __str__(self) -> str:
        return self.name


class Party(models.Model):
    name = models.CharField(max_length=255, unique=True)
    abbreviation = models.CharField(max_length=16, unique=True)
    color = models.CharField(max_length=16, blank=True, default="")
    is_active = models.BooleanField(default=True)

    class Meta:
        verbose_name_plural = "Parties"
        ordering = ("abbreviation", "id")

    def __str__(self) -> str:
        return self.abbreviation


class ElectionPosition(models.TextChoices):
    presidential = "presidential", "Presidential"
    governorship = "governorship", "Governorship"
    senatorial = "senatorial", "Senatorial"
    house_of_reps = "house_of_reps", "House of Representatives"
    state_assembly = "state_assembly", "State Assembly"
    lga_chairman = "lga_chairman", "LGA Chairmanship"
    councillorship = "councillorship", "Councillorship"


# Fixed policy: the office being contested determines the geographic level.
POSITION_SCOPE_KINDS: dict[str, ScopeKind] = {
    ElectionPosition.presidential: ScopeKind.national,
    ElectionPosition.governorship: ScopeKind.state,
    ElectionPosition.house_of_reps: ScopeKind.state,
    ElectionPosition.state_assembly: ScopeKind.state,
    ElectionPosition.senatorial: ScopeKind.senatorial_district,
    ElectionPosition.lga_chairman: ScopeKind.lga,
    ElectionPosition.councillorship: ScopeKind.ward,
}

RUNNING_MATE_POSITIONS: frozenset[str] = frozenset({ElectionPosition.presidential, ElectionPosition.governorship})


def _position_matches_scope_kind() -> Q:
    by_kind: dict[ScopeKind, list[str]] = {}
    for position, kind in POSITION_SCOPE_KINDS.items():
        by_kind.setdefault(kind, []).append(str(position))
    clauses = [
        Q(position__in=sorted(positions), scope_kind=kind.value)
        for kind, positions in sorted(by_kind.items())
    ]
    return functools.reduce(operator.or_, clauses)


class Election(models.Model):
    Position = ElectionPosition

    class Status(models.TextChoices):
        upcoming = "upcoming", "Upcoming"
        ongoing = "ongoing", "Ongoing"
        completed = "completed", "Completed"
        cancelled = "cancelled", "Cancelled"

    class ScopeKindChoices(models.TextChoices):
        national = ScopeKind.national.value, "National"
        state = ScopeKind.state.value, "State"
        senatorial_district = ScopeKind.senatorial_district.value, "Senatorial district"
        lga = ScopeKind.lga.value, "LGA"
        ward = ScopeKind.ward.value, "Ward"

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    position = models.CharField(max_length=32, choices=ElectionPosition.choices)
    election_year = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1900), MaxValueValidator(9999)],
    )
    election_date = models.DateField()
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.upcoming, db_index=True)

    # Tagged scope: the kind is implied by position, the unit id is null only for national.
    scope_kind = models.CharField(max_length=32, choices=ScopeKindChoices.choices)
    scope_unit_id = models.PositiveIntegerField(blank=True, null=True)

    total_votes_cast = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-election_year", "position", "title", "id")
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(scope_kind=ScopeKind.national.value, scope_unit_id__isnull=True)
                    | (~Q(scope_kind=ScopeKind.national.value) & Q(scope_unit_id__isnull=False))
                ),
                name="election_scope_unit_matches_kind",
            ),
            models.CheckConstraint(
                condition=_position_matches_scope_kind(),
                name="election_scope_kind_matches_position",
            ),
            models.UniqueConstraint(
                fields=["position", "election_year", "scope_kind", "scope_unit_id"],
                condition=Q(scope_unit_id__isnull=False),
                name="uniq_election_position_year_unit",
            ),
            models.UniqueConstraint(
                fields=["position", "election_year"],
                condition=Q(scope_unit_id__isnull=True),
                name="uniq_election_position_year_national",
            ),
        ]
        indexes = [
            models.Index(fields=["scope_kind", "scope_unit_id"], name="election_scope"),
        ]

    def __str__(self) -> str:
        return self.title

    @property
    def scope(self) -> ElectionScope:
        return scope_for(self.scope_kind, self.scope_unit_id)

    @property
    def accepts_running_mate(self) -> bool:
        return self.position in RUNNING_MATE_POSITIONS


class Candidate(models.Model):
    election = models.ForeignKey(Election, on_delete=models.CASCADE, related_name="candidates")
    party = models.ForeignKey(Party, on_delete=models.PROTECT, related_name="candidates")
    name = models.CharField(max_length=255)
    running_mate = models.CharField(max_length=255, blank=True, default="")
    votes = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("created_at", "id")
        constraints = [
            models.UniqueConstraint(
                fields=["election", "party"],
                name="uniq_candidate_election_party",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.election_id})"


class Vote(models.Model):
    election = models.ForeignKey(Election, on_delete=models.CASCADE, related_name="votes")
    candidate = models.ForeignKey(Candidate, on_delete=models.CASCADE, related_name="ballots")

    # Opaque member identity supplied by the authentication layer; not a FK.
    voter_id = models.CharField(max_length=128)

    # Opaque tag stored as given; nothing here verifies it.
    integrity_tag = models.CharField(max_length=128, blank=True, default="")
    cast_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["election", "voter_id"],
                name="uniq_vote_election_voter",
            ),
        ]
        indexes = [
            models.Index(fields=["candidate"], name="vote_candidate"),
        ]

    def __str__(self) -> str:
        return f"vote:{self.election_id}:{self.candidate_id}"


class AuditLogEntry(models.Model):
    election = models.ForeignKey(Election, on_delete=models.CASCADE, related_name="audit_log")
    timestamp = models.DateTimeField(auto_now_add=True)
    event_type = models.CharField(max_length=64)
    actor = models.CharField(max_length=128, blank=True, default="")
    payload = models.JSONField(blank=True, default=dict)

    class Meta:
        verbose_name_plural = "Audit log entries"
        ordering = ("timestamp", "id")
        indexes = [
            models.Index(fields=["election", "timestamp"], name="audit_el_ts"),
        ]

    def __str__(self) -> str:
        return f"{self.election_id}:{self.event_type}"
