"""Electoral scope resolution: which geographic units an election must exist at.

The position -> level table is fixed (``core.models.POSITION_SCOPE_KINDS``).
Resolution expands a selection request into concrete, deduplicated units,
rejecting unknown ids one by one instead of failing the whole request.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from django.db import models

from core.election_scopes import ElectionScope, NationalScope, ScopeKind, scope_for
from core.elections_errors import ElectionNotFoundError, ElectionValidationError
from core.models import POSITION_SCOPE_KINDS, ElectionPosition, Lga, SenatorialDistrict, State, Ward

NATIONAL_UNIT_NAME = "National"

_UNIT_MODELS: dict[ScopeKind, type[models.Model]] = {
    ScopeKind.state: State,
    ScopeKind.senatorial_district: SenatorialDistrict,
    ScopeKind.lga: Lga,
    ScopeKind.ward: Ward,
}

# Lookup that restricts each unit level to a set of containing states.
_STATE_FILTER_LOOKUPS: dict[ScopeKind, str] = {
    ScopeKind.state: "pk__in",
    ScopeKind.senatorial_district: "state__in",
    ScopeKind.lga: "state__in",
    ScopeKind.ward: "lga__state__in",
}


@dataclass(frozen=True)
class ScopeSelection:
    """Which units to target: every unit (optionally within states) or explicit ids.

    Explicit ``ids`` take precedence. Without ids, ``state_ids`` expands to every
    unit contained in those states even when ``all`` is false.
    """

    all: bool = False
    ids: tuple[int, ...] = ()
    state_ids: tuple[int, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.all and not self.ids and not self.state_ids

    @classmethod
    def everything(cls) -> ScopeSelection:
        return cls(all=True)

    @classmethod
    def from_payload(cls, data: object) -> ScopeSelection:
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ElectionValidationError("selection must be an object")

        raw_all = data.get("all")
        if raw_all is not None and not isinstance(raw_all, bool):
            raise ElectionValidationError("all must be a boolean")

        return cls(
            all=bool(raw_all),
            ids=_coerce_ids(data.get("ids"), field="ids"),
            state_ids=_coerce_ids(data.get("state_ids"), field="state_ids"),
        )


@dataclass(frozen=True)
class ScopeUnit:
    scope: ElectionScope
    name: str
    code: str = ""

    @property
    def label(self) -> str:
        if isinstance(self.scope, NationalScope):
            return NATIONAL_UNIT_NAME
        return f"{self.scope.kind}:{self.scope.unit_id} ({self.name})"

    def as_dict(self) -> dict[str, object]:
        return {
            "kind": self.scope.kind.value,
            "id": self.scope.unit_id,
            "name": self.name,
        }


@dataclass(frozen=True)
class ScopeRejection:
    kind: ScopeKind
    unit_id: int
    reason: str

    def as_dict(self) -> dict[str, object]:
        return {"kind": self.kind.value, "id": self.unit_id, "reason": self.reason}


@dataclass(frozen=True)
class ScopeResolution:
    position: str
    units: tuple[ScopeUnit, ...]
    rejected: tuple[ScopeRejection, ...] = ()


def _coerce_ids(raw: object, *, field: str) -> tuple[int, ...]:
    if raw is None:
        return ()
    if isinstance(raw, (str, bytes)) or not isinstance(raw, Iterable):
        raise ElectionValidationError(f"{field} must be a list of ids")

    ids: list[int] = []
    for value in raw:
        if isinstance(value, bool):
            raise ElectionValidationError(f"{field} must contain integer ids")
        try:
            ids.append(int(value))
        except (TypeError, ValueError) as exc:
            raise ElectionValidationError(f"{field} must contain integer ids") from exc
    return tuple(ids)


def _dedupe(ids: Iterable[int]) -> list[int]:
    return list(dict.fromkeys(ids))


def normalize_position(position: object) -> str:
    value = str(position or "").strip()
    if value not in ElectionPosition.values:
        raise ElectionValidationError(f"unknown position: {value or '(empty)'}")
    return value


def scope_kind_for_position(position: object) -> ScopeKind:
    return POSITION_SCOPE_KINDS[normalize_position(position)]


def _unit_from_row(kind: ScopeKind, row: models.Model) -> ScopeUnit:
    return ScopeUnit(
        scope=scope_for(kind, int(row.pk)),
        name=str(row.name),
        code=str(getattr(row, "code", "") or ""),
    )


def _national_unit() -> ScopeUnit:
    return ScopeUnit(scope=NationalScope(), name=NATIONAL_UNIT_NAME)


def resolve_scope_units(*, position: object, selection: ScopeSelection) -> ScopeResolution:
    """Expand a selection into the units an election of ``position`` must exist at."""
    position_value = normalize_position(position)
    kind = POSITION_SCOPE_KINDS[position_value]

    if kind == ScopeKind.national:
        # A single implicit unit; any selection is irrelevant.
        return ScopeResolution(position=position_value, units=(_national_unit(),))

    if selection.is_empty:
        raise ElectionValidationError(f"no {kind} units selected for {position_value}")

    model = _UNIT_MODELS[kind]
    rejected: list[ScopeRejection] = []

    if selection.ids:
        ids = _dedupe(selection.ids)
        rows_by_id = {int(row.pk): row for row in model.objects.filter(pk__in=ids).only("id", "name", "code")}
        units: list[ScopeUnit] = []
        for unit_id in ids:
            row = rows_by_id.get(unit_id)
            if row is None:
                rejected.append(ScopeRejection(kind=kind, unit_id=unit_id, reason=f"unknown {kind} id"))
                continue
            units.append(_unit_from_row(kind, row))
        return ScopeResolution(position=position_value, units=tuple(units), rejected=tuple(rejected))

    qs = model.objects.all()
    if selection.state_ids:
        state_ids = _dedupe(selection.state_ids)
        known_state_ids = set(State.objects.filter(pk__in=state_ids).values_list("id", flat=True))
        for state_id in state_ids:
            if state_id not in known_state_ids:
                rejected.append(
                    ScopeRejection(kind=ScopeKind.state, unit_id=state_id, reason="unknown state id")
                )
        qs = qs.filter(**{_STATE_FILTER_LOOKUPS[kind]: sorted(known_state_ids)})

    units = [_unit_from_row(kind, row) for row in qs.only("id", "name", "code")]
    return ScopeResolution(position=position_value, units=tuple(units), rejected=tuple(rejected))


def resolve_scope_unit(*, position: object, unit_id: object) -> ScopeUnit:
    """Resolve one explicit unit for a single election create."""
    kind = scope_kind_for_position(position)
    if kind == ScopeKind.national:
        return _national_unit()

    if unit_id is None or str(unit_id).strip() == "":
        raise ElectionValidationError(f"a {kind} id is required for {position}")
    try:
        normalized_id = int(unit_id)
    except (TypeError, ValueError) as exc:
        raise ElectionValidationError(f"{kind} id must be an integer") from exc

    row = _UNIT_MODELS[kind].objects.filter(pk=normalized_id).only("id", "name", "code").first()
    if row is None:
        raise ElectionNotFoundError(f"unknown {kind} id: {normalized_id}")
    return _unit_from_row(kind, row)


def scope_unit_names(scopes: Iterable[ElectionScope]) -> dict[ElectionScope, str]:
    """Display names for many scopes with one query per unit level."""
    ids_by_kind: dict[ScopeKind, set[int]] = {}
    names: dict[ElectionScope, str] = {}
    for scope in scopes:
        if isinstance(scope, NationalScope):
            names[scope] = NATIONAL_UNIT_NAME
        else:
            ids_by_kind.setdefault(scope.kind, set()).add(scope.unit_id)

    for kind, ids in ids_by_kind.items():
        for unit_id, name in _UNIT_MODELS[kind].objects.filter(pk__in=ids).values_list("id", "name"):
            names[scope_for(kind, unit_id)] = str(name)
    return names


def scope_unit_name(scope: ElectionScope) -> str:
    return scope_unit_names([scope]).get(scope, "")


def elections_within_state_q(state_id: int) -> models.Q:
    """Filter for elections whose scope lies inside one state."""
    return (
        models.Q(scope_kind=ScopeKind.state.value, scope_unit_id=state_id)
        | models.Q(
            scope_kind=ScopeKind.senatorial_district.value,
            scope_unit_id__in=SenatorialDistrict.objects.filter(state_id=state_id).values("id"),
        )
        | models.Q(
            scope_kind=ScopeKind.lga.value,
            scope_unit_id__in=Lga.objects.filter(state_id=state_id).values("id"),
        )
        | models.Q(
            scope_kind=ScopeKind.ward.value,
            scope_unit_id__in=Ward.objects.filter(lga__state_id=state_id).values("id"),
        )
    )
