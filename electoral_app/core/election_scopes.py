from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import ClassVar


class ScopeKind(StrEnum):
    national = "national"
    state = "state"
    senatorial_district = "senatorial_district"
    lga = "lga"
    ward = "ward"


@dataclass(frozen=True, slots=True)
class NationalScope:
    kind: ClassVar[ScopeKind] = ScopeKind.national

    @property
    def unit_id(self) -> None:
        return None


@dataclass(frozen=True, slots=True)
class StateScope:
    kind: ClassVar[ScopeKind] = ScopeKind.state
    state_id: int

    @property
    def unit_id(self) -> int:
        return self.state_id


@dataclass(frozen=True, slots=True)
class SenatorialDistrictScope:
    kind: ClassVar[ScopeKind] = ScopeKind.senatorial_district
    senatorial_district_id: int

    @property
    def unit_id(self) -> int:
        return self.senatorial_district_id


@dataclass(frozen=True, slots=True)
class LgaScope:
    kind: ClassVar[ScopeKind] = ScopeKind.lga
    lga_id: int

    @property
    def unit_id(self) -> int:
        return self.lga_id


@dataclass(frozen=True, slots=True)
class WardScope:
    kind: ClassVar[ScopeKind] = ScopeKind.ward
    ward_id: int

    @property
    def unit_id(self) -> int:
        return self.ward_id


type ElectionScope = NationalScope | StateScope | SenatorialDistrictScope | LgaScope | WardScope

_UNIT_SCOPE_CLASSES: dict[ScopeKind, type[StateScope | SenatorialDistrictScope | LgaScope | WardScope]] = {
    ScopeKind.state: StateScope,
    ScopeKind.senatorial_district: SenatorialDistrictScope,
    ScopeKind.lga: LgaScope,
    ScopeKind.ward: WardScope,
}


def scope_for(kind: ScopeKind | str, unit_id: int | None = None) -> ElectionScope:
    """Build the scope value for a kind and (for non-national kinds) a unit id."""
    scope_kind = ScopeKind(kind)
    if scope_kind == ScopeKind.national:
        if unit_id is not None:
            raise ValueError("national scope does not take a unit id")
        return NationalScope()

    if unit_id is None:
        raise ValueError(f"{scope_kind} scope requires a unit id")
    return _UNIT_SCOPE_CLASSES[scope_kind](int(unit_id))


def scope_columns(scope: ElectionScope) -> dict[str, object]:
    """Column values used to persist or filter on a scope."""
    return {"scope_kind": scope.kind.value, "scope_unit_id": scope.unit_id}


def scope_label(scope: ElectionScope) -> str:
    if isinstance(scope, NationalScope):
        return "national"
    return f"{scope.kind}:{scope.unit_id}"
