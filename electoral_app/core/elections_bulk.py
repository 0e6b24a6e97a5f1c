from __future__ import annotations

import datetime
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from django.conf import settings
from django.db import DatabaseError, IntegrityError, transaction

from core.election_scopes import scope_label
from core.elections_errors import ElectionValidationError, PartialBatchError
from core.elections_scope import ScopeResolution, ScopeSelection, ScopeUnit, normalize_position, resolve_scope_units
from core.elections_services import (
    create_election_for_unit,
    default_election_title,
    normalize_election_date,
    normalize_election_year,
    normalize_status,
)
from core.models import Election, ElectionPosition

logger = logging.getLogger(__name__)


@dataclass
class BulkGenerationResult:
    created: int = 0
    skipped: int = 0
    units: int = 0
    errors: list[dict[str, object]] = field(default_factory=list)
    rejected: list[dict[str, object]] = field(default_factory=list)
    elections: list[int] = field(default_factory=list)
    by_position: dict[str, dict[str, int]] = field(default_factory=dict)

    @property
    def is_reconciled(self) -> bool:
        return self.created + self.skipped + len(self.errors) == self.units

    def as_dict(self) -> dict[str, object]:
        return {
            "created": self.created,
            "skipped": self.skipped,
            "units": self.units,
            "errors": self.errors,
            "rejected": self.rejected,
            "elections": self.elections,
            "by_position": self.by_position,
        }

    def raise_for_errors(self) -> None:
        if self.errors or self.rejected:
            raise PartialBatchError(
                f"bulk generation finished with {len(self.errors)} failed and {len(self.rejected)} rejected units",
                report=self.as_dict(),
            )


def _ordered_positions(positions: Iterable[object]) -> list[str]:
    requested = {normalize_position(position) for position in positions}
    if not requested:
        raise ElectionValidationError("at least one position is required")
    return [position for position in ElectionPosition.values if position in requested]


def _build_title(*, template: str, position: str, election_year: int, unit: ScopeUnit) -> str:
    if not template:
        return default_election_title(position=position, election_year=election_year, unit=unit)
    return template.format(
        year=election_year,
        position=ElectionPosition(position).label,
        unit=unit.name,
    ).strip()


def _check_title_template(template: str) -> None:
    if not template:
        return
    try:
        template.format(year=2000, position="Position", unit="Unit")
    except (AttributeError, KeyError, IndexError, ValueError) as exc:
        raise ElectionValidationError(
            "title_template may only use the {year}, {position} and {unit} fields"
        ) from exc


def _existing_unit_ids(*, position: str, election_year: int) -> set[int | None]:
    return set(
        Election.objects.filter(position=position, election_year=election_year).values_list(
            "scope_unit_id", flat=True
        )
    )


def generate_elections(
    *,
    positions: Iterable[object],
    election_year: object,
    election_date: object,
    status: object = None,
    selections: Mapping[str, ScopeSelection] | None = None,
    default_selection: ScopeSelection | None = None,
    title_template: str = "",
    actor: str | None = None,
) -> BulkGenerationResult:
    """Create one election per resolved unit for every requested position.

    Input errors (unknown position, empty selection, bad template) raise before
    anything is written. After that the batch is best effort: each unit runs in
    its own transaction, existing elections are skipped and failures are
    recorded per unit. Re-running the same request only fills in the gaps.
    """
    ordered = _ordered_positions(positions)
    year = normalize_election_year(election_year)
    date: datetime.date = normalize_election_date(election_date)
    status_value = normalize_status(status or settings.ELECTION_DEFAULT_STATUS)
    template = str(title_template or "").strip()
    _check_title_template(template)

    selections = selections or {}
    resolutions: list[ScopeResolution] = []
    for position in ordered:
        selection = selections.get(position) or default_selection or ScopeSelection()
        resolutions.append(resolve_scope_units(position=position, selection=selection))

    total_units = sum(len(resolution.units) for resolution in resolutions)
    max_units = int(settings.ELECTION_BULK_MAX_UNITS)
    if total_units > max_units:
        raise ElectionValidationError(
            f"bulk generation would touch {total_units} units; the limit is {max_units}"
        )

    result = BulkGenerationResult(units=total_units)
    for resolution in resolutions:
        result.rejected.extend({"position": resolution.position, **r.as_dict()} for r in resolution.rejected)
        _generate_for_position(
            resolution=resolution,
            election_year=year,
            election_date=date,
            status=status_value,
            template=template,
            actor=actor,
            result=result,
        )

    logger.info(
        "election_bulk_generated positions=%s year=%s units=%s created=%s skipped=%s errors=%s rejected=%s actor=%s",
        ",".join(ordered),
        year,
        result.units,
        result.created,
        result.skipped,
        len(result.errors),
        len(result.rejected),
        actor or "",
    )
    return result


def _generate_for_position(
    *,
    resolution: ScopeResolution,
    election_year: int,
    election_date: datetime.date,
    status: str,
    template: str,
    actor: str | None,
    result: BulkGenerationResult,
) -> None:
    position = resolution.position
    counts = result.by_position.setdefault(position, {"created": 0, "skipped": 0, "errors": 0})
    existing = _existing_unit_ids(position=position, election_year=election_year)

    for unit in resolution.units:
        unit_id = unit.scope.unit_id
        if unit_id in existing:
            result.skipped += 1
            counts["skipped"] += 1
            continue

        try:
            with transaction.atomic():
                election = create_election_for_unit(
                    position=position,
                    unit=unit,
                    election_year=election_year,
                    election_date=election_date,
                    status=status,
                    title=_build_title(
                        template=template, position=position, election_year=election_year, unit=unit
                    ),
                    actor=actor,
                )
        except IntegrityError:
            # Another writer created it after the existence snapshot.
            logger.info(
                "election_bulk_unit_skipped position=%s unit=%s reason=concurrent_create",
                position,
                scope_label(unit.scope),
            )
            result.skipped += 1
            counts["skipped"] += 1
            continue
        except ElectionValidationError as exc:
            logger.warning(
                "election_bulk_unit_rejected position=%s unit=%s error=%s",
                position,
                scope_label(unit.scope),
                exc,
            )
            result.errors.append({"position": position, "unit": unit.as_dict(), "reason": str(exc)})
            counts["errors"] += 1
            continue
        except DatabaseError as exc:
            logger.exception(
                "election_bulk_unit_failed position=%s unit=%s",
                position,
                scope_label(unit.scope),
            )
            result.errors.append({"position": position, "unit": unit.as_dict(), "reason": str(exc)})
            counts["errors"] += 1
            continue

        existing.add(unit_id)
        result.created += 1
        counts["created"] += 1
        result.elections.append(int(election.pk))
