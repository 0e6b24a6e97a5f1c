from typing import override

from django.core.management.base import BaseCommand, CommandError

from core.elections_bulk import generate_elections
from core.elections_errors import ElectionError, PartialBatchError
from core.elections_scope import ScopeSelection, resolve_scope_units
from core.elections_services import election_exists_for_scope
from core.models import ElectionPosition


class Command(BaseCommand):
    help = (
        "Create one election per geographic unit for the given positions. "
        "Units that already have an election for the position and year are "
        "skipped, so an interrupted run can simply be repeated."
    )

    @override
    def add_arguments(self, parser) -> None:
        parser.add_argument(
            "--position",
            action="append",
            dest="positions",
            required=True,
            choices=ElectionPosition.values,
            help="Position to schedule; repeat for several positions.",
        )
        parser.add_argument("--year", type=int, required=True, help="Election year.")
        parser.add_argument("--date", required=True, help="Election date (YYYY-MM-DD).")
        parser.add_argument("--status", default=None, help="Initial status (defaults to ELECTION_DEFAULT_STATUS).")
        parser.add_argument(
            "--all",
            action="store_true",
            help="Target every unit at each position's level.",
        )
        parser.add_argument(
            "--state",
            action="append",
            dest="state_ids",
            type=int,
            default=[],
            help="Only target units inside this state id; repeatable.",
        )
        parser.add_argument(
            "--unit",
            action="append",
            dest="unit_ids",
            type=int,
            default=[],
            help="Target this unit id at each position's level; repeatable.",
        )
        parser.add_argument("--title-template", default="", help="Title format using {year}, {position}, {unit}.")
        parser.add_argument(
            "--fail-on-errors",
            action="store_true",
            help="Exit with an error when any unit failed or was rejected.",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be created without writing anything.",
        )

    @override
    def handle(self, *args, **options) -> None:
        positions: list[str] = list(options["positions"])
        dry_run: bool = bool(options.get("dry_run"))
        selection = ScopeSelection(
            all=bool(options.get("all")),
            ids=tuple(options.get("unit_ids") or ()),
            state_ids=tuple(options.get("state_ids") or ()),
        )

        if dry_run:
            self._dry_run(positions=positions, year=int(options["year"]), selection=selection)
            return

        try:
            result = generate_elections(
                positions=positions,
                election_year=options["year"],
                election_date=options["date"],
                status=options.get("status"),
                default_selection=selection,
                title_template=str(options.get("title_template") or ""),
                actor="generate_elections",
            )
        except ElectionError as exc:
            raise CommandError(str(exc)) from exc

        for position, counts in result.by_position.items():
            self.stdout.write(
                f"{position}: created={counts['created']} skipped={counts['skipped']} errors={counts['errors']}"
            )
        for rejection in result.rejected:
            self.stderr.write(f"Rejected {rejection['kind']} id {rejection['id']}: {rejection['reason']}")
        for error in result.errors:
            unit = error["unit"]
            self.stderr.write(f"Failed {error['position']} {unit['kind']}:{unit['id']}: {error['reason']}")

        self.stdout.write(
            f"Done: created={result.created} skipped={result.skipped} "
            f"errors={len(result.errors)} rejected={len(result.rejected)}."
        )

        if options.get("fail_on_errors"):
            try:
                result.raise_for_errors()
            except PartialBatchError as exc:
                raise CommandError(str(exc)) from exc

    def _dry_run(self, *, positions: list[str], year: int, selection: ScopeSelection) -> None:
        would_create = 0
        would_skip = 0
        for position in positions:
            try:
                resolution = resolve_scope_units(position=position, selection=selection)
            except ElectionError as exc:
                raise CommandError(str(exc)) from exc

            for unit in resolution.units:
                if election_exists_for_scope(position=resolution.position, election_year=year, scope=unit.scope):
                    would_skip += 1
                else:
                    would_create += 1
                    self.stdout.write(f"[dry-run] Would create {resolution.position} election for {unit.label}.")
            for rejection in resolution.rejected:
                self.stderr.write(f"[dry-run] Would reject {rejection.kind} id {rejection.unit_id}: {rejection.reason}")

        self.stdout.write(f"[dry-run] Done: would_create={would_create} would_skip={would_skip}.")
