from typing import override

from django.core.management.base import BaseCommand, CommandError

from core.elections_ballots import reconcile_election_tallies
from core.elections_errors import ElectionError
from core.models import Election


class Command(BaseCommand):
    help = (
        "Compare the cached candidate and election vote counters with the "
        "recorded ballots, and optionally rewrite counters that drifted."
    )

    @override
    def add_arguments(self, parser) -> None:
        parser.add_argument(
            "--election",
            action="append",
            dest="election_ids",
            type=int,
            default=[],
            help="Election id to check; repeatable. Defaults to every election.",
        )
        parser.add_argument(
            "--fix",
            action="store_true",
            help="Rewrite drifted counters from the ballot rows.",
        )

    @override
    def handle(self, *args, **options) -> None:
        fix: bool = bool(options.get("fix"))
        election_ids: list[int] = list(options.get("election_ids") or [])
        if not election_ids:
            election_ids = list(Election.objects.order_by("id").values_list("id", flat=True))

        checked = 0
        drifted = 0
        fixed = 0
        for election_id in election_ids:
            try:
                report = reconcile_election_tallies(election_id=election_id, fix=fix, actor="reconcile_election_tallies")
            except ElectionError as exc:
                raise CommandError(str(exc)) from exc

            checked += 1
            if report.is_consistent:
                continue

            drifted += 1
            if report.fixed:
                fixed += 1
            self.stdout.write(
                f"Election {election_id}: recorded_total={report.recorded_total} "
                f"actual_total={report.actual_total} candidates_drifted={len(report.candidates)}"
                + (" (fixed)" if report.fixed else "")
            )

        self.stdout.write(f"Checked {checked} elections: drifted={drifted} fixed={fixed}.")
