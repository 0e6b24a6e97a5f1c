from io import StringIO

from django.core.management import CommandError, call_command
from django.test import TestCase

from core.elections_ballots import cast_vote
from core.models import AuditLogEntry, Candidate, Election
from core.tests.utils_test_data import create_election, create_party, ensure_states


class GenerateElectionsCommandTests(TestCase):
    def _call(self, *args: str) -> tuple[str, str]:
        stdout = StringIO()
        stderr = StringIO()
        call_command("generate_elections", *args, stdout=stdout, stderr=stderr)
        return stdout.getvalue(), stderr.getvalue()

    def test_creates_then_skips_on_rerun(self) -> None:
        ensure_states()
        args = ("--position", "governorship", "--year", "2027", "--date", "2027-03-11", "--all")

        out, err = self._call(*args)

        self.assertIn("governorship: created=37 skipped=0 errors=0", out)
        self.assertIn("Done: created=37 skipped=0 errors=0 rejected=0.", out)
        self.assertEqual(err, "")
        self.assertEqual(AuditLogEntry.objects.filter(actor="generate_elections").count(), 37)

        out, _err = self._call(*args)

        self.assertIn("Done: created=0 skipped=37 errors=0 rejected=0.", out)
        self.assertEqual(Election.objects.count(), 37)

    def test_dry_run_writes_nothing(self) -> None:
        states = ensure_states(3)
        create_election(position="governorship", unit=states[0])

        out, _err = self._call(
            "--position", "governorship", "--year", "2027", "--date", "2027-03-11", "--all", "--dry-run"
        )

        self.assertIn(f"[dry-run] Would create governorship election for state:{states[1].pk} ({states[1].name}).", out)
        self.assertIn("[dry-run] Done: would_create=2 would_skip=1.", out)
        self.assertEqual(Election.objects.count(), 1)

    def test_unknown_units_are_reported_and_can_fail_the_run(self) -> None:
        (state,) = ensure_states(1)
        args = (
            "--position", "governorship", "--year", "2027", "--date", "2027-03-11",
            "--unit", str(state.pk), "--unit", "99999",
        )

        out, err = self._call(*args)

        self.assertIn("Done: created=1 skipped=0 errors=0 rejected=1.", out)
        self.assertIn("Rejected state id 99999: unknown state id", err)

        with self.assertRaises(CommandError):
            self._call(*args, "--fail-on-errors")

    def test_invalid_input_is_a_command_error(self) -> None:
        ensure_states(1)

        with self.assertRaises(CommandError):
            self._call("--position", "governorship", "--year", "2027", "--date", "2027-03-11")
        with self.assertRaises(CommandError):
            self._call("--position", "governorship", "--year", "2027", "--date", "tomorrow", "--all")

        self.assertFalse(Election.objects.exists())

    def test_presidential_needs_no_selection(self) -> None:
        out, _err = self._call(
            "--position", "presidential", "--year", "2027", "--date", "2027-02-25", "--status", "ongoing"
        )

        self.assertIn("presidential: created=1 skipped=0 errors=0", out)
        self.assertEqual(Election.objects.get().status, Election.Status.ongoing)


class ReconcileElectionTalliesCommandTests(TestCase):
    def setUp(self) -> None:
        (state,) = ensure_states(1)
        self.election = create_election(position="governorship", unit=state, status=Election.Status.ongoing)
        self.candidate = Candidate.objects.create(election=self.election, party=create_party("APC"), name="Ada")
        cast_vote(election_id=self.election.pk, candidate_id=self.candidate.pk, voter_id="v1")

    def _call(self, *args: str) -> str:
        stdout = StringIO()
        call_command("reconcile_election_tallies", *args, stdout=stdout)
        return stdout.getvalue()

    def test_consistent_counters(self) -> None:
        out = self._call()

        self.assertIn("Checked 1 elections: drifted=0 fixed=0.", out)

    def test_reports_and_fixes_drift(self) -> None:
        Candidate.objects.filter(pk=self.candidate.pk).update(votes=4)
        Election.objects.filter(pk=self.election.pk).update(total_votes_cast=4)

        with self.assertLogs("core.elections_ballots", level="WARNING"):
            out = self._call("--election", str(self.election.pk))

        self.assertIn(f"Election {self.election.pk}: recorded_total=4 actual_total=1 candidates_drifted=1", out)
        self.assertIn("Checked 1 elections: drifted=1 fixed=0.", out)

        with self.assertLogs("core.elections_ballots", level="WARNING"):
            out = self._call("--fix")

        self.assertIn("(fixed)", out)
        self.assertIn("drifted=1 fixed=1.", out)
        self.candidate.refresh_from_db()
        self.assertEqual(self.candidate.votes, 1)
        self.assertIn("drifted=0 fixed=0.", self._call())

    def test_unknown_election_is_a_command_error(self) -> None:
        with self.assertRaises(CommandError):
            self._call("--election", "987654")
