from __future__ import annotations

import json

from django.test import Client, TestCase
from django.urls import reverse

from core.elections_ballots import cast_vote
from core.middleware import ACTOR_ID_SESSION_KEY, ACTOR_ROLE_SESSION_KEY
from core.models import Candidate, Election, Lga, Vote
from core.tests.utils_test_data import create_election, create_party, ensure_states, seed_geography


class ElectionApiTestCase(TestCase):
    def _login_as(self, actor_id: str, role: str) -> None:
        session = self.client.session
        session[ACTOR_ID_SESSION_KEY] = actor_id
        session[ACTOR_ROLE_SESSION_KEY] = role
        session.save()

    def _post(self, url: str, payload: object):
        return self.client.post(url, data=json.dumps(payload), content_type="application/json")

    def _patch(self, url: str, payload: object):
        return self.client.patch(url, data=json.dumps(payload), content_type="application/json")

    def _delete(self, url: str, payload: object | None = None):
        if payload is None:
            return self.client.delete(url)
        return self.client.delete(url, data=json.dumps(payload), content_type="application/json")


class ElectionApiPermissionTests(ElectionApiTestCase):
    def test_anonymous_requests_get_401(self) -> None:
        for resp in (
            self.client.get(reverse("elections")),
            self._post(reverse("elections"), {}),
            self._post(reverse("elections-bulk"), {}),
            self._post(reverse("election-vote", args=[1]), {}),
            self.client.get(reverse("election-results", args=[1])),
        ):
            with self.subTest(url=resp.request["PATH_INFO"]):
                self.assertEqual(resp.status_code, 401)
                self.assertEqual(resp.json(), {"ok": False, "error": "Authentication required."})

    def test_unknown_role_in_session_is_anonymous(self) -> None:
        self._login_as("someone", "superuser")

        with self.assertLogs("core.middleware", level="WARNING"):
            resp = self.client.get(reverse("elections"))

        self.assertEqual(resp.status_code, 401)

    def test_members_cannot_manage_elections(self) -> None:
        self._login_as("member-1", "member")

        resp = self._post(
            reverse("elections"),
            {"position": "presidential", "election_year": 2027, "election_date": "2027-02-25"},
        )

        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json(), {"ok": False, "error": "Permission denied."})
        self.assertFalse(Election.objects.exists())

    def test_coordinators_cannot_vote(self) -> None:
        election = create_election(position="presidential", status=Election.Status.ongoing)
        candidate = Candidate.objects.create(election=election, party=create_party("APC"), name="Ada")
        self._login_as("coord-1", "Coordinator")

        resp = self._post(reverse("election-vote", args=[election.pk]), {"candidate_id": candidate.pk})

        self.assertEqual(resp.status_code, 403)
        self.assertFalse(Vote.objects.exists())

    def test_every_known_role_can_read(self) -> None:
        election = create_election(position="presidential")
        for role in ("admin", "coordinator", "member"):
            self._login_as(f"{role}-1", role)
            with self.subTest(role=role):
                self.assertEqual(self.client.get(reverse("elections")).status_code, 200)
                self.assertEqual(self.client.get(reverse("election-detail", args=[election.pk])).status_code, 200)
                self.assertEqual(self.client.get(reverse("election-results", args=[election.pk])).status_code, 200)


class ElectionSchedulingApiTests(ElectionApiTestCase):
    def setUp(self) -> None:
        self._login_as("admin-1", "admin")

    def test_create_returns_the_serialized_election(self) -> None:
        (state,) = ensure_states(1)

        resp = self._post(
            reverse("elections"),
            {
                "position": "governorship",
                "election_year": 2027,
                "election_date": "2027-03-11",
                "scope_unit_id": state.pk,
            },
        )

        self.assertEqual(resp.status_code, 201)
        body = resp.json()
        self.assertTrue(body["ok"])
        election = body["election"]
        self.assertEqual(election["title"], f"2027 {state.name} Governorship Election")
        self.assertEqual(election["position_label"], "Governorship")
        self.assertEqual(election["scope"], {"kind": "state", "id": state.pk, "name": state.name})
        self.assertEqual(election["status"], "upcoming")
        self.assertEqual(election["total_votes_cast"], 0)
        self.assertEqual(Election.objects.get().audit_log.get().actor, "admin-1")

    def test_create_errors_map_to_status_codes(self) -> None:
        (state,) = ensure_states(1)
        create_election(position="governorship", unit=state)
        base = {"position": "governorship", "election_year": 2027, "election_date": "2027-03-11"}

        conflict = self._post(reverse("elections"), {**base, "scope_unit_id": state.pk})
        self.assertEqual(conflict.status_code, 409)
        self.assertEqual(conflict.json()["code"], "conflict")

        missing = self._post(reverse("elections"), {**base, "scope_unit_id": 99999})
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.json()["code"], "not_found")

        invalid = self._post(reverse("elections"), {**base, "position": "mayor", "scope_unit_id": state.pk})
        self.assertEqual(invalid.status_code, 400)
        self.assertEqual(invalid.json()["code"], "validation")

    def test_malformed_json_is_a_validation_error(self) -> None:
        resp = self.client.post(reverse("elections"), data="{not json", content_type="application/json")
        self.assertEqual(resp.status_code, 400)

        resp = self._post(reverse("elections"), ["presidential"])
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "request body must be a JSON object")

    def test_body_that_is_not_utf8_is_a_validation_error(self) -> None:
        resp = self.client.post(
            reverse("elections"),
            data=b'{"position": "presidential", "title": "\xff\xfe"}',
            content_type="application/json",
        )

        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "validation")
        self.assertFalse(Election.objects.exists())

    def test_bulk_generation_and_rerun(self) -> None:
        ensure_states()
        payload = {
            "positions": ["governorship"],
            "election_year": 2027,
            "election_date": "2027-03-11",
            "selection": {"all": True},
        }

        first = self._post(reverse("elections-bulk"), payload)

        self.assertEqual(first.status_code, 200)
        self.assertEqual(first.json()["created"], 37)
        self.assertTrue(first.json()["ok"])

        second = self._post(reverse("elections-bulk"), payload)

        self.assertEqual(second.status_code, 200)
        self.assertEqual((second.json()["created"], second.json()["skipped"]), (0, 37))

    def test_bulk_generation_with_per_position_selection_and_rejections(self) -> None:
        first, _second = seed_geography(states=2, lgas_per_state=2, wards_per_lga=1)
        lga = Lga.objects.filter(state=first).order_by("id").first()

        resp = self._post(
            reverse("elections-bulk"),
            {
                "positions": ["governorship", "lga_chairman"],
                "election_year": 2027,
                "election_date": "2027-03-11",
                "selection": {"state_ids": [first.pk]},
                "selections": {"lga_chairman": {"ids": [lga.pk, 99999]}},
            },
        )

        self.assertEqual(resp.status_code, 207)
        body = resp.json()
        self.assertFalse(body["ok"])
        self.assertEqual(body["created"], 2)
        self.assertEqual(body["by_position"]["governorship"]["created"], 1)
        self.assertEqual(body["rejected"][0]["id"], 99999)

    def test_bulk_generation_without_selection_is_rejected(self) -> None:
        ensure_states(2)

        resp = self._post(
            reverse("elections-bulk"),
            {"positions": ["governorship"], "election_year": 2027, "election_date": "2027-03-11"},
        )

        self.assertEqual(resp.status_code, 400)
        self.assertFalse(Election.objects.exists())

    def test_bulk_status_reports_each_id(self) -> None:
        states = ensure_states(2)
        upcoming = create_election(unit=states[0])
        completed = create_election(unit=states[1], status=Election.Status.completed)

        resp = self._patch(
            reverse("elections-bulk-status"),
            {"ids": [upcoming.pk, completed.pk], "status": "ongoing"},
        )

        self.assertEqual(resp.status_code, 207)
        body = resp.json()
        self.assertEqual(body["updated"], 1)
        self.assertEqual(body["errors"][0]["id"], completed.pk)
        self.assertEqual(body["errors"][0]["code"], "invalid_transition")

        ok = self._patch(reverse("elections-bulk-status"), {"ids": [upcoming.pk], "status": "ongoing"})
        self.assertEqual(ok.status_code, 200)
        self.assertEqual(ok.json()["unchanged"], 1)

        bad = self._patch(reverse("elections-bulk-status"), {"ids": "all", "status": "ongoing"})
        self.assertEqual(bad.status_code, 400)

    def test_update_and_status_transition(self) -> None:
        election = create_election(position="presidential")
        url = reverse("election-detail", args=[election.pk])

        resp = self._patch(url, {"title": "General Election", "status": "ongoing"})

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["election"]["title"], "General Election")
        self.assertEqual(resp.json()["election"]["status"], "ongoing")

        backwards = self._patch(url, {"status": "upcoming"})
        self.assertEqual(backwards.status_code, 409)
        self.assertEqual(backwards.json()["code"], "invalid_transition")

        unknown = self._patch(url, {"position": "governorship"})
        self.assertEqual(unknown.status_code, 400)

    def test_delete_requires_title_confirmation(self) -> None:
        election = create_election(position="presidential", status=Election.Status.ongoing, title="2027 Presidential")
        candidate = Candidate.objects.create(election=election, party=create_party("APC"), name="Ada")
        cast_vote(election_id=election.pk, candidate_id=candidate.pk, voter_id="v1")
        url = reverse("election-detail", args=[election.pk])

        unconfirmed = self._delete(url)

        self.assertEqual(unconfirmed.status_code, 400)
        self.assertEqual(unconfirmed.json()["code"], "confirmation_required")
        self.assertEqual(unconfirmed.json()["preview"]["votes"], 1)
        self.assertTrue(Election.objects.filter(pk=election.pk).exists())

        wrong = self._delete(url, {"confirm": "2023 Presidential"})
        self.assertEqual(wrong.status_code, 400)

        confirmed = self._delete(url, {"confirm": "2027 PRESIDENTIAL"})

        self.assertEqual(confirmed.status_code, 200)
        self.assertEqual(confirmed.json()["deleted"]["candidates"], 1)
        self.assertFalse(Election.objects.filter(pk=election.pk).exists())
        self.assertEqual(self.client.get(url).status_code, 404)

    def test_delete_confirmation_via_query_string(self) -> None:
        election = create_election(position="presidential", title="Rerun")

        resp = self.client.delete(reverse("election-detail", args=[election.pk]) + "?confirm=rerun")

        self.assertEqual(resp.status_code, 200)
        self.assertFalse(Election.objects.exists())


class ElectionListApiTests(ElectionApiTestCase):
    def setUp(self) -> None:
        self._login_as("member-1", "member")
        self.first, self.second = seed_geography(states=2, districts_per_state=1, lgas_per_state=1, wards_per_lga=1)
        self.national = create_election(position="presidential")
        self.first_gov = create_election(position="governorship", unit=self.first, status=Election.Status.ongoing)
        self.second_gov = create_election(position="governorship", unit=self.second, year=2031)
        self.first_lga = create_election(position="lga_chairman", unit=self.first.lgas.get())
        self.first_ward = create_election(position="councillorship", unit=self.first.lgas.get().wards.get())

    def _ids(self, **params) -> set[int]:
        resp = self.client.get(reverse("elections"), params)
        self.assertEqual(resp.status_code, 200)
        return {e["id"] for e in resp.json()["elections"]}

    def test_filters(self) -> None:
        self.assertEqual(len(self._ids()), 5)
        self.assertEqual(self._ids(position="governorship"), {self.first_gov.pk, self.second_gov.pk})
        self.assertEqual(self._ids(status="ongoing"), {self.first_gov.pk})
        self.assertEqual(self._ids(year="2031"), {self.second_gov.pk})
        self.assertEqual(
            self._ids(state=str(self.first.pk)),
            {self.first_gov.pk, self.first_lga.pk, self.first_ward.pk},
        )

    def test_invalid_filters_are_rejected(self) -> None:
        for params in ({"position": "mayor"}, {"status": "paused"}, {"year": "soon"}):
            with self.subTest(params=params):
                self.assertEqual(self.client.get(reverse("elections"), params).status_code, 400)

    def test_pagination(self) -> None:
        resp = self.client.get(reverse("elections"), {"limit": "2", "offset": "1"})

        body = resp.json()
        self.assertEqual((body["count"], body["limit"], body["offset"]), (5, 2, 1))
        self.assertEqual(len(body["elections"]), 2)

        capped = self.client.get(reverse("elections"), {"limit": "100000"}).json()
        self.assertEqual(capped["limit"], 500)

    def test_list_includes_unit_names(self) -> None:
        resp = self.client.get(reverse("elections"), {"position": "lga_chairman"})

        (row,) = resp.json()["elections"]
        self.assertEqual(row["scope"]["kind"], "lga")
        self.assertEqual(row["scope"]["name"], self.first.lgas.get().name)


class CandidateAndBallotApiTests(ElectionApiTestCase):
    def setUp(self) -> None:
        (self.state,) = ensure_states(1)
        self.election = create_election(position="governorship", unit=self.state, status=Election.Status.ongoing)
        self.apc = create_party("APC")

    def test_candidate_add_and_remove(self) -> None:
        self._login_as("coord-1", "coordinator")

        resp = self._post(
            reverse("election-candidates", args=[self.election.pk]),
            {"name": "Ada Obi", "party_id": self.apc.pk, "running_mate": "Musa Bello"},
        )

        self.assertEqual(resp.status_code, 201)
        candidate = resp.json()["candidate"]
        self.assertEqual((candidate["party"], candidate["votes"]), ("APC", 0))

        duplicate = self._post(
            reverse("election-candidates", args=[self.election.pk]),
            {"name": "Bola", "party_id": self.apc.pk},
        )
        self.assertEqual(duplicate.status_code, 409)

        removed = self._delete(reverse("election-candidate", args=[self.election.pk, candidate["id"]]))
        self.assertEqual(removed.status_code, 200)
        self.assertEqual(removed.json(), {"ok": True})

        again = self._delete(reverse("election-candidate", args=[self.election.pk, candidate["id"]]))
        self.assertEqual(again.status_code, 404)

    def test_candidate_with_votes_cannot_be_removed(self) -> None:
        candidate = Candidate.objects.create(election=self.election, party=self.apc, name="Ada")
        cast_vote(election_id=self.election.pk, candidate_id=candidate.pk, voter_id="v1")
        self._login_as("admin-1", "admin")

        resp = self._delete(reverse("election-candidate", args=[self.election.pk, candidate.pk]))

        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["code"], "candidate_has_votes")

    def test_vote_then_duplicate_then_results(self) -> None:
        ada = Candidate.objects.create(election=self.election, party=self.apc, name="Ada")
        bola = Candidate.objects.create(election=self.election, party=create_party("PDP"), name="Bola")
        self._login_as("member-1", "member")
        url = reverse("election-vote", args=[self.election.pk])

        resp = self._post(url, {"candidate_id": ada.pk, "integrity_tag": "0xabc"})

        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["vote"]["candidate_id"], ada.pk)
        self.assertEqual(Vote.objects.get().voter_id, "member-1")

        duplicate = self._post(url, {"candidate_id": bola.pk})
        self.assertEqual(duplicate.status_code, 409)
        self.assertEqual(duplicate.json()["code"], "duplicate_vote")

        results = self.client.get(reverse("election-results", args=[self.election.pk])).json()["results"]
        self.assertEqual(results["total_votes"], 1)
        self.assertEqual(results["leader"], ada.pk)
        self.assertEqual([c["name"] for c in results["candidates"]], ["Ada", "Bola"])

    def test_vote_errors(self) -> None:
        other = create_election(position="presidential", status=Election.Status.ongoing)
        foreign = Candidate.objects.create(election=other, party=self.apc, name="Foreign")
        self._login_as("member-1", "member")

        wrong_candidate = self._post(reverse("election-vote", args=[self.election.pk]), {"candidate_id": foreign.pk})
        self.assertEqual(wrong_candidate.status_code, 400)
        self.assertEqual(wrong_candidate.json()["code"], "invalid_candidate")

        Election.objects.filter(pk=other.pk).update(status=Election.Status.completed)
        closed = self._post(reverse("election-vote", args=[other.pk]), {"candidate_id": foreign.pk})
        self.assertEqual(closed.status_code, 409)
        self.assertEqual(closed.json()["code"], "not_votable")

        missing = self._post(reverse("election-vote", args=[987654]), {"candidate_id": foreign.pk})
        self.assertEqual(missing.status_code, 409)
        self.assertEqual(missing.json()["code"], "not_votable")

    def test_read_endpoints_issue_the_csrf_cookie_that_writes_need(self) -> None:
        ada = Candidate.objects.create(election=self.election, party=self.apc, name="Ada")
        self.client = Client(enforce_csrf_checks=True)
        self._login_as("member-1", "member")
        url = reverse("election-vote", args=[self.election.pk])

        rejected = self._post(url, {"candidate_id": ada.pk})
        self.assertEqual(rejected.status_code, 403)

        for read_url in (
            reverse("elections"),
            reverse("election-detail", args=[self.election.pk]),
            reverse("election-results", args=[self.election.pk]),
        ):
            with self.subTest(url=read_url):
                self.client.cookies.pop("csrftoken", None)
                resp = self.client.get(read_url)
                self.assertEqual(resp.status_code, 200)
                self.assertIn("csrftoken", resp.cookies)

        token = self.client.cookies["csrftoken"].value
        resp = self.client.post(
            url,
            data=json.dumps({"candidate_id": ada.pk}),
            content_type="application/json",
            HTTP_X_CSRFTOKEN=token,
        )

        self.assertEqual(resp.status_code, 201)
        self.assertEqual(Vote.objects.get().voter_id, "member-1")

    def test_results_for_unknown_election(self) -> None:
        self._login_as("member-1", "member")

        resp = self.client.get(reverse("election-results", args=[987654]))

        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["code"], "not_found")
