"""Tests for the judging API."""

from __future__ import annotations

from tests.helpers import ADMIN, ALICE, BOB, ApiTestCase

BASE = "/api/hackathon/judging"


class JudgingRoutesTestCase(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.put("judging_criteria", "c1", {"eventId": "ev1", "name": "Innovation", "maxScore": 10.0, "weight": 1.0})
        self.put("judges", "j1", {"eventId": "ev1", "name": "Alice", "email": "alice@example.com", "userId": "alice", "status": "accepted", "inviteCode": "ALICE234", "assignedTeams": []})
        self.put("hackathon_teams", "t1", {"eventId": "ev1", "teamName": "One", "status": "submitted"})
        self.put("submissions", "s1", {"eventId": "ev1", "teamId": "t1", "status": "submitted", "totalScore": 0})

    def test_judge_listing_hides_private_fields(self) -> None:
        response = self.client.get(f"{BASE}?eventId=ev1")
        judge = response.get_json()["items"][0]
        self.assertEqual(judge["name"], "Alice")
        self.assertNotIn("inviteCode", judge)
        self.assertNotIn("email", judge)

        self.login(ADMIN)
        judge = self.client.get(f"{BASE}?eventId=ev1&type=judges").get_json()["items"][0]
        self.assertEqual(judge["inviteCode"], "ALICE234")

    def test_listing_requires_known_type(self) -> None:
        self.assertEqual(self.client.get(BASE).status_code, 400)
        self.assertEqual(self.client.get(f"{BASE}?eventId=ev1&type=nope").status_code, 400)
        items = self.client.get(f"{BASE}?eventId=ev1&type=criteria").get_json()["items"]
        self.assertEqual([c["id"] for c in items], ["c1"])

    def test_invite_flow(self) -> None:
        self.login(ADMIN)
        response = self.client.post(
            f"{BASE}/judges",
            json={"eventId": "ev1", "name": "Bob", "email": "bob@example.com", "isLead": True},
        )
        self.assertEqual(response.status_code, 201)
        judge = response.get_json()["judge"]
        self.assertTrue(judge["isLead"])

        response = self.client.post(
            f"{BASE}/judges", json={"eventId": "ev1", "name": "X", "email": "not-an-email"}
        )
        self.assertEqual(response.status_code, 400)

        self.login(BOB)
        response = self.client.post(f"{BASE}/judges/accept", json={"inviteCode": judge["inviteCode"]})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["judge"]["userId"], "bob")

        self.login(ALICE)
        response = self.client.post(f"{BASE}/judges/decline", json={"inviteCode": judge["inviteCode"]})
        self.assertEqual(response.status_code, 409)

    def test_clearing_assignments(self) -> None:
        self.db.collection("judges").document("j1").update({"assignedTeams": ["t9"]})
        self.login(ADMIN)
        response = self.client.patch(f"{BASE}/judges/j1", json={"assignedTeams": []})
        self.assertEqual(response.get_json()["judge"]["assignedTeams"], [])

    def test_criteria_admin_only(self) -> None:
        self.login(ALICE)
        response = self.client.post(
            f"{BASE}/criteria", json={"eventId": "ev1", "name": "Design", "maxScore": 10, "weight": 0}
        )
        self.assertEqual(response.status_code, 403)

        self.login(ADMIN)
        response = self.client.post(
            f"{BASE}/criteria", json={"eventId": "ev1", "name": "Design", "maxScore": 10, "weight": 0.5}
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("above 1.0", response.get_json()["error"])

        response = self.client.patch(f"{BASE}/criteria/c1", json={"weight": 0.5})
        self.assertEqual(response.get_json()["criteria"]["weight"], 0.5)
        response = self.client.post(
            f"{BASE}/criteria", json={"eventId": "ev1", "name": "Design", "maxScore": 10, "weight": 0.5}
        )
        self.assertEqual(response.status_code, 201)

    def test_score_created_then_updated(self) -> None:
        self.login(ALICE)
        body = {"judgeId": "j1", "submissionId": "s1", "criteriaId": "c1", "score": 7}
        response = self.client.post(f"{BASE}/scores", json=body)
        self.assertEqual(response.status_code, 201)
        body["score"] = 9
        response = self.client.post(f"{BASE}/scores", json=body)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["score"]["score"], 9)
        self.assertEqual(self.doc("submissions", "s1")["totalScore"], 9.0)

        body["score"] = 12
        response = self.client.post(f"{BASE}/scores", json=body)
        self.assertEqual(response.status_code, 400)

    def test_score_as_someone_else(self) -> None:
        self.login(BOB)
        response = self.client.post(
            f"{BASE}/scores",
            json={"judgeId": "j1", "submissionId": "s1", "criteriaId": "c1", "score": 1},
        )
        self.assertEqual(response.status_code, 403)

    def test_bulk_scores(self) -> None:
        self.login(ADMIN)
        response = self.client.post(
            f"{BASE}/scores/bulk",
            json={
                "scores": [
                    {"judgeId": "j1", "submissionId": "s1", "criteriaId": "c1", "score": 6},
                    {"judgeId": "j1", "submissionId": "nope", "criteriaId": "c1", "score": 6},
                    "garbage",
                ]
            },
        )
        self.assertEqual(response.status_code, 201)
        results = response.get_json()["results"]
        self.assertEqual(results[0]["score"]["score"], 6)
        self.assertEqual(results[1], {"error": "Submission not found"})
        self.assertEqual(results[2], {"error": "Each score must be an object."})

        response = self.client.post(f"{BASE}/scores/bulk", json={"scores": []})
        self.assertEqual(response.status_code, 400)

    def test_leaderboard_and_results(self) -> None:
        self.login(ADMIN)
        self.client.post(
            f"{BASE}/scores",
            json={"judgeId": "j1", "submissionId": "s1", "criteriaId": "c1", "score": 8},
        )
        board = self.client.get(f"{BASE}/leaderboard?eventId=ev1").get_json()["leaderboard"]
        self.assertEqual(board[0]["submissionId"], "s1")
        self.assertEqual(board[0]["totalScore"], 8.0)

        response = self.client.post(f"{BASE}/scores/recompute/s1")
        self.assertEqual(response.get_json(), {"submissionId": "s1", "totalScore": 8.0})

        response = self.client.post(f"{BASE}/results", json={"eventId": "ev1"})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.get_json()["results"]["winnerTeamId"], "t1")

        self.client.delete("/api/auth/session")
        response = self.client.get(f"{BASE}/results/ev1")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["results"]["rankings"][0]["rank"], 1)
        self.assertEqual(self.client.get(f"{BASE}/results/ev2").status_code, 404)

    def test_leaderboard_admin_only(self) -> None:
        self.login(ALICE)
        self.assertEqual(self.client.get(f"{BASE}/leaderboard?eventId=ev1").status_code, 403)
