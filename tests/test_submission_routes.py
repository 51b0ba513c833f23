"""Tests for the submissions API."""

from __future__ import annotations

from tests.helpers import ADMIN, ALICE, BOB, ApiTestCase

BASE = "/api/hackathon/submissions"


class SubmissionRoutesTestCase(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.put("hackathon_teams", "t1", {"eventId": "ev1", "teamName": "One", "status": "locked", "leaderId": "alice", "memberCount": 1})
        self.put("team_members", "t1_alice", {"teamId": "t1", "eventId": "ev1", "userId": "alice", "role": "leader", "status": "accepted"})

    def submit(self, **body) -> dict:
        payload = {
            "eventId": "ev1",
            "teamId": "t1",
            "projectTitle": "Mesh",
            "projectDescription": "Minds, meshed",
            "techStack": ["python"],
        }
        payload.update(body)
        return self.client.post(BASE, json=payload)

    def test_requires_login(self) -> None:
        self.assertEqual(self.submit().status_code, 401)
        self.assertEqual(self.client.get(f"{BASE}?eventId=ev1").status_code, 401)

    def test_create_and_view(self) -> None:
        self.login(ALICE)
        response = self.submit()
        self.assertEqual(response.status_code, 201)
        submission = response.get_json()["submission"]
        self.assertEqual(submission["status"], "submitted")
        self.assertEqual(self.doc("hackathon_teams", "t1")["status"], "submitted")

        response = self.client.get(f"{BASE}/{submission['id']}")
        self.assertEqual(response.get_json()["submission"]["techStack"], ["python"])

        response = self.submit()
        self.assertEqual(response.status_code, 409)

    def test_create_draft(self) -> None:
        self.login(ALICE)
        response = self.submit(asDraft=True)
        submission = response.get_json()["submission"]
        self.assertEqual(submission["status"], "draft")
        self.assertNotIn("asDraft", submission)
        self.assertEqual(self.doc("hackathon_teams", "t1")["status"], "locked")

        response = self.client.post(f"{BASE}/{submission['id']}/status", json={"status": "submitted"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.doc("hackathon_teams", "t1")["status"], "submitted")

    def test_create_validates_form(self) -> None:
        self.login(ALICE)
        response = self.submit(projectTitle="", repoUrl="not a url")
        self.assertEqual(response.status_code, 400)
        error = response.get_json()["error"]
        self.assertIn("projectTitle", error)
        self.assertIn("repoUrl", error)

    def test_edit_and_review(self) -> None:
        self.login(ALICE)
        submission = self.submit().get_json()["submission"]

        response = self.client.patch(
            f"{BASE}/{submission['id']}", json={"demoUrl": "https://demo.example.com"}
        )
        self.assertEqual(response.get_json()["submission"]["demoUrl"], "https://demo.example.com")

        self.login(BOB)
        response = self.client.patch(f"{BASE}/{submission['id']}", json={"projectTitle": "Mine"})
        self.assertEqual(response.status_code, 403)

        self.login(ADMIN)
        response = self.client.post(
            f"{BASE}/{submission['id']}/status",
            json={"status": "under_review", "reviewNotes": "Looking"},
        )
        self.assertEqual(response.get_json()["submission"]["reviewNotes"], "Looking")

        self.login(ALICE)
        response = self.client.patch(f"{BASE}/{submission['id']}", json={"projectTitle": "Late"})
        self.assertEqual(response.status_code, 409)

    def test_listing(self) -> None:
        self.login(ALICE)
        self.submit()
        response = self.client.get(f"{BASE}?eventId=ev1")
        self.assertEqual(len(response.get_json()["submissions"]), 1)
        self.assertEqual(self.client.get(BASE).status_code, 400)
        self.assertEqual(self.client.get(f"{BASE}/missing").status_code, 404)
