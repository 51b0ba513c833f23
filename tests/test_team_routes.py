"""Tests for the team API."""

from __future__ import annotations

from tests.helpers import ADMIN, ALICE, BOB, LEADER, ApiTestCase

BASE = "/api/hackathon/teams"


class TeamRoutesTestCase(ApiTestCase):
    def create_team(self, **body) -> dict:
        self.login(LEADER)
        payload = {"eventId": "ev1", "teamName": "Night Owls"}
        payload.update(body)
        response = self.client.post(BASE, json=payload)
        self.assertEqual(response.status_code, 201, response.get_json())
        return response.get_json()["team"]

    def test_create_requires_login(self) -> None:
        response = self.client.post(BASE, json={"eventId": "ev1", "teamName": "x"})
        self.assertEqual(response.status_code, 401)

    def test_create_uses_configured_default_size(self) -> None:
        team = self.create_team()
        self.assertEqual(team["maxSize"], 5)
        self.assertEqual(team["leaderName"], "Lead Person")

    def test_create_validates_form(self) -> None:
        self.login(LEADER)
        response = self.client.post(BASE, json={"eventId": "ev1", "maxSize": 0})
        self.assertEqual(response.status_code, 400)
        self.assertIn("teamName", response.get_json()["error"])

        response = self.client.post(
            BASE, json={"eventId": "ev1", "teamName": "Huge", "maxSize": 50}
        )
        self.assertEqual(response.status_code, 400)

    def test_join_and_view(self) -> None:
        team = self.create_team(maxSize=2)
        self.login(ALICE)
        response = self.client.post(f"{BASE}/join", json={"inviteCode": team["inviteCode"]})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.get_json()["success"])

        self.login(BOB)
        response = self.client.post(f"{BASE}/join", json={"inviteCode": team["inviteCode"]})
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.get_json()["error"], "Team is full (2 members max)")

        response = self.client.get(f"{BASE}/{team['id']}")
        members = response.get_json()["members"]
        self.assertEqual([m["userId"] for m in members], ["leader1", "alice"])

    def test_join_unknown_code(self) -> None:
        self.login(ALICE)
        response = self.client.post(f"{BASE}/join", json={"inviteCode": "NOPE99"})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json()["error"], "Invalid invite code")

    def test_listing_queries(self) -> None:
        team = self.create_team()
        response = self.client.get(f"{BASE}?inviteCode={team['inviteCode']}")
        self.assertEqual(response.get_json()["team"]["id"], team["id"])

        response = self.client.get(f"{BASE}?eventId=ev1&userId=leader1")
        self.assertEqual(response.get_json()["team"]["id"], team["id"])
        response = self.client.get(f"{BASE}?eventId=ev1&userId=nobody")
        self.assertIsNone(response.get_json()["team"])

        response = self.client.get(f"{BASE}?eventId=ev1")
        self.assertEqual(len(response.get_json()["teams"]), 1)

        self.assertEqual(self.client.get(BASE).status_code, 400)

    def test_leader_manages_team(self) -> None:
        team = self.create_team()
        response = self.client.patch(f"{BASE}/{team['id']}", json={"description": "hi"})
        self.assertEqual(response.get_json()["team"]["description"], "hi")

        response = self.client.post(f"{BASE}/{team['id']}/status", json={"status": "locked"})
        self.assertEqual(response.get_json()["team"]["status"], "locked")
        response = self.client.post(f"{BASE}/{team['id']}/status", json={"status": "winner"})
        self.assertEqual(response.status_code, 403)
        response = self.client.post(f"{BASE}/{team['id']}/status", json={"status": "nope"})
        self.assertEqual(response.status_code, 400)

        response = self.client.delete(f"{BASE}/{team['id']}")
        self.assertEqual(response.status_code, 409)

    def test_member_leaves(self) -> None:
        team = self.create_team()
        self.login(ALICE)
        self.client.post(f"{BASE}/join", json={"inviteCode": team["inviteCode"]})
        response = self.client.delete(f"{BASE}/{team['id']}/members/alice")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["team"]["memberCount"], 1)

        response = self.client.patch(f"{BASE}/{team['id']}", json={"teamName": "Mine"})
        self.assertEqual(response.status_code, 403)

    def test_delete_and_recount(self) -> None:
        team = self.create_team()
        response = self.client.post(f"{BASE}/{team['id']}/recount")
        self.assertEqual(response.status_code, 403)

        self.login(ADMIN)
        response = self.client.post(f"{BASE}/{team['id']}/recount")
        self.assertEqual(response.get_json(), {"teamId": team["id"], "memberCount": 1})

        response = self.client.delete(f"{BASE}/{team['id']}")
        self.assertEqual(response.get_json(), {"success": True, "membersRemoved": 1})
        self.assertEqual(self.client.get(f"{BASE}/{team['id']}").status_code, 404)
