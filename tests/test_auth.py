"""Tests for session login and route guards."""

import unittest
from unittest.mock import MagicMock, patch

from mindmesh.auth.decorators import is_admin_user
from tests.helpers import ALICE, ApiTestCase


class InvalidIdTokenError(Exception):
    pass


class ExpiredIdTokenError(Exception):
    pass


class AuthTestCase(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.mock_auth_service = MagicMock()
        self.mock_auth_service.InvalidIdTokenError = InvalidIdTokenError
        self.mock_auth_service.ExpiredIdTokenError = ExpiredIdTokenError
        patcher = patch("mindmesh.auth.routes.auth", new=self.mock_auth_service)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_session_login(self):
        """A verified ID token for a known user opens a session."""
        self.put("users", "u1", {"name": "Una", "email": "una@example.com"})
        self.mock_auth_service.verify_id_token.return_value = {"uid": "u1"}

        response = self.client.post("/api/auth/session", json={"idToken": "token"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {"status": "success", "isAdmin": False})
        self.mock_auth_service.verify_id_token.assert_called_once_with("token")

        response = self.client.get("/api/auth/session")
        self.assertEqual(response.status_code, 200)
        data = response.get_json()
        self.assertEqual(data["user"]["uid"], "u1")
        self.assertTrue(data["csrfToken"])

    def test_admin_by_email(self):
        """Users listed in ADMIN_EMAILS sign in as admins."""
        self.put("users", "boss", {"name": "Boss", "email": "Boss@Example.com"})
        self.mock_auth_service.verify_id_token.return_value = {"uid": "boss"}
        response = self.client.post("/api/auth/session", json={"idToken": "token"})
        self.assertTrue(response.get_json()["isAdmin"])

    def test_rejected_tokens(self):
        self.assertEqual(self.client.post("/api/auth/session", json={}).status_code, 400)

        self.mock_auth_service.verify_id_token.side_effect = InvalidIdTokenError("bad")
        response = self.client.post("/api/auth/session", json={"idToken": "bad"})
        self.assertEqual(response.status_code, 401)

        self.mock_auth_service.verify_id_token.side_effect = None
        self.mock_auth_service.verify_id_token.return_value = {"uid": "stranger"}
        response = self.client.post("/api/auth/session", json={"idToken": "token"})
        self.assertEqual(response.status_code, 404)

    def test_logout(self):
        self.login(ALICE)
        self.assertEqual(self.client.get("/api/auth/session").status_code, 200)
        self.client.delete("/api/auth/session")
        self.assertEqual(self.client.get("/api/auth/session").status_code, 401)

    def test_stale_session_is_cleared(self):
        """A session for a deleted user is treated as signed out."""
        self.login(ALICE)
        self.db.collection("users").document("alice").delete()
        self.assertEqual(self.client.get("/api/auth/session").status_code, 401)


class IsAdminUserTestCase(unittest.TestCase):
    def test_flag_and_email(self):
        self.assertTrue(is_admin_user({"isAdmin": True}))
        self.assertTrue(is_admin_user({"email": " A@B.com"}, ["a@b.com"]))
        self.assertFalse(is_admin_user({"email": "x@b.com"}, ["a@b.com"]))
        self.assertFalse(is_admin_user(None))
