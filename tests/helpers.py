"""Base test cases backed by an in-memory Firestore."""

from __future__ import annotations

import datetime
import unittest
from typing import Any
from unittest.mock import MagicMock, patch

from mindmesh import create_app
from mindmesh.core.types import Actor
from tests.mock_utils import make_db, mock_transactional

NOW = datetime.datetime(2024, 6, 1, 12, 0, tzinfo=datetime.timezone.utc)

ADMIN = Actor(uid="admin1", name="Admin", email="admin@example.com", is_admin=True)
LEADER = Actor(uid="leader1", name="Lead Person", email="lead@example.com")
ALICE = Actor(uid="alice", name="Alice", email="alice@example.com")
BOB = Actor(uid="bob", name="Bob", email="bob@example.com")
CAROL = Actor(uid="carol", name="Carol", email="carol@example.com")


class MockFieldFilter:
    def __init__(self, field_path: str, op_string: str, value: Any) -> None:
        self.field_path = field_path
        self.op_string = op_string
        self.value = value


def mock_firestore_module(db: Any) -> MagicMock:
    """Stand-in for ``firebase_admin.firestore`` bound to ``db``."""
    module = MagicMock()
    module.client.return_value = db
    module.FieldFilter = MockFieldFilter
    module.transactional = mock_transactional
    return module


class FirestoreTestCase(unittest.TestCase):
    """Service tests: ``self.db`` is a fresh MockFirestore per test."""

    def setUp(self) -> None:
        self.db = make_db()
        patcher = patch(
            "mindmesh.core.store.firestore", new=mock_firestore_module(self.db)
        )
        patcher.start()
        self.addCleanup(patcher.stop)

    def put(self, collection: str, doc_id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Seed a document and return it with its id."""
        self.db.collection(collection).document(doc_id).set(data)
        return {**data, "id": doc_id}

    def doc(self, collection: str, doc_id: str) -> dict[str, Any]:
        """Current contents of a document ({} when missing)."""
        return self.db.collection(collection).document(doc_id).get().to_dict() or {}

    def docs(self, collection: str, **equals: Any) -> list[dict[str, Any]]:
        """Existing documents of a collection matching ``field=value`` pairs."""
        found = []
        for snapshot in self.db.collection(collection).stream():
            data = snapshot.to_dict() or {}
            if snapshot.exists and all(data.get(k) == v for k, v in equals.items()):
                found.append({**data, "id": snapshot.id})
        return found


class ApiTestCase(FirestoreTestCase):
    """Route tests: a test client over the same MockFirestore."""

    def setUp(self) -> None:
        super().setUp()
        patcher = patch("firebase_admin.initialize_app")
        patcher.start()
        self.addCleanup(patcher.stop)

        self.app = create_app(
            {
                "TESTING": True,
                "WTF_CSRF_ENABLED": False,
                "SECRET_KEY": "test-secret",
                "ADMIN_EMAILS": ["boss@example.com"],
            }
        )
        self.client = self.app.test_client()

    def login(self, actor: Actor) -> None:
        """Create the user document and sign the client in as ``actor``."""
        self.db.collection("users").document(actor.uid).set(
            {"name": actor.name, "email": actor.email, "isAdmin": actor.is_admin}
        )
        with self.client.session_transaction() as sess:
            sess["user_id"] = actor.uid
            sess["is_admin"] = actor.is_admin
