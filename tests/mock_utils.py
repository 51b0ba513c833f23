"""Mock utilities for Firestore and Auth."""

import functools
import threading
import unittest.mock
from typing import Any, Callable, Optional

from mockfirestore import CollectionReference, MockFirestore, Query
from mockfirestore.document import DocumentReference

# Held for the whole body of a transaction so concurrent tests see the
# serialisation Firestore gives conflicting transactions.
_TRANSACTION_LOCK = threading.RLock()


class MockBatch:
    """Write batch that applies its operations on commit."""

    def __init__(self, db: Any) -> None:
        self.db = db
        self.writes: list[tuple[str, Any, Any]] = []
        self.commit = unittest.mock.MagicMock(side_effect=self._real_commit)

    def update(self, ref: Any, data: Any) -> None:
        self.writes.append(("update", ref, data))

    def set(self, ref: Any, data: Any, merge: bool = False) -> None:
        self.writes.append(("merge" if merge else "set", ref, data))

    def delete(self, ref: Any) -> None:
        self.writes.append(("delete", ref, None))

    def _real_commit(self) -> None:
        for op, ref, data in self.writes:
            if op == "delete":
                ref.delete()
            elif op == "update":
                ref.update(data)
            elif op == "merge":
                ref.set(data, merge=True)
            else:
                ref.set(data)
        self.writes = []


class MockTransaction(MockBatch):
    """Transaction that buffers writes until the transactional body returns."""

    def __init__(self, db: Any, max_attempts: int = 5, **kwargs: Any) -> None:
        super().__init__(db)
        self.max_attempts = max_attempts

    def create(self, ref: Any, data: Any) -> None:
        self.writes.append(("set", ref, data))

    def rollback(self) -> None:
        self.writes = []


def mock_transactional(func: Callable[..., Any]) -> Callable[..., Any]:
    """Stand-in for ``firestore.transactional``.

    Runs the body under a global lock and commits the buffered writes only if
    it returns; an exception discards them.
    """

    @functools.wraps(func)
    def wrapper(transaction: MockTransaction, *args: Any, **kwargs: Any) -> Any:
        with _TRANSACTION_LOCK:
            try:
                result = func(transaction, *args, **kwargs)
            except Exception:
                transaction.rollback()
                raise
            transaction.commit()
            return result

    return wrapper


class MockFirestoreBuilder:
    """Builder to modularize mockfirestore patching."""

    @staticmethod
    def patch_db_read() -> None:
        """Support ``where(filter=...)`` and transactional reads."""

        def where(
            self: Any,
            field_path: Optional[str] = None,
            op_string: Optional[str] = None,
            value: Any = None,
            filter: Any = None,
        ) -> Any:
            if filter:
                return self._where(filter.field_path, filter.op_string, filter.value)
            return self._where(field_path, op_string, value)

        def stream(self: Any, transaction: Any = None) -> Any:
            return self._orig_stream()

        for cls in (CollectionReference, Query):
            if not hasattr(cls, "_where"):
                cls._where = cls.where
                cls.where = where
            if not hasattr(cls, "_orig_stream"):
                cls._orig_stream = cls.stream
                cls.stream = stream

        if not hasattr(DocumentReference, "_orig_get"):
            DocumentReference._orig_get = DocumentReference.get

            def doc_ref_get(self: Any, transaction: Any = None, **kwargs: Any) -> Any:
                return self._orig_get()

            DocumentReference.get = doc_ref_get

    @staticmethod
    def install_writers(db: MockFirestore) -> MockFirestore:
        """Give a MockFirestore working ``batch()`` and ``transaction()``."""
        db.batch = unittest.mock.MagicMock(side_effect=lambda: MockBatch(db))
        db.transaction = unittest.mock.MagicMock(
            side_effect=lambda **kwargs: MockTransaction(db, **kwargs)
        )
        return db


def patch_mockfirestore() -> None:
    """Apply monkeypatches to mockfirestore for the query features we use."""
    MockFirestoreBuilder.patch_db_read()


def make_db() -> MockFirestore:
    """A patched in-memory Firestore with batches and transactions."""
    patch_mockfirestore()
    return MockFirestoreBuilder.install_writers(MockFirestore())
