"""Firestore access helpers shared by the service layer.

Plain reads and idempotent writes are retried on transient backend errors
with exponential backoff inside an overall deadline. Business-rule failures
(``AppError``) are never transient, so they surface on the first attempt.
Read-modify-write cycles go through ``run_transaction`` instead, which lets
Firestore serialise concurrent writers and retry on contention.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Iterable, TypeVar

from firebase_admin import firestore
from flask import current_app, has_app_context
from google.api_core import retry

from .constants import (
    STORE_RETRY_DEADLINE,
    STORE_RETRY_INITIAL,
    STORE_RETRY_MAXIMUM,
    STORE_RETRY_MULTIPLIER,
    TRANSACTION_MAX_ATTEMPTS,
)

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.transaction import Transaction

T = TypeVar("T")

Filter = tuple[str, str, Any]

STORE_RETRY = retry.Retry(
    predicate=retry.if_transient_error,
    initial=STORE_RETRY_INITIAL,
    maximum=STORE_RETRY_MAXIMUM,
    multiplier=STORE_RETRY_MULTIPLIER,
    timeout=STORE_RETRY_DEADLINE,
)


def get_db() -> Client:
    """Return the Firestore client for the current app."""
    return firestore.client()


def snapshot_to_dict(snapshot: DocumentSnapshot) -> dict[str, Any] | None:
    """Convert a snapshot into a plain dict carrying its ``id``."""
    if not snapshot.exists:
        return None
    data = snapshot.to_dict() or {}
    data["id"] = snapshot.id
    return data


def build_query(db: Client, collection: str, filters: Iterable[Filter] = ()) -> Any:
    """Chain a ``where`` clause per (field, op, value) filter."""
    query: Any = db.collection(collection)
    for field, op, value in filters:
        query = query.where(filter=firestore.FieldFilter(field, op, value))
    return query


@STORE_RETRY
def get_document(db: Client, collection: str, doc_id: str) -> dict[str, Any] | None:
    """Fetch one document, or None when it does not exist."""
    if not doc_id:
        return None
    return snapshot_to_dict(db.collection(collection).document(doc_id).get())


@STORE_RETRY
def list_documents(
    db: Client,
    collection: str,
    filters: Iterable[Filter] = (),
    any_of: Iterable[Iterable[Filter]] = (),
) -> list[dict[str, Any]]:
    """List documents matching every filter.

    ``any_of`` holds alternative filter groups; a document matches when it
    satisfies ``filters`` plus at least one group. Each group runs as its own
    query and the results are merged by document id.
    """
    base = list(filters)
    groups = [base + list(group) for group in any_of] or [base]

    results: dict[str, dict[str, Any]] = {}
    for group in groups:
        for snapshot in build_query(db, collection, group).stream():
            data = snapshot_to_dict(snapshot)
            if data is not None and snapshot.id not in results:
                results[snapshot.id] = data
    return list(results.values())


def create_document(
    db: Client, collection: str, data: dict[str, Any], doc_id: str | None = None
) -> dict[str, Any]:
    """Create a document and return it with its ``id``."""
    col = db.collection(collection)
    ref = col.document(doc_id) if doc_id else col.document()
    # The id is fixed before the write so a retried set cannot duplicate it.
    STORE_RETRY(ref.set)(data)
    return {**data, "id": ref.id}


def update_document(
    db: Client, collection: str, doc_id: str, data: dict[str, Any]
) -> dict[str, Any] | None:
    """Apply a partial update and return the refreshed document."""
    ref = db.collection(collection).document(doc_id)
    STORE_RETRY(ref.update)(data)
    return get_document(db, collection, doc_id)


def delete_document(db: Client, collection: str, doc_id: str) -> None:
    """Delete a document; deleting a missing document is a no-op."""
    STORE_RETRY(db.collection(collection).document(doc_id).delete)()


def query_in_transaction(
    db: Client,
    transaction: Transaction,
    collection: str,
    filters: Iterable[Filter] = (),
) -> list[dict[str, Any]]:
    """Run a query as part of ``transaction`` so its result set is guarded."""
    query = build_query(db, collection, filters)
    docs = []
    for snapshot in query.stream(transaction=transaction):
        data = snapshot_to_dict(snapshot)
        if data is not None:
            docs.append(data)
    return docs


def _max_attempts() -> int:
    if has_app_context():
        return int(
            current_app.config.get("TRANSACTION_MAX_ATTEMPTS", TRANSACTION_MAX_ATTEMPTS)
        )
    return TRANSACTION_MAX_ATTEMPTS


def run_transaction(
    db: Client, func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run ``func(transaction, *args, **kwargs)`` inside a Firestore transaction.

    ``func`` must do all of its reads before its first write. Any exception it
    raises rolls the transaction back and propagates unchanged.
    """
    transaction = db.transaction(max_attempts=_max_attempts())
    return firestore.transactional(func)(transaction, *args, **kwargs)
