"""Short shareable codes for team and judge invitations."""

from __future__ import annotations

import logging
import secrets
from typing import TYPE_CHECKING, Any

from mindmesh.errors import DuplicateResourceError

from .constants import (
    CODE_ALPHABET,
    CODE_MAX_ATTEMPTS,
    CODE_MAX_LENGTH,
    CODE_MIN_LENGTH,
    INVITE_CODES_COLLECTION,
)

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference
    from google.cloud.firestore_v1.transaction import Transaction

logger = logging.getLogger(__name__)


def generate_code(length: int = CODE_MIN_LENGTH) -> str:
    """Return an uppercase code drawn from the OS CSPRNG."""
    if not CODE_MIN_LENGTH <= length <= CODE_MAX_LENGTH:
        raise ValueError(
            f"Code length must be between {CODE_MIN_LENGTH} and {CODE_MAX_LENGTH}."
        )
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def normalize_code(code: str | None) -> str:
    """Codes are compared case-insensitively and without surrounding spaces."""
    return (code or "").strip().upper()


def reserve_invite_code(
    db: Client, transaction: Transaction, length: int
) -> tuple[str, DocumentReference]:
    """Find an unused invite code, reading the registry inside ``transaction``.

    The caller must write the returned reference in the same transaction so
    that two concurrent reservations of one code conflict and retry.
    """
    registry = db.collection(INVITE_CODES_COLLECTION)
    for _ in range(CODE_MAX_ATTEMPTS):
        code = generate_code(length)
        ref = registry.document(code)
        if not ref.get(transaction=transaction).exists:
            return code, ref
        logger.warning(f"Invite code collision on {code}, drawing another.")
    raise DuplicateResourceError("Could not allocate a unique invite code.")


def invite_code_record(kind: str, target_id: str, event_id: str, now: Any) -> dict:
    """Registry entry pointing an invite code at its team or judge."""
    return {"kind": kind, "targetId": target_id, "eventId": event_id, "createdAt": now}
