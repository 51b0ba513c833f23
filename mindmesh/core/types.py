"""Core data types for the mindmesh application."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, TypedDict


class _FirestoreDocumentBase(TypedDict):
    id: str


class FirestoreDocument(_FirestoreDocumentBase, total=False):
    """Generic Firestore document structure."""

    createdAt: Any
    updatedAt: Any


class UserSession(TypedDict, total=False):
    """The signed-in user as loaded into ``g.user``."""

    uid: str
    name: str
    email: str
    isAdmin: bool


@dataclass(frozen=True)
class Actor:
    """The user on whose behalf a service call runs."""

    uid: str
    name: str = ""
    email: str = ""
    is_admin: bool = False

    @classmethod
    def from_user(cls, user: Mapping[str, Any], is_admin: bool = False) -> Actor:
        """Build an actor from a user document such as ``g.user``."""
        return cls(
            uid=user["uid"],
            name=user.get("name") or "",
            email=user.get("email") or "",
            is_admin=is_admin,
        )
