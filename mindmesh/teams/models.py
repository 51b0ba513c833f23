"""Data models for hackathon teams."""

from __future__ import annotations

from typing import Any, Optional

from mindmesh.core.types import FirestoreDocument


class HackathonTeam(FirestoreDocument, total=False):
    """A team document; ``memberCount`` mirrors its accepted member rows."""

    eventId: str
    teamName: str
    description: Optional[str]
    leaderId: str
    leaderName: str
    leaderEmail: str
    inviteCode: str
    problemStatementId: Optional[str]
    memberCount: int
    maxSize: int
    status: str  # forming/locked/submitted/disqualified/winner
    submissionId: Optional[str]


class TeamMember(FirestoreDocument, total=False):
    """Membership of one user in one team."""

    teamId: str
    eventId: str
    userId: str
    name: str
    email: str
    role: str  # leader/member
    status: str  # invited/accepted/declined/removed
    joinedAt: Any
    removedAt: Any
