"""Data models for problem statements."""

from typing import Optional

from mindmesh.core.types import FirestoreDocument


class ProblemStatement(FirestoreDocument, total=False):
    """A challenge teams pick for an event; ``maxTeams`` of 0 means no cap."""

    eventId: str
    title: str
    description: str
    category: Optional[str]
    difficulty: str  # beginner/intermediate/advanced
    expectedOutcome: Optional[str]
    resources: list[str]
    sponsorName: Optional[str]
    maxTeams: int
    enrolledTeams: int
    isVisible: bool
    order: int
