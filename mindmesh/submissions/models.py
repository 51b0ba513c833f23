"""Data models for hackathon submissions."""

from typing import Any, Optional

from mindmesh.core.types import FirestoreDocument


class Submission(FirestoreDocument, total=False):
    """A project handed in by a user or a team."""

    eventId: str
    teamId: Optional[str]
    userId: str
    userName: str
    projectTitle: str
    projectDescription: str
    problemStatementId: Optional[str]
    techStack: list[str]
    repoUrl: Optional[str]
    demoUrl: Optional[str]
    videoUrl: Optional[str]
    presentationUrl: Optional[str]
    screenshots: list[str]
    additionalNotes: Optional[str]
    status: str  # draft/submitted/under_review/accepted/rejected
    submittedAt: Any
    reviewedBy: Optional[str]
    reviewedAt: Any
    reviewNotes: Optional[str]
    totalScore: float
