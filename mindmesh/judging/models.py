"""Data models for the judging blueprint."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from mindmesh.core.constants import ID_SEPARATOR
from mindmesh.core.types import FirestoreDocument
from mindmesh.errors import ValidationError


class Judge(FirestoreDocument, total=False):
    """A judge invited to an event."""

    eventId: str
    userId: Optional[str]
    name: str
    email: str
    bio: Optional[str]
    organization: Optional[str]
    designation: Optional[str]
    status: str  # invited/accepted/declined
    inviteCode: str
    assignedTeams: list[str]  # empty means every team
    isLead: bool
    order: int


class JudgingCriteria(FirestoreDocument, total=False):
    """One scoring criterion; ``weight`` is a fraction of the total."""

    eventId: str
    name: str
    description: Optional[str]
    maxScore: float
    weight: float
    order: int


class JudgeScore(FirestoreDocument, total=False):
    """A judge's score for one criterion of one submission."""

    eventId: str
    judgeId: str
    judgeName: str
    submissionId: str
    teamId: Optional[str]
    criteriaId: str
    criteriaName: str
    score: float
    comment: Optional[str]
    scoredAt: Any


class EventResults(FirestoreDocument, total=False):
    """Published final standings for an event."""

    eventId: str
    rankings: list[dict[str, Any]]
    winnerTeamId: Optional[str]
    isPublished: bool
    publishedAt: Any
    publishedBy: str


@dataclass
class ScoreInput:
    """A single score submission."""

    judge_id: str
    submission_id: str
    criteria_id: str
    score: float
    event_id: Optional[str] = None
    comment: Optional[str] = None

    @property
    def doc_id(self) -> str:
        """Scores are keyed by judge, submission and criterion."""
        return ID_SEPARATOR.join((self.judge_id, self.submission_id, self.criteria_id))

    @classmethod
    def from_dict(cls, data: Any) -> ScoreInput:
        """Build an input from a JSON object, rejecting malformed items."""
        if not isinstance(data, dict):
            raise ValidationError("Each score must be an object.")
        missing = [
            key
            for key in ("judgeId", "submissionId", "criteriaId", "score")
            if data.get(key) in (None, "")
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")
        score = data["score"]
        if isinstance(score, bool):
            raise ValidationError("score must be a number.")
        try:
            value = float(score)
        except (TypeError, ValueError) as e:
            raise ValidationError("score must be a number.") from e
        return cls(
            judge_id=str(data["judgeId"]),
            submission_id=str(data["submissionId"]),
            criteria_id=str(data["criteriaId"]),
            score=value,
            event_id=data.get("eventId") or None,
            comment=data.get("comment") or None,
        )

    def validate(self) -> None:
        """Reject ids that cannot form an unambiguous document key."""
        for name in (self.judge_id, self.submission_id, self.criteria_id):
            if "/" in name or ID_SEPARATOR in name:
                raise ValidationError(f"Ids cannot contain '/' or '{ID_SEPARATOR}'.")
