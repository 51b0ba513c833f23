"""Service layer for hackathon project submissions."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from mindmesh.core.constants import (
    MEMBERS_COLLECTION,
    SUBMISSION_EDITABLE_FIELDS,
    SUBMISSION_LOCKED_STATUSES,
    SUBMISSION_STATUSES,
    SUBMISSION_TRANSITIONS,
    SUBMISSIONS_COLLECTION,
    TEAM_TERMINAL_STATUSES,
    TEAMS_COLLECTION,
)
from mindmesh.core.store import (
    get_document,
    list_documents,
    query_in_transaction,
    run_transaction,
    snapshot_to_dict,
    update_document,
)
from mindmesh.errors import (
    DuplicateResourceError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from mindmesh.problems.services import ProblemStatementService
from mindmesh.utils import sort_timestamp, utcnow

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.transaction import Transaction

    from mindmesh.core.types import Actor

logger = logging.getLogger(__name__)

LIST_FIELDS = ("techStack", "screenshots")
SUBMITTABLE_TEAM_STATUSES = ("forming", "locked")


class SubmissionService:
    """Handles the submission lifecycle."""

    @staticmethod
    def _team_member_filters(team_id: str, user_id: str) -> list:
        return [
            ("teamId", "==", team_id),
            ("userId", "==", user_id),
            ("status", "==", "accepted"),
        ]

    @staticmethod
    def _team_update(team: dict[str, Any], submission_id: str, status: str, now: Any) -> dict:
        """Changes to a team when its project is created or handed in."""
        changes: dict[str, Any] = {"submissionId": submission_id, "updatedAt": now}
        if status == "submitted" and team.get("status") in SUBMITTABLE_TEAM_STATUSES:
            changes["status"] = "submitted"
        return changes

    @staticmethod
    def _create_transaction(
        transaction: Transaction,
        db: Client,
        submission: dict[str, Any],
        user: Actor,
    ) -> dict[str, Any]:
        event_id = submission["eventId"]
        team_id = submission.get("teamId")

        team_ref = team = None
        if team_id:
            team_ref = db.collection(TEAMS_COLLECTION).document(team_id)
            team = snapshot_to_dict(team_ref.get(transaction=transaction))
            if team is None:
                raise NotFoundError("Team not found")
            membership = query_in_transaction(
                db,
                transaction,
                MEMBERS_COLLECTION,
                SubmissionService._team_member_filters(team_id, user.uid),
            )
            existing = query_in_transaction(
                db,
                transaction,
                SUBMISSIONS_COLLECTION,
                [("eventId", "==", event_id), ("teamId", "==", team_id)],
            )
            if team.get("eventId") != event_id:
                raise ValidationError("This team is registered for a different event.")
            if not membership and not user.is_admin:
                raise ForbiddenError("Only members of this team can submit for it.")
            if team.get("status") in TEAM_TERMINAL_STATUSES:
                raise InvalidStateError(f"A {team['status']} team cannot submit")
            if existing:
                raise DuplicateResourceError(
                    "Your team has already submitted a project for this event"
                )
            inherited = team.get("problemStatementId")
            if inherited and not submission.get("problemStatementId"):
                submission = {**submission, "problemStatementId": inherited}
        else:
            existing = query_in_transaction(
                db,
                transaction,
                SUBMISSIONS_COLLECTION,
                [("eventId", "==", event_id), ("userId", "==", user.uid)],
            )
            if any(not s.get("teamId") for s in existing):
                raise DuplicateResourceError(
                    "You have already submitted a project for this event"
                )

        ref = db.collection(SUBMISSIONS_COLLECTION).document()
        transaction.set(ref, submission)
        if team_ref is not None and team is not None:
            transaction.update(
                team_ref,
                SubmissionService._team_update(
                    team, ref.id, submission["status"], submission["createdAt"]
                ),
            )
        return {**submission, "id": ref.id}

    @staticmethod
    def create_submission(
        db: Client, data: dict[str, Any], user: Actor, as_draft: bool = False
    ) -> dict[str, Any]:
        """Create a project submission for a user or their team.

        A team gets one submission per event. Handing it in moves the team to
        ``submitted`` in the same transaction.
        """
        missing = [
            key
            for key in ("eventId", "projectTitle", "projectDescription")
            if not data.get(key)
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        now = utcnow()
        status = "draft" if as_draft else "submitted"
        submission: dict[str, Any] = {
            "eventId": data["eventId"],
            "teamId": data.get("teamId") or None,
            "userId": user.uid,
            "userName": user.name,
            "status": status,
            "submittedAt": now if status == "submitted" else None,
            "reviewedBy": None,
            "reviewNotes": None,
            "totalScore": 0,
            "createdAt": now,
            "updatedAt": now,
        }
        for key in SUBMISSION_EDITABLE_FIELDS:
            if key in LIST_FIELDS:
                submission[key] = list(data.get(key) or [])
            else:
                submission[key] = data.get(key) or None
        if submission["problemStatementId"]:
            ProblemStatementService.check_reference(
                db, submission["eventId"], submission["problemStatementId"]
            )

        created = run_transaction(
            db, SubmissionService._create_transaction, db, submission, user
        )
        logger.info(
            f"Submission {created['id']} created as {status} for event "
            f"{created['eventId']} by {user.uid}."
        )
        return created

    @staticmethod
    def get_submission(db: Client, submission_id: str) -> dict[str, Any]:
        """Fetch a submission or raise NotFoundError."""
        submission = get_document(db, SUBMISSIONS_COLLECTION, submission_id)
        if submission is None:
            raise NotFoundError("Submission not found")
        return submission

    @staticmethod
    def is_contributor(db: Client, submission: dict[str, Any], user_id: str) -> bool:
        """True for the author and for accepted members of the submitting team."""
        if submission.get("userId") == user_id:
            return True
        team_id = submission.get("teamId")
        if not team_id:
            return False
        return bool(
            list_documents(
                db,
                MEMBERS_COLLECTION,
                SubmissionService._team_member_filters(team_id, user_id),
            )
        )

    @staticmethod
    def update_submission(
        db: Client, submission_id: str, updates: dict[str, Any], user: Actor
    ) -> dict[str, Any]:
        """Edit project details until the submission goes under review."""
        submission = SubmissionService.get_submission(db, submission_id)
        if not user.is_admin and not SubmissionService.is_contributor(
            db, submission, user.uid
        ):
            raise ForbiddenError("You cannot edit this submission.")
        if submission.get("status") in SUBMISSION_LOCKED_STATUSES:
            raise InvalidStateError(
                f"A submission that is {submission['status']} can no longer be edited"
            )

        safe = {k: v for k, v in updates.items() if k in SUBMISSION_EDITABLE_FIELDS}
        if not safe:
            raise ValidationError("No editable fields supplied.")
        for key in LIST_FIELDS:
            if key in safe:
                safe[key] = list(safe[key] or [])
        for key in ("projectTitle", "projectDescription"):
            if key in safe and not safe[key]:
                raise ValidationError(f"{key} cannot be empty.")
        if "problemStatementId" in safe:
            safe["problemStatementId"] = safe["problemStatementId"] or None
            if safe["problemStatementId"]:
                ProblemStatementService.check_reference(
                    db, submission["eventId"], safe["problemStatementId"]
                )

        safe["updatedAt"] = utcnow()
        return update_document(db, SUBMISSIONS_COLLECTION, submission_id, safe) or {}

    @staticmethod
    def _status_transaction(
        transaction: Transaction,
        db: Client,
        submission_id: str,
        status: str,
        actor: Actor,
        review_notes: Optional[str],
    ) -> dict[str, Any]:
        ref = db.collection(SUBMISSIONS_COLLECTION).document(submission_id)
        submission = snapshot_to_dict(ref.get(transaction=transaction))
        if submission is None:
            raise NotFoundError("Submission not found")

        team_ref = team = None
        membership: list = []
        if submission.get("teamId"):
            team_ref = db.collection(TEAMS_COLLECTION).document(submission["teamId"])
            team = snapshot_to_dict(team_ref.get(transaction=transaction))
            membership = query_in_transaction(
                db,
                transaction,
                MEMBERS_COLLECTION,
                SubmissionService._team_member_filters(submission["teamId"], actor.uid),
            )

        current = submission.get("status") or "draft"
        if not actor.is_admin:
            if not (submission.get("userId") == actor.uid or membership):
                raise ForbiddenError("You cannot change this submission.")
            if (current, status) != ("draft", "submitted"):
                raise ForbiddenError("Only an admin can review submissions.")
        if status not in SUBMISSION_TRANSITIONS.get(current, ()):
            raise InvalidStateError(f"Cannot move submission from {current} to {status}")

        now = utcnow()
        changes: dict[str, Any] = {"status": status, "updatedAt": now}
        if status == "submitted":
            changes["submittedAt"] = now
        else:
            changes["reviewedBy"] = actor.uid
            changes["reviewedAt"] = now
            if review_notes is not None:
                changes["reviewNotes"] = review_notes

        transaction.update(ref, changes)
        if status == "submitted" and team_ref is not None and team is not None:
            transaction.update(
                team_ref, SubmissionService._team_update(team, submission_id, status, now)
            )
        return {**submission, **changes}

    @staticmethod
    def change_status(
        db: Client,
        submission_id: str,
        status: str,
        actor: Actor,
        review_notes: Optional[str] = None,
    ) -> dict[str, Any]:
        """Advance a submission through draft, submitted and review."""
        if status not in SUBMISSION_STATUSES:
            raise ValidationError(
                f"status must be one of {', '.join(SUBMISSION_STATUSES)}."
            )
        submission = run_transaction(
            db,
            SubmissionService._status_transaction,
            db,
            submission_id,
            status,
            actor,
            review_notes,
        )
        logger.info(f"Submission {submission_id} moved to {status} by {actor.uid}.")
        return submission

    @staticmethod
    def list_submissions(
        db: Client,
        event_id: Optional[str] = None,
        team_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        """Submissions filtered by event, team or author, newest first."""
        filters = []
        if event_id:
            filters.append(("eventId", "==", event_id))
        if team_id:
            filters.append(("teamId", "==", team_id))
        if user_id:
            filters.append(("userId", "==", user_id))
        if not filters:
            raise ValidationError("eventId or teamId required")
        submissions = list_documents(db, SUBMISSIONS_COLLECTION, filters)
        return sorted(
            submissions,
            key=lambda s: sort_timestamp(s.get("createdAt")),
            reverse=True,
        )
