"""Service layer for problem statements."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from mindmesh.core.constants import (
    PROBLEM_DIFFICULTIES,
    PROBLEM_EDITABLE_FIELDS,
    PROBLEMS_COLLECTION,
)
from mindmesh.core.store import (
    create_document,
    delete_document,
    get_document,
    list_documents,
    run_transaction,
    snapshot_to_dict,
)
from mindmesh.errors import InvalidStateError, NotFoundError, ValidationError
from mindmesh.utils import utcnow

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference
    from google.cloud.firestore_v1.transaction import Transaction

    from .models import ProblemStatement

logger = logging.getLogger(__name__)


class ProblemStatementService:
    """Handles an event's problem statements and how many teams chose each."""

    @staticmethod
    def _check_values(difficulty: Any, max_teams: Any) -> None:
        if difficulty not in PROBLEM_DIFFICULTIES:
            raise ValidationError(
                f"difficulty must be one of {', '.join(PROBLEM_DIFFICULTIES)}."
            )
        if int(max_teams or 0) < 0:
            raise ValidationError("maxTeams cannot be negative.")

    @staticmethod
    def create_problem_statement(
        db: Client, data: dict[str, Any], created_by: str = ""
    ) -> ProblemStatement:
        """Add a problem statement to an event."""
        missing = [k for k in ("eventId", "title", "description") if not data.get(k)]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")
        difficulty = data.get("difficulty") or "intermediate"
        max_teams = int(data.get("maxTeams") or 0)
        ProblemStatementService._check_values(difficulty, max_teams)

        now = utcnow()
        statement = {
            "eventId": data["eventId"],
            "title": data["title"].strip(),
            "description": data["description"],
            "category": data.get("category") or None,
            "difficulty": difficulty,
            "expectedOutcome": data.get("expectedOutcome") or None,
            "resources": list(data.get("resources") or []),
            "sponsorName": data.get("sponsorName") or None,
            "maxTeams": max_teams,
            "enrolledTeams": 0,
            "isVisible": bool(data.get("isVisible", True)),
            "order": int(data.get("order") or 0),
            "createdBy": created_by,
            "createdAt": now,
            "updatedAt": now,
        }
        created = create_document(db, PROBLEMS_COLLECTION, statement)
        logger.info(f"Problem statement {created['id']} added to event {data['eventId']}.")
        return created

    @staticmethod
    def get_problem_statement(db: Client, statement_id: str) -> ProblemStatement:
        """Fetch a problem statement or raise NotFoundError."""
        statement = get_document(db, PROBLEMS_COLLECTION, statement_id)
        if statement is None:
            raise NotFoundError("Problem statement not found")
        return statement

    @staticmethod
    def list_problem_statements(
        db: Client, event_id: str, include_hidden: bool = False
    ) -> list[ProblemStatement]:
        """Problem statements of an event in display order."""
        filters = [("eventId", "==", event_id)]
        if not include_hidden:
            filters.append(("isVisible", "==", True))
        statements = list_documents(db, PROBLEMS_COLLECTION, filters)
        return sorted(
            statements, key=lambda s: (int(s.get("order") or 0), s.get("title") or "")
        )

    @staticmethod
    def _update_transaction(
        transaction: Transaction, db: Client, statement_id: str, safe: dict[str, Any]
    ) -> ProblemStatement:
        ref = db.collection(PROBLEMS_COLLECTION).document(statement_id)
        current = snapshot_to_dict(ref.get(transaction=transaction))
        if current is None:
            raise NotFoundError("Problem statement not found")

        merged = {**current, **safe}
        max_teams = int(merged.get("maxTeams") or 0)
        ProblemStatementService._check_values(
            merged.get("difficulty") or "intermediate", max_teams
        )
        enrolled = int(current.get("enrolledTeams") or 0)
        if max_teams and max_teams < enrolled:
            raise InvalidStateError(
                f"{enrolled} teams already chose this problem statement"
            )
        transaction.update(ref, safe)
        return merged

    @staticmethod
    def update_problem_statement(
        db: Client, statement_id: str, updates: dict[str, Any]
    ) -> ProblemStatement:
        """Edit a problem statement; the cap cannot drop below its enrolment."""
        safe = {k: v for k, v in updates.items() if k in PROBLEM_EDITABLE_FIELDS}
        if not safe:
            raise ValidationError("No editable fields supplied.")
        for key in ("title", "description"):
            if key in safe and not safe[key]:
                raise ValidationError(f"{key} cannot be empty.")
        if "maxTeams" in safe:
            safe["maxTeams"] = int(safe["maxTeams"] or 0)
        if "resources" in safe:
            safe["resources"] = list(safe["resources"] or [])
        safe["updatedAt"] = utcnow()
        return run_transaction(
            db, ProblemStatementService._update_transaction, db, statement_id, safe
        )

    @staticmethod
    def delete_problem_statement(db: Client, statement_id: str) -> None:
        """Delete a problem statement no team has chosen."""
        statement = ProblemStatementService.get_problem_statement(db, statement_id)
        if int(statement.get("enrolledTeams") or 0) > 0:
            raise InvalidStateError("Teams have already chosen this problem statement")
        delete_document(db, PROBLEMS_COLLECTION, statement_id)
        logger.info(f"Problem statement {statement_id} deleted.")

    @staticmethod
    def check_reference(db: Client, event_id: str, statement_id: str) -> ProblemStatement:
        """Make sure ``statement_id`` names a problem statement of ``event_id``."""
        statement = get_document(db, PROBLEMS_COLLECTION, statement_id)
        if statement is None or statement.get("eventId") != event_id:
            raise ValidationError("Unknown problem statement for this event")
        return statement

    @staticmethod
    def read_in_transaction(
        db: Client, transaction: Transaction, statement_id: str
    ) -> tuple[DocumentReference, Optional[ProblemStatement]]:
        """Read a problem statement as part of ``transaction``."""
        ref = db.collection(PROBLEMS_COLLECTION).document(statement_id)
        return ref, snapshot_to_dict(ref.get(transaction=transaction))

    @staticmethod
    def read_for_enrolment(
        db: Client, transaction: Transaction, statement_id: str, event_id: str
    ) -> tuple[DocumentReference, ProblemStatement]:
        """Read a problem statement a team wants to choose, checking it is open.

        Hidden statements cannot be chosen, and a full one rejects new teams.
        """
        ref, statement = ProblemStatementService.read_in_transaction(
            db, transaction, statement_id
        )
        if (
            statement is None
            or statement.get("eventId") != event_id
            or not statement.get("isVisible", True)
        ):
            raise ValidationError("Unknown problem statement for this event")
        max_teams = int(statement.get("maxTeams") or 0)
        if max_teams and int(statement.get("enrolledTeams") or 0) >= max_teams:
            raise InvalidStateError(
                f"This problem statement is full ({max_teams} teams max)"
            )
        return ref, statement

    @staticmethod
    def adjust_enrolment(
        transaction: Any, ref: DocumentReference, statement: ProblemStatement, delta: int
    ) -> None:
        """Write ``enrolledTeams`` shifted by ``delta``, never below zero."""
        enrolled = max(int(statement.get("enrolledTeams") or 0) + delta, 0)
        transaction.update(ref, {"enrolledTeams": enrolled, "updatedAt": utcnow()})
