"""Service layer for judges and judging criteria."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from mindmesh.core.codes import invite_code_record, normalize_code, reserve_invite_code
from mindmesh.core.constants import (
    CRITERIA_COLLECTION,
    CRITERIA_EDITABLE_FIELDS,
    INVITE_CODES_COLLECTION,
    JUDGE_CODE_LENGTH,
    JUDGE_EDITABLE_FIELDS,
    JUDGES_COLLECTION,
    SCORES_COLLECTION,
    WEIGHT_TOLERANCE,
)
from mindmesh.core.store import (
    delete_document,
    get_document,
    list_documents,
    query_in_transaction,
    run_transaction,
    snapshot_to_dict,
    update_document,
)
from mindmesh.errors import (
    DuplicateResourceError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from mindmesh.utils import utcnow

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.transaction import Transaction

    from mindmesh.core.types import Actor

    from .models import Judge, JudgingCriteria

logger = logging.getLogger(__name__)


def _by_order(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return sorted(items, key=lambda d: (int(d.get("order") or 0), d.get("name") or ""))


class JudgingService:
    """Handles judges, their invitations and the scoring criteria."""

    # Judges

    @staticmethod
    def _add_judge_transaction(
        transaction: Transaction, db: Client, judge: dict[str, Any]
    ) -> dict[str, Any]:
        code, code_ref = reserve_invite_code(db, transaction, JUDGE_CODE_LENGTH)
        judge_ref = db.collection(JUDGES_COLLECTION).document()
        judge = {**judge, "inviteCode": code}
        transaction.set(judge_ref, judge)
        transaction.set(
            code_ref,
            invite_code_record("judge", judge_ref.id, judge["eventId"], judge["createdAt"]),
        )
        return {**judge, "id": judge_ref.id}

    @staticmethod
    def add_judge(db: Client, data: dict[str, Any]) -> Judge:
        """Invite a judge to an event under a fresh 8-character code."""
        if not data.get("eventId") or not data.get("name") or not data.get("email"):
            raise ValidationError("eventId, name, email required")

        now = utcnow()
        judge = {
            "eventId": data["eventId"],
            "userId": None,
            "name": data["name"],
            "email": data["email"].strip().lower(),
            "bio": data.get("bio") or None,
            "organization": data.get("organization") or None,
            "designation": data.get("designation") or None,
            "status": "invited",
            "assignedTeams": list(data.get("assignedTeams") or []),
            "isLead": bool(data.get("isLead", False)),
            "order": int(data.get("order") or 0),
            "createdAt": now,
            "updatedAt": now,
        }
        created = run_transaction(db, JudgingService._add_judge_transaction, db, judge)
        logger.info(f"Judge {created['id']} invited to event {created['eventId']}.")
        return created

    @staticmethod
    def get_judge(db: Client, judge_id: str) -> Judge:
        """Fetch a judge or raise NotFoundError."""
        judge = get_document(db, JUDGES_COLLECTION, judge_id)
        if judge is None:
            raise NotFoundError("Judge not found")
        return judge

    @staticmethod
    def list_judges(db: Client, event_id: str) -> list[Judge]:
        """Judges of an event in display order."""
        return _by_order(list_documents(db, JUDGES_COLLECTION, [("eventId", "==", event_id)]))

    @staticmethod
    def update_judge(db: Client, judge_id: str, updates: dict[str, Any]) -> Judge:
        """Edit a judge's profile and assignments."""
        JudgingService.get_judge(db, judge_id)
        safe = {k: v for k, v in updates.items() if k in JUDGE_EDITABLE_FIELDS}
        if not safe:
            raise ValidationError("No editable fields supplied.")
        if "email" in safe:
            safe["email"] = (safe["email"] or "").strip().lower()
        if "assignedTeams" in safe:
            safe["assignedTeams"] = list(safe["assignedTeams"] or [])
        safe["updatedAt"] = utcnow()
        return update_document(db, JUDGES_COLLECTION, judge_id, safe) or {}

    @staticmethod
    def delete_judge(db: Client, judge_id: str) -> None:
        """Remove a judge and free the invite code. Scores stay as an audit trail."""
        judge = JudgingService.get_judge(db, judge_id)
        batch = db.batch()
        if judge.get("inviteCode"):
            batch.delete(db.collection(INVITE_CODES_COLLECTION).document(judge["inviteCode"]))
        batch.delete(db.collection(JUDGES_COLLECTION).document(judge_id))
        batch.commit()
        logger.info(f"Judge {judge_id} deleted.")

    @staticmethod
    def _respond_transaction(
        transaction: Transaction, db: Client, code: str, user: Actor, accept: bool
    ) -> dict[str, Any]:
        entry = snapshot_to_dict(
            db.collection(INVITE_CODES_COLLECTION).document(code).get(transaction=transaction)
        )
        if entry is None or entry.get("kind") != "judge":
            raise NotFoundError("Invalid invite code")
        judge_ref = db.collection(JUDGES_COLLECTION).document(entry["targetId"])
        judge = snapshot_to_dict(judge_ref.get(transaction=transaction))
        if judge is None:
            raise NotFoundError("Invalid invite code")

        status = judge.get("status")
        if judge.get("userId") and judge["userId"] != user.uid:
            raise DuplicateResourceError("This invitation has already been claimed")
        if status == "declined":
            raise InvalidStateError("This invitation has been declined")
        if status == "accepted":
            if accept:
                return judge
            raise InvalidStateError("An accepted invitation cannot be declined")

        now = utcnow()
        changes: dict[str, Any] = {"updatedAt": now}
        if accept:
            changes.update({"status": "accepted", "userId": user.uid, "acceptedAt": now})
        else:
            changes.update({"status": "declined", "userId": user.uid})
        transaction.update(judge_ref, changes)
        return {**judge, **changes}

    @staticmethod
    def accept_invite(db: Client, invite_code: str, user: Actor) -> Judge:
        """Bind the signed-in user to the judge behind ``invite_code``."""
        judge = run_transaction(
            db, JudgingService._respond_transaction, db, normalize_code(invite_code), user, True
        )
        logger.info(f"User {user.uid} accepted judge invite {judge['id']}.")
        return judge

    @staticmethod
    def decline_invite(db: Client, invite_code: str, user: Actor) -> Judge:
        """Decline a judge invitation."""
        judge = run_transaction(
            db, JudgingService._respond_transaction, db, normalize_code(invite_code), user, False
        )
        logger.info(f"User {user.uid} declined judge invite {judge['id']}.")
        return judge

    # Criteria

    @staticmethod
    def _check_criteria_values(max_score: Any, weight: Any) -> None:
        if max_score is None or float(max_score) <= 0:
            raise ValidationError("maxScore must be greater than 0.")
        if weight is None or not 0 <= float(weight) <= 1:
            raise ValidationError("weight must be between 0 and 1.")

    @staticmethod
    def _check_weight_total(
        others: list[dict[str, Any]], weight: float
    ) -> None:
        total = sum(float(c.get("weight") or 0) for c in others) + weight
        if total > 1 + WEIGHT_TOLERANCE:
            raise ValidationError(
                f"Criteria weights for this event would total {total:.2f}, above 1.0."
            )

    @staticmethod
    def _add_criteria_transaction(
        transaction: Transaction, db: Client, criteria: dict[str, Any]
    ) -> dict[str, Any]:
        existing = query_in_transaction(
            db, transaction, CRITERIA_COLLECTION, [("eventId", "==", criteria["eventId"])]
        )
        JudgingService._check_weight_total(existing, criteria["weight"])
        ref = db.collection(CRITERIA_COLLECTION).document()
        transaction.set(ref, criteria)
        return {**criteria, "id": ref.id}

    @staticmethod
    def add_criteria(db: Client, data: dict[str, Any]) -> JudgingCriteria:
        """Add a scoring criterion.

        The event's weights may never add up to more than 1. Adding criteria
        one at a time means the sum is below 1 until configuration is done.
        """
        if not data.get("eventId") or not data.get("name"):
            raise ValidationError("eventId, name, maxScore, weight required")
        JudgingService._check_criteria_values(data.get("maxScore"), data.get("weight"))

        now = utcnow()
        criteria = {
            "eventId": data["eventId"],
            "name": data["name"],
            "description": data.get("description") or None,
            "maxScore": float(data["maxScore"]),
            "weight": float(data["weight"]),
            "order": int(data.get("order") or 0),
            "createdAt": now,
            "updatedAt": now,
        }
        return run_transaction(db, JudgingService._add_criteria_transaction, db, criteria)

    @staticmethod
    def get_criteria(db: Client, criteria_id: str) -> JudgingCriteria:
        """Fetch a criterion or raise NotFoundError."""
        criteria = get_document(db, CRITERIA_COLLECTION, criteria_id)
        if criteria is None:
            raise NotFoundError("Criteria not found")
        return criteria

    @staticmethod
    def _update_criteria_transaction(
        transaction: Transaction, db: Client, criteria_id: str, safe: dict[str, Any]
    ) -> JudgingCriteria:
        ref = db.collection(CRITERIA_COLLECTION).document(criteria_id)
        current = snapshot_to_dict(ref.get(transaction=transaction))
        if current is None:
            raise NotFoundError("Criteria not found")
        siblings = query_in_transaction(
            db, transaction, CRITERIA_COLLECTION, [("eventId", "==", current["eventId"])]
        )

        merged = {**current, **safe}
        JudgingService._check_criteria_values(merged.get("maxScore"), merged.get("weight"))
        if "weight" in safe:
            others = [c for c in siblings if c["id"] != criteria_id]
            JudgingService._check_weight_total(others, float(merged["weight"]))
        if "maxScore" in safe:
            max_score = float(merged["maxScore"])
            above = [
                s
                for s in query_in_transaction(
                    db, transaction, SCORES_COLLECTION, [("criteriaId", "==", criteria_id)]
                )
                if float(s.get("score") or 0) > max_score
            ]
            if above:
                raise InvalidStateError(
                    f"{len(above)} existing scores are above maxScore {max_score:g}"
                )

        transaction.update(ref, safe)
        return merged

    @staticmethod
    def update_criteria(
        db: Client, criteria_id: str, updates: dict[str, Any]
    ) -> JudgingCriteria:
        """Edit a criterion, re-checking score range and weight total.

        ``maxScore`` cannot drop below a score already given on the
        criterion. A weight change rewrites every submission total of the
        event.
        """
        safe = {k: v for k, v in updates.items() if k in CRITERIA_EDITABLE_FIELDS}
        if not safe:
            raise ValidationError("No editable fields supplied.")
        for key in ("maxScore", "weight"):
            if key in safe and safe[key] is not None:
                safe[key] = float(safe[key])
        safe["updatedAt"] = utcnow()
        criteria = run_transaction(
            db, JudgingService._update_criteria_transaction, db, criteria_id, safe
        )
        logger.info(f"Criteria {criteria_id} updated.")
        if "weight" in safe:
            JudgingService._recompute_totals(db, criteria["eventId"])
        return criteria

    @staticmethod
    def delete_criteria(db: Client, criteria_id: str) -> None:
        """Delete a criterion. Existing scores for it no longer count."""
        criteria = JudgingService.get_criteria(db, criteria_id)
        delete_document(db, CRITERIA_COLLECTION, criteria_id)
        logger.info(f"Criteria {criteria_id} deleted.")
        JudgingService._recompute_totals(db, criteria["eventId"])

    @staticmethod
    def _recompute_totals(db: Client, event_id: str) -> None:
        from .scoring import ScoringService  # scoring imports this module

        ScoringService.recompute_event_totals(db, event_id)

    @staticmethod
    def list_criteria(db: Client, event_id: str) -> list[JudgingCriteria]:
        """Criteria of an event in display order."""
        return _by_order(
            list_documents(db, CRITERIA_COLLECTION, [("eventId", "==", event_id)])
        )

    @staticmethod
    def weight_total(db: Client, event_id: str, criteria: Optional[list] = None) -> float:
        """Sum of the event's criteria weights."""
        if criteria is None:
            criteria = JudgingService.list_criteria(db, event_id)
        return round(sum(float(c.get("weight") or 0) for c in criteria), 6)
