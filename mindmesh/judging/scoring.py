"""Score submission, aggregation and results publication."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable, Optional

from mindmesh.core.constants import (
    CRITERIA_COLLECTION,
    JUDGES_COLLECTION,
    PUBLISHED_RESULTS_LIMIT,
    RESULTS_COLLECTION,
    SCORES_COLLECTION,
    SUBMISSION_SCOREABLE_STATUSES,
    SUBMISSIONS_COLLECTION,
    TEAMS_COLLECTION,
    WEIGHT_TOLERANCE,
)
from mindmesh.core.store import (
    get_document,
    list_documents,
    run_transaction,
    snapshot_to_dict,
    update_document,
)
from mindmesh.errors import (
    AppError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from mindmesh.utils import sort_timestamp, utcnow

from .models import ScoreInput
from .services import JudgingService
from .utils import average_scores, compute_weighted_total, rank_submissions

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.transaction import Transaction

    from mindmesh.core.types import Actor

    from .models import EventResults, JudgeScore

logger = logging.getLogger(__name__)


class ScoringService:
    """Handles judge scores, submission totals and event results."""

    @staticmethod
    def _submit_transaction(
        transaction: Transaction, db: Client, item: ScoreInput, actor: Actor
    ) -> tuple[JudgeScore, bool]:
        judge = snapshot_to_dict(
            db.collection(JUDGES_COLLECTION).document(item.judge_id).get(transaction=transaction)
        )
        criteria = snapshot_to_dict(
            db.collection(CRITERIA_COLLECTION)
            .document(item.criteria_id)
            .get(transaction=transaction)
        )
        submission = snapshot_to_dict(
            db.collection(SUBMISSIONS_COLLECTION)
            .document(item.submission_id)
            .get(transaction=transaction)
        )
        score_ref = db.collection(SCORES_COLLECTION).document(item.doc_id)
        existing = snapshot_to_dict(score_ref.get(transaction=transaction))

        if judge is None:
            raise NotFoundError("Judge not found")
        if criteria is None:
            raise NotFoundError("Criteria not found")
        if submission is None:
            raise NotFoundError("Submission not found")

        event_id = submission.get("eventId")
        if item.event_id and item.event_id != event_id:
            raise ValidationError("eventId does not match the submission's event.")
        if judge.get("eventId") != event_id or criteria.get("eventId") != event_id:
            raise ValidationError("Judge, criteria and submission must share one event.")

        if not actor.is_admin and judge.get("userId") != actor.uid:
            raise ForbiddenError("You can only submit scores as yourself.")
        if judge.get("status") == "declined":
            raise InvalidStateError("This judge has declined the invitation")
        assigned = judge.get("assignedTeams") or []
        if assigned and submission.get("teamId") not in assigned:
            raise ForbiddenError("This judge is not assigned to this team")
        if submission.get("status") not in SUBMISSION_SCOREABLE_STATUSES:
            raise InvalidStateError("This submission is not open for judging")

        max_score = float(criteria.get("maxScore") or 0)
        if not 0 <= item.score <= max_score:
            raise ValidationError(f"score must be between 0 and {max_score:g}.")

        now = utcnow()
        record = {
            "eventId": event_id,
            "judgeId": item.judge_id,
            "judgeName": judge.get("name") or "",
            "submissionId": item.submission_id,
            "teamId": submission.get("teamId"),
            "criteriaId": item.criteria_id,
            "criteriaName": criteria.get("name") or "",
            "score": item.score,
            "comment": item.comment,
            "scoredAt": now,
            "createdAt": existing.get("createdAt", now) if existing else now,
        }
        transaction.set(score_ref, record)
        return {**record, "id": item.doc_id}, existing is None

    @staticmethod
    def submit_score(
        db: Client, item: ScoreInput, actor: Actor, recompute: bool = True
    ) -> tuple[JudgeScore, bool]:
        """Insert or overwrite a judge's score for one criterion.

        Returns the stored record and whether it was newly created. The
        submission's ``totalScore`` is recomputed afterwards.
        """
        item.validate()
        record, created = run_transaction(
            db, ScoringService._submit_transaction, db, item, actor
        )
        logger.info(
            f"Score {record['id']} {'created' if created else 'updated'} "
            f"by {actor.uid}: {record['score']}."
        )
        if recompute:
            ScoringService.recompute_total_score(db, item.submission_id)
        return record, created

    @staticmethod
    def submit_scores_bulk(
        db: Client, items: Iterable[Any], actor: Actor
    ) -> list[dict[str, Any]]:
        """Upsert each score on its own; one bad item does not stop the rest.

        Returns ``{"score": ...}`` or ``{"error": ...}`` per item, in order.
        """
        results: list[dict[str, Any]] = []
        touched: list[str] = []
        for raw in items:
            try:
                item = ScoreInput.from_dict(raw)
                record, _ = ScoringService.submit_score(db, item, actor, recompute=False)
            except AppError as e:
                results.append({"error": e.message})
                continue
            results.append({"score": record})
            if item.submission_id not in touched:
                touched.append(item.submission_id)

        for submission_id in touched:
            ScoringService.recompute_total_score(db, submission_id)
        return results

    @staticmethod
    def list_scores(
        db: Client,
        event_id: Optional[str] = None,
        submission_id: Optional[str] = None,
        judge_id: Optional[str] = None,
    ) -> list[JudgeScore]:
        """Score rows filtered by event, submission or judge."""
        filters = []
        if event_id:
            filters.append(("eventId", "==", event_id))
        if submission_id:
            filters.append(("submissionId", "==", submission_id))
        if judge_id:
            filters.append(("judgeId", "==", judge_id))
        if not filters:
            raise ValidationError("eventId, submissionId or judgeId required")
        return list_documents(db, SCORES_COLLECTION, filters)

    @staticmethod
    def recompute_total_score(db: Client, submission_id: str) -> float:
        """Rebuild a submission's ``totalScore`` from its score rows.

        Safe to call any number of times; the same rows always give the same
        total.
        """
        submission = get_document(db, SUBMISSIONS_COLLECTION, submission_id)
        if submission is None:
            raise NotFoundError("Submission not found")

        criteria = JudgingService.list_criteria(db, submission["eventId"])
        scores = ScoringService.list_scores(db, submission_id=submission_id)
        weights = JudgingService.weight_total(db, submission["eventId"], criteria)
        if criteria and weights < 1 - WEIGHT_TOLERANCE:
            logger.warning(
                f"Criteria weights for event {submission['eventId']} total "
                f"{weights}, below 1.0; totals are not on the full scale."
            )

        total = compute_weighted_total(criteria, scores)
        if submission.get("totalScore") != total:
            update_document(
                db,
                SUBMISSIONS_COLLECTION,
                submission_id,
                {"totalScore": total, "updatedAt": utcnow()},
            )
        return total

    @staticmethod
    def recompute_event_totals(db: Client, event_id: str) -> dict[str, float]:
        """Recompute ``totalScore`` for every submission of an event.

        Needed whenever the event's criteria change, since stored totals are
        weighted by the criteria as they were at scoring time.
        """
        totals = {
            s["id"]: ScoringService.recompute_total_score(db, s["id"])
            for s in list_documents(
                db, SUBMISSIONS_COLLECTION, [("eventId", "==", event_id)]
            )
        }
        logger.info(f"Recomputed {len(totals)} submission totals for event {event_id}.")
        return totals

    @staticmethod
    def get_leaderboard(db: Client, event_id: str) -> list[dict[str, Any]]:
        """Ranked judgeable submissions of an event with criterion averages."""
        submissions = [
            s
            for s in list_documents(
                db, SUBMISSIONS_COLLECTION, [("eventId", "==", event_id)]
            )
            if s.get("status") in SUBMISSION_SCOREABLE_STATUSES
        ]
        scores = ScoringService.list_scores(db, event_id=event_id)
        by_submission: dict[str, list[dict[str, Any]]] = {}
        for row in scores:
            by_submission.setdefault(row["submissionId"], []).append(row)

        leaderboard = []
        for entry in rank_submissions(submissions):
            rows = by_submission.get(entry["id"], [])
            leaderboard.append(
                {
                    "rank": entry["rank"],
                    "submissionId": entry["id"],
                    "teamId": entry.get("teamId"),
                    "projectTitle": entry.get("projectTitle"),
                    "totalScore": float(entry.get("totalScore") or 0),
                    "submittedAt": entry.get("submittedAt"),
                    "judgeCount": len({r["judgeId"] for r in rows}),
                    "criteriaAverages": average_scores(rows),
                }
            )
        return leaderboard

    @staticmethod
    def _publish_transaction(
        transaction: Transaction,
        db: Client,
        event_id: str,
        leaderboard: list[dict[str, Any]],
        actor: Actor,
    ) -> EventResults:
        results_ref = db.collection(RESULTS_COLLECTION).document(event_id)
        previous = snapshot_to_dict(results_ref.get(transaction=transaction))
        winner_id = leaderboard[0].get("teamId") if leaderboard else None
        previous_winner = previous.get("winnerTeamId") if previous else None

        winner_ref = winner = None
        if winner_id:
            winner_ref = db.collection(TEAMS_COLLECTION).document(winner_id)
            winner = snapshot_to_dict(winner_ref.get(transaction=transaction))
        demoted_ref = demoted = None
        if previous_winner and previous_winner != winner_id:
            demoted_ref = db.collection(TEAMS_COLLECTION).document(previous_winner)
            demoted = snapshot_to_dict(demoted_ref.get(transaction=transaction))

        now = utcnow()
        results = {
            "eventId": event_id,
            "rankings": [
                {k: v for k, v in row.items() if k != "criteriaAverages"}
                for row in leaderboard
            ],
            "winnerTeamId": winner_id,
            "isPublished": True,
            "publishedAt": now,
            "publishedBy": actor.uid,
        }
        transaction.set(results_ref, results)
        if winner is not None and winner.get("status") == "submitted":
            transaction.update(winner_ref, {"status": "winner", "updatedAt": now})
        if demoted is not None and demoted.get("status") == "winner":
            transaction.update(demoted_ref, {"status": "submitted", "updatedAt": now})
        return {**results, "id": event_id}

    @staticmethod
    def publish_results(db: Client, event_id: str, actor: Actor) -> EventResults:
        """Freeze the current ranking as the event's results.

        Every submission total is recomputed first. The first-ranked team is
        promoted from ``submitted`` to ``winner``; a team that won an earlier
        publication and no longer ranks first goes back to ``submitted``.
        """
        ScoringService.recompute_event_totals(db, event_id)
        leaderboard = ScoringService.get_leaderboard(db, event_id)
        if not leaderboard:
            raise InvalidStateError("There are no judged submissions to publish")
        results = run_transaction(
            db, ScoringService._publish_transaction, db, event_id, leaderboard, actor
        )
        logger.info(
            f"Results for event {event_id} published by {actor.uid}; "
            f"winner team {results['winnerTeamId']}."
        )
        return results

    @staticmethod
    def get_results(
        db: Client, event_id: str, include_unpublished: bool = False
    ) -> EventResults:
        """Published results of an event."""
        results = get_document(db, RESULTS_COLLECTION, event_id)
        if results is None or not (results.get("isPublished") or include_unpublished):
            raise NotFoundError("Results have not been published")
        return results

    @staticmethod
    def list_published_results(
        db: Client, limit: int = PUBLISHED_RESULTS_LIMIT
    ) -> list[EventResults]:
        """Published results across events, most recently published first."""
        results = list_documents(db, RESULTS_COLLECTION, [("isPublished", "==", True)])
        results.sort(key=lambda r: sort_timestamp(r.get("publishedAt")), reverse=True)
        return results[:limit]
