"""Routes for the judging blueprint."""

from __future__ import annotations

from typing import Any

from flask import jsonify, request

from mindmesh.auth.decorators import (
    admin_required,
    current_actor,
    current_user_is_admin,
    login_required,
)
from mindmesh.core.forms import validate_json
from mindmesh.core.store import get_db
from mindmesh.errors import ValidationError

from . import bp
from .forms import (
    CriteriaForm,
    CriteriaUpdateForm,
    InviteResponseForm,
    JudgeForm,
    JudgeUpdateForm,
    PublishResultsForm,
    ScoreForm,
)
from .models import ScoreInput
from .scoring import ScoringService
from .services import JudgingService


def _public_judge(judge: dict[str, Any]) -> dict[str, Any]:
    """Judges as anyone may see them; invite codes stay with admins."""
    return {k: v for k, v in judge.items() if k not in ("inviteCode", "email")}


@bp.route("", methods=["GET"])
def list_items() -> Any:
    """List judges, criteria or scores of an event."""
    event_id = request.args.get("eventId")
    item_type = request.args.get("type") or "judges"
    if not event_id:
        raise ValidationError("eventId required")

    db = get_db()
    if item_type == "judges":
        items = JudgingService.list_judges(db, event_id)
        if not current_user_is_admin():
            items = [_public_judge(j) for j in items]
    elif item_type == "criteria":
        items = JudgingService.list_criteria(db, event_id)
    elif item_type == "scores":
        items = ScoringService.list_scores(db, event_id=event_id)
    else:
        raise ValidationError("type must be judges, criteria or scores")
    return jsonify({"items": items})


@bp.route("/judges", methods=["POST"])
@admin_required
def add_judge() -> Any:
    """Invite a judge."""
    form = validate_json(JudgeForm)
    judge = JudgingService.add_judge(get_db(), form.submitted_data())
    return jsonify({"judge": judge}), 201


@bp.route("/judges/<string:judge_id>", methods=["PATCH"])
@admin_required
def update_judge(judge_id: str) -> Any:
    """Edit a judge."""
    form = validate_json(JudgeUpdateForm)
    updates = form.submitted_data()
    # An empty list never reaches the form, but it means "all teams".
    if (request.get_json(silent=True) or {}).get("assignedTeams") == []:
        updates["assignedTeams"] = []
    judge = JudgingService.update_judge(get_db(), judge_id, updates)
    return jsonify({"judge": judge})


@bp.route("/judges/<string:judge_id>", methods=["DELETE"])
@admin_required
def delete_judge(judge_id: str) -> Any:
    """Remove a judge."""
    JudgingService.delete_judge(get_db(), judge_id)
    return jsonify({"success": True})


@bp.route("/judges/accept", methods=["POST"])
@login_required
def accept_invite() -> Any:
    """Accept a judge invitation."""
    form = validate_json(InviteResponseForm)
    judge = JudgingService.accept_invite(get_db(), form.inviteCode.data, current_actor())
    return jsonify({"judge": judge})


@bp.route("/judges/decline", methods=["POST"])
@login_required
def decline_invite() -> Any:
    """Decline a judge invitation."""
    form = validate_json(InviteResponseForm)
    judge = JudgingService.decline_invite(get_db(), form.inviteCode.data, current_actor())
    return jsonify({"judge": _public_judge(judge)})


@bp.route("/criteria", methods=["POST"])
@admin_required
def add_criteria() -> Any:
    """Add a scoring criterion."""
    form = validate_json(CriteriaForm)
    criteria = JudgingService.add_criteria(get_db(), form.submitted_data())
    return jsonify({"criteria": criteria}), 201


@bp.route("/criteria/<string:criteria_id>", methods=["PATCH"])
@admin_required
def update_criteria(criteria_id: str) -> Any:
    """Edit a scoring criterion."""
    form = validate_json(CriteriaUpdateForm)
    criteria = JudgingService.update_criteria(get_db(), criteria_id, form.submitted_data())
    return jsonify({"criteria": criteria})


@bp.route("/criteria/<string:criteria_id>", methods=["DELETE"])
@admin_required
def delete_criteria(criteria_id: str) -> Any:
    """Delete a scoring criterion."""
    JudgingService.delete_criteria(get_db(), criteria_id)
    return jsonify({"success": True})


@bp.route("/scores", methods=["POST"])
@login_required
def submit_score() -> Any:
    """Record a judge's score; 201 when new, 200 when it replaced one."""
    form = validate_json(ScoreForm)
    item = ScoreInput(
        judge_id=form.judgeId.data,
        submission_id=form.submissionId.data,
        criteria_id=form.criteriaId.data,
        score=form.score.data,
        event_id=form.eventId.data or None,
        comment=form.comment.data or None,
    )
    record, created = ScoringService.submit_score(get_db(), item, current_actor())
    return jsonify({"score": record}), 201 if created else 200


@bp.route("/scores/bulk", methods=["POST"])
@admin_required
def submit_scores_bulk() -> Any:
    """Record many scores, reporting success or failure per item."""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object.")
    scores = payload.get("scores")
    if not isinstance(scores, list) or not scores:
        raise ValidationError("scores array required")
    results = ScoringService.submit_scores_bulk(get_db(), scores, current_actor())
    return jsonify({"results": results}), 201


@bp.route("/scores/recompute/<string:submission_id>", methods=["POST"])
@admin_required
def recompute_total(submission_id: str) -> Any:
    """Rebuild a submission's total from its score rows."""
    total = ScoringService.recompute_total_score(get_db(), submission_id)
    return jsonify({"submissionId": submission_id, "totalScore": total})


@bp.route("/leaderboard", methods=["GET"])
@admin_required
def leaderboard() -> Any:
    """Current ranking of an event's submissions."""
    event_id = request.args.get("eventId")
    if not event_id:
        raise ValidationError("eventId required")
    return jsonify({"leaderboard": ScoringService.get_leaderboard(get_db(), event_id)})


@bp.route("/results", methods=["POST"])
@admin_required
def publish_results() -> Any:
    """Publish the current ranking as the event's results."""
    form = validate_json(PublishResultsForm)
    results = ScoringService.publish_results(get_db(), form.eventId.data, current_actor())
    return jsonify({"results": results}), 201


@bp.route("/results", methods=["GET"])
def list_results() -> Any:
    """Recently published results across events."""
    return jsonify({"results": ScoringService.list_published_results(get_db())})


@bp.route("/results/<string:event_id>", methods=["GET"])
def get_results(event_id: str) -> Any:
    """Published results of an event."""
    results = ScoringService.get_results(
        get_db(), event_id, include_unpublished=current_user_is_admin()
    )
    return jsonify({"results": results})
