"""Routes for the submissions blueprint."""

from __future__ import annotations

from typing import Any

from flask import jsonify, request

from mindmesh.auth.decorators import current_actor, login_required
from mindmesh.core.forms import validate_json
from mindmesh.core.store import get_db

from . import bp
from .forms import CreateSubmissionForm, SubmissionDetailsForm, SubmissionStatusForm
from .services import SubmissionService


@bp.route("", methods=["GET"])
@login_required
def list_submissions() -> Any:
    """List submissions of an event, a team or an author."""
    submissions = SubmissionService.list_submissions(
        get_db(),
        event_id=request.args.get("eventId"),
        team_id=request.args.get("teamId"),
        user_id=request.args.get("userId"),
    )
    return jsonify({"submissions": submissions})


@bp.route("", methods=["POST"])
@login_required
def create_submission() -> Any:
    """Hand in a project, or save it as a draft."""
    form = validate_json(CreateSubmissionForm)
    data = form.submitted_data()
    as_draft = bool(data.pop("asDraft", False))
    submission = SubmissionService.create_submission(
        get_db(), data, current_actor(), as_draft=as_draft
    )
    return jsonify({"success": True, "submission": submission}), 201


@bp.route("/<string:submission_id>", methods=["GET"])
@login_required
def view_submission(submission_id: str) -> Any:
    """Return one submission."""
    return jsonify({"submission": SubmissionService.get_submission(get_db(), submission_id)})


@bp.route("/<string:submission_id>", methods=["PATCH"])
@login_required
def update_submission(submission_id: str) -> Any:
    """Edit a submission's project details."""
    form = validate_json(SubmissionDetailsForm)
    submission = SubmissionService.update_submission(
        get_db(), submission_id, form.submitted_data(), current_actor()
    )
    return jsonify({"success": True, "submission": submission})


@bp.route("/<string:submission_id>/status", methods=["POST"])
@login_required
def change_status(submission_id: str) -> Any:
    """Move a submission to its next status."""
    form = validate_json(SubmissionStatusForm)
    submission = SubmissionService.change_status(
        get_db(),
        submission_id,
        form.status.data,
        current_actor(),
        review_notes=form.reviewNotes.data or None,
    )
    return jsonify({"success": True, "submission": submission})
