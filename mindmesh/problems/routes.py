"""Routes for the problem statements blueprint."""

from __future__ import annotations

from typing import Any

from flask import g, jsonify, request

from mindmesh.auth.decorators import admin_required, current_user_is_admin
from mindmesh.core.forms import validate_json
from mindmesh.core.store import get_db
from mindmesh.errors import NotFoundError, ValidationError

from . import bp
from .forms import ProblemStatementForm, ProblemStatementUpdateForm
from .services import ProblemStatementService


@bp.route("", methods=["GET"])
def list_problem_statements() -> Any:
    """Visible problem statements of an event; admins may ask for all."""
    event_id = request.args.get("eventId")
    if not event_id:
        raise ValidationError("eventId required")
    include_hidden = (
        current_user_is_admin()
        and (request.args.get("includeHidden") or "").lower() in ("true", "1")
    )
    statements = ProblemStatementService.list_problem_statements(
        get_db(), event_id, include_hidden=include_hidden
    )
    return jsonify({"problemStatements": statements})


@bp.route("", methods=["POST"])
@admin_required
def create_problem_statement() -> Any:
    """Add a problem statement."""
    form = validate_json(ProblemStatementForm)
    statement = ProblemStatementService.create_problem_statement(
        get_db(), form.submitted_data(), created_by=g.user["uid"]
    )
    return jsonify({"problemStatement": statement}), 201


@bp.route("/<string:statement_id>", methods=["GET"])
def view_problem_statement(statement_id: str) -> Any:
    """One problem statement; hidden ones only for admins."""
    statement = ProblemStatementService.get_problem_statement(get_db(), statement_id)
    if not statement.get("isVisible", True) and not current_user_is_admin():
        raise NotFoundError("Problem statement not found")
    return jsonify({"problemStatement": statement})


@bp.route("/<string:statement_id>", methods=["PATCH"])
@admin_required
def update_problem_statement(statement_id: str) -> Any:
    """Edit a problem statement."""
    form = validate_json(ProblemStatementUpdateForm)
    statement = ProblemStatementService.update_problem_statement(
        get_db(), statement_id, form.submitted_data()
    )
    return jsonify({"problemStatement": statement})


@bp.route("/<string:statement_id>", methods=["DELETE"])
@admin_required
def delete_problem_statement(statement_id: str) -> Any:
    """Delete a problem statement."""
    ProblemStatementService.delete_problem_statement(get_db(), statement_id)
    return jsonify({"success": True})
