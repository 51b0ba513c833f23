"""Routes for the teams blueprint."""

from __future__ import annotations

from typing import Any

from flask import current_app, jsonify, request

from mindmesh.auth.decorators import admin_required, current_actor, login_required
from mindmesh.core.forms import validate_json
from mindmesh.core.store import get_db
from mindmesh.errors import ValidationError

from . import bp
from .forms import CreateTeamForm, JoinTeamForm, TeamStatusForm, UpdateTeamForm
from .services import TeamService


@bp.route("", methods=["GET"])
def list_teams() -> Any:
    """Look teams up by invite code, by member, or list an event's teams."""
    db = get_db()
    event_id = request.args.get("eventId")
    invite_code = request.args.get("inviteCode")
    user_id = request.args.get("userId")

    if invite_code:
        return jsonify(TeamService.get_team_by_invite_code(db, invite_code))
    if user_id and event_id:
        return jsonify({"team": TeamService.get_user_team(db, event_id, user_id)})
    if event_id:
        return jsonify({"teams": TeamService.list_teams(db, event_id)})
    raise ValidationError("eventId or inviteCode required")


@bp.route("", methods=["POST"])
@login_required
def create_team() -> Any:
    """Create a team led by the signed-in user."""
    form = validate_json(CreateTeamForm)
    team = TeamService.create_team(
        get_db(),
        event_id=form.eventId.data,
        team_name=form.teamName.data,
        leader=current_actor(),
        max_size=form.maxSize.data or current_app.config["TEAM_DEFAULT_MAX_SIZE"],
        description=form.description.data,
        problem_statement_id=form.problemStatementId.data,
        max_size_limit=current_app.config["TEAM_MAX_SIZE_LIMIT"],
    )
    return jsonify({"team": team}), 201


@bp.route("/join", methods=["POST"])
@login_required
def join_team() -> Any:
    """Join a team with its invite code."""
    form = validate_json(JoinTeamForm)
    team = TeamService.join_team(get_db(), form.inviteCode.data, current_actor())
    return jsonify({"success": True, "team": team})


@bp.route("/<string:team_id>", methods=["GET"])
def view_team(team_id: str) -> Any:
    """Return a team with its members."""
    db = get_db()
    team = TeamService.get_team(db, team_id)
    return jsonify({"team": team, "members": TeamService.list_members(db, team_id)})


@bp.route("/<string:team_id>", methods=["PATCH"])
@login_required
def update_team(team_id: str) -> Any:
    """Edit a team's details."""
    form = validate_json(UpdateTeamForm)
    team = TeamService.update_team(
        get_db(), team_id, form.submitted_data(), current_actor()
    )
    return jsonify({"team": team})


@bp.route("/<string:team_id>", methods=["DELETE"])
@login_required
def delete_team(team_id: str) -> Any:
    """Delete a team and its memberships."""
    removed = TeamService.delete_team(get_db(), team_id, current_actor())
    return jsonify({"success": True, "membersRemoved": removed})


@bp.route("/<string:team_id>/status", methods=["POST"])
@login_required
def change_status(team_id: str) -> Any:
    """Move a team to another status."""
    form = validate_json(TeamStatusForm)
    team = TeamService.set_status(get_db(), team_id, form.status.data, current_actor())
    return jsonify({"team": team})


@bp.route("/<string:team_id>/members/<string:user_id>", methods=["DELETE"])
@login_required
def remove_member(team_id: str, user_id: str) -> Any:
    """Remove a member, or leave the team when removing yourself."""
    team = TeamService.remove_member(get_db(), team_id, user_id, current_actor())
    return jsonify({"success": True, "team": team})


@bp.route("/<string:team_id>/recount", methods=["POST"])
@admin_required
def recount_members(team_id: str) -> Any:
    """Rebuild ``memberCount`` from the member rows."""
    count = TeamService.recount_members(get_db(), team_id)
    return jsonify({"teamId": team_id, "memberCount": count})
