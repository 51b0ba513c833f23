"""Service layer for hackathon team formation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from mindmesh.core.codes import invite_code_record, normalize_code, reserve_invite_code
from mindmesh.core.constants import (
    FIRESTORE_BATCH_LIMIT,
    ID_SEPARATOR,
    INVITE_CODES_COLLECTION,
    MEMBERS_COLLECTION,
    TEAM_ADMIN_ONLY_STATUSES,
    TEAM_CODE_LENGTH,
    TEAM_DEFAULT_MAX_SIZE,
    TEAM_EDITABLE_FIELDS,
    TEAM_MAX_SIZE_LIMIT,
    TEAM_STATUSES,
    TEAM_TERMINAL_STATUSES,
    TEAM_TRANSITIONS,
    TEAMS_COLLECTION,
)
from mindmesh.core.store import (
    get_document,
    list_documents,
    query_in_transaction,
    run_transaction,
    snapshot_to_dict,
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

    from .models import HackathonTeam, TeamMember

logger = logging.getLogger(__name__)

LEADER_STATUSES = ("forming", "locked")


class TeamService:
    """Service class for hackathon team operations."""

    @staticmethod
    def member_doc_id(team_id: str, user_id: str) -> str:
        """A user has at most one membership row per team.

        Team ids are generated and never contain the separator, so the key
        splits back into one pair even when the user id contains it.
        """
        if ID_SEPARATOR in team_id or "/" in team_id or "/" in user_id:
            raise ValidationError("Invalid team or user id.")
        return f"{team_id}{ID_SEPARATOR}{user_id}"

    @staticmethod
    def _accepted_memberships(
        db: Client, transaction: Transaction, event_id: str, user_id: str
    ) -> list[dict[str, Any]]:
        return query_in_transaction(
            db,
            transaction,
            MEMBERS_COLLECTION,
            [
                ("eventId", "==", event_id),
                ("userId", "==", user_id),
                ("status", "==", "accepted"),
            ],
        )

    @staticmethod
    def _member_row(
        team_id: str, event_id: str, actor: Actor, role: str, now: Any
    ) -> dict[str, Any]:
        return {
            "teamId": team_id,
            "eventId": event_id,
            "userId": actor.uid,
            "name": actor.name,
            "email": actor.email,
            "role": role,
            "status": "accepted",
            "joinedAt": now,
        }

    @staticmethod
    def _check_manager(team: dict[str, Any], actor: Actor) -> None:
        if not (actor.is_admin or team.get("leaderId") == actor.uid):
            raise ForbiddenError("Only the team leader or an admin can do this.")

    @staticmethod
    def _create_transaction(
        transaction: Transaction,
        db: Client,
        team_data: dict[str, Any],
        leader: Actor,
    ) -> dict[str, Any]:
        event_id = team_data["eventId"]
        if TeamService._accepted_memberships(db, transaction, event_id, leader.uid):
            raise DuplicateResourceError(
                "You are already part of a team for this event"
            )

        problem = None
        if team_data.get("problemStatementId"):
            problem = ProblemStatementService.read_for_enrolment(
                db, transaction, team_data["problemStatementId"], event_id
            )

        code, code_ref = reserve_invite_code(db, transaction, TEAM_CODE_LENGTH)
        now = team_data["createdAt"]
        team_ref = db.collection(TEAMS_COLLECTION).document()
        team = {**team_data, "inviteCode": code}
        member_ref = db.collection(MEMBERS_COLLECTION).document(
            TeamService.member_doc_id(team_ref.id, leader.uid)
        )

        transaction.set(team_ref, team)
        transaction.set(
            member_ref,
            TeamService._member_row(team_ref.id, event_id, leader, "leader", now),
        )
        transaction.set(
            code_ref, invite_code_record("team", team_ref.id, event_id, now)
        )
        if problem is not None:
            ProblemStatementService.adjust_enrolment(transaction, *problem, 1)
        return {**team, "id": team_ref.id}

    @staticmethod
    def create_team(
        db: Client,
        event_id: str,
        team_name: str,
        leader: Actor,
        max_size: Optional[int] = None,
        description: Optional[str] = None,
        problem_statement_id: Optional[str] = None,
        max_size_limit: int = TEAM_MAX_SIZE_LIMIT,
    ) -> HackathonTeam:
        """Create a team led by ``leader``.

        The team, the leader's member row and the invite-code reservation are
        written in one transaction, so a team never exists without its leader.
        """
        if not event_id or not (team_name or "").strip():
            raise ValidationError("eventId and teamName are required.")
        size = int(max_size or TEAM_DEFAULT_MAX_SIZE)
        if not 1 <= size <= max_size_limit:
            raise ValidationError(f"maxSize must be between 1 and {max_size_limit}.")

        now = utcnow()
        team_data = {
            "eventId": event_id,
            "teamName": team_name.strip(),
            "description": description or None,
            "leaderId": leader.uid,
            "leaderName": leader.name,
            "leaderEmail": leader.email,
            "problemStatementId": problem_statement_id or None,
            "memberCount": 1,
            "maxSize": size,
            "status": "forming",
            "submissionId": None,
            "createdAt": now,
            "updatedAt": now,
        }
        team = run_transaction(
            db, TeamService._create_transaction, db, team_data, leader
        )
        logger.info(
            f"Team {team['id']} created for event {event_id} by {leader.uid} "
            f"with code {team['inviteCode']}."
        )
        return team

    @staticmethod
    def _join_transaction(
        transaction: Transaction, db: Client, code: str, user: Actor
    ) -> dict[str, Any]:
        entry = snapshot_to_dict(
            db.collection(INVITE_CODES_COLLECTION)
            .document(code)
            .get(transaction=transaction)
        )
        if entry is None or entry.get("kind") != "team":
            raise NotFoundError("Invalid invite code")

        team_ref = db.collection(TEAMS_COLLECTION).document(entry["targetId"])
        team = snapshot_to_dict(team_ref.get(transaction=transaction))
        if team is None:
            raise NotFoundError("Invalid invite code")

        memberships = TeamService._accepted_memberships(
            db, transaction, team["eventId"], user.uid
        )

        if team.get("status") != "forming":
            raise InvalidStateError(
                "This team is locked and no longer accepting members", 403
            )
        member_count = int(team.get("memberCount") or 0)
        max_size = int(team.get("maxSize") or TEAM_DEFAULT_MAX_SIZE)
        if member_count >= max_size:
            raise InvalidStateError(f"Team is full ({max_size} members max)", 403)
        if any(m.get("teamId") == team["id"] for m in memberships):
            raise DuplicateResourceError("You are already a member of this team")
        if memberships:
            raise DuplicateResourceError(
                "You are already part of another team for this event"
            )

        now = utcnow()
        member_ref = db.collection(MEMBERS_COLLECTION).document(
            TeamService.member_doc_id(team["id"], user.uid)
        )
        transaction.set(
            member_ref,
            TeamService._member_row(team["id"], team["eventId"], user, "member", now),
        )
        transaction.update(
            team_ref, {"memberCount": member_count + 1, "updatedAt": now}
        )
        return {**team, "memberCount": member_count + 1, "updatedAt": now}

    @staticmethod
    def join_team(db: Client, invite_code: str, user: Actor) -> dict[str, Any]:
        """Add ``user`` to the team owning ``invite_code``.

        Capacity and the one-team-per-event rule are checked inside the same
        transaction that bumps ``memberCount``, so two joiners racing for the
        last slot cannot both succeed.
        """
        code = normalize_code(invite_code)
        if not code:
            raise ValidationError("inviteCode is required.")
        team = run_transaction(db, TeamService._join_transaction, db, code, user)
        logger.info(f"User {user.uid} joined team {team['id']}.")
        return team

    @staticmethod
    def _remove_transaction(
        transaction: Transaction,
        db: Client,
        team_id: str,
        user_id: str,
        actor: Actor,
    ) -> dict[str, Any]:
        team_ref = db.collection(TEAMS_COLLECTION).document(team_id)
        team = snapshot_to_dict(team_ref.get(transaction=transaction))
        if team is None:
            raise NotFoundError("Team not found")
        rows = query_in_transaction(
            db,
            transaction,
            MEMBERS_COLLECTION,
            [
                ("teamId", "==", team_id),
                ("userId", "==", user_id),
                ("status", "==", "accepted"),
            ],
        )

        if not (
            actor.is_admin or actor.uid == user_id or actor.uid == team.get("leaderId")
        ):
            raise ForbiddenError("You cannot remove this member.")
        if not rows:
            raise NotFoundError("Member not found")
        if user_id == team.get("leaderId") or rows[0].get("role") == "leader":
            raise InvalidStateError("The team leader cannot be removed")
        if not actor.is_admin and team.get("status") not in LEADER_STATUSES:
            raise InvalidStateError(
                "Members cannot leave a team that has already submitted"
            )

        now = utcnow()
        for row in rows:
            transaction.update(
                db.collection(MEMBERS_COLLECTION).document(row["id"]),
                {"status": "removed", "removedAt": now},
            )
        member_count = max(int(team.get("memberCount") or 0) - len(rows), 0)
        transaction.update(team_ref, {"memberCount": member_count, "updatedAt": now})
        return {**team, "memberCount": member_count, "updatedAt": now}

    @staticmethod
    def remove_member(
        db: Client, team_id: str, user_id: str, actor: Actor
    ) -> dict[str, Any]:
        """Mark a membership as removed and release its slot."""
        team = run_transaction(
            db, TeamService._remove_transaction, db, team_id, user_id, actor
        )
        logger.info(f"User {user_id} removed from team {team_id} by {actor.uid}.")
        return team

    @staticmethod
    def get_team(db: Client, team_id: str) -> HackathonTeam:
        """Fetch a team or raise NotFoundError."""
        team = get_document(db, TEAMS_COLLECTION, team_id)
        if team is None:
            raise NotFoundError("Team not found")
        return team

    @staticmethod
    def _update_transaction(
        transaction: Transaction,
        db: Client,
        team_id: str,
        safe: dict[str, Any],
        actor: Actor,
    ) -> HackathonTeam:
        team_ref = db.collection(TEAMS_COLLECTION).document(team_id)
        team = snapshot_to_dict(team_ref.get(transaction=transaction))
        if team is None:
            raise NotFoundError("Team not found")
        TeamService._check_manager(team, actor)
        if team.get("status") in TEAM_TERMINAL_STATUSES:
            raise InvalidStateError(f"A {team['status']} team can no longer be edited")

        chosen = released = None
        current = team.get("problemStatementId")
        wanted = safe.get("problemStatementId", current)
        if wanted != current:
            if wanted:
                chosen = ProblemStatementService.read_for_enrolment(
                    db, transaction, wanted, team["eventId"]
                )
            if current:
                ref, statement = ProblemStatementService.read_in_transaction(
                    db, transaction, current
                )
                if statement is not None:
                    released = (ref, statement)

        transaction.update(team_ref, safe)
        if chosen is not None:
            ProblemStatementService.adjust_enrolment(transaction, *chosen, 1)
        if released is not None:
            ProblemStatementService.adjust_enrolment(transaction, *released, -1)
        return {**team, **safe}

    @staticmethod
    def update_team(
        db: Client, team_id: str, updates: dict[str, Any], actor: Actor
    ) -> HackathonTeam:
        """Edit the team's descriptive fields.

        Switching problem statement moves the team's enrolment from the old
        statement to the new one in the same transaction.
        """
        safe = {k: v for k, v in updates.items() if k in TEAM_EDITABLE_FIELDS}
        if not safe:
            raise ValidationError("No editable fields supplied.")
        if "teamName" in safe:
            safe["teamName"] = (safe["teamName"] or "").strip()
            if not safe["teamName"]:
                raise ValidationError("teamName cannot be empty.")
        if "problemStatementId" in safe:
            safe["problemStatementId"] = safe["problemStatementId"] or None

        safe["updatedAt"] = utcnow()
        team = run_transaction(
            db, TeamService._update_transaction, db, team_id, safe, actor
        )
        logger.info(f"Team {team_id} updated by {actor.uid}.")
        return team

    @staticmethod
    def _status_transaction(
        transaction: Transaction,
        db: Client,
        team_id: str,
        status: str,
        actor: Actor,
    ) -> dict[str, Any]:
        team_ref = db.collection(TEAMS_COLLECTION).document(team_id)
        team = snapshot_to_dict(team_ref.get(transaction=transaction))
        if team is None:
            raise NotFoundError("Team not found")

        TeamService._check_manager(team, actor)
        if not actor.is_admin and (
            status in TEAM_ADMIN_ONLY_STATUSES or status not in LEADER_STATUSES
        ):
            raise ForbiddenError(f"Only an admin can mark a team as {status}.")

        current = team.get("status") or "forming"
        if status not in TEAM_TRANSITIONS.get(current, ()):
            raise InvalidStateError(f"Cannot move team from {current} to {status}")

        now = utcnow()
        transaction.update(team_ref, {"status": status, "updatedAt": now})
        return {**team, "status": status, "updatedAt": now}

    @staticmethod
    def set_status(db: Client, team_id: str, status: str, actor: Actor) -> dict[str, Any]:
        """Move a team through its lifecycle.

        Leaders may lock and unlock their team; every other transition is
        reserved for admins.
        """
        if status not in TEAM_STATUSES:
            raise ValidationError(f"status must be one of {', '.join(TEAM_STATUSES)}.")
        team = run_transaction(
            db, TeamService._status_transaction, db, team_id, status, actor
        )
        logger.info(f"Team {team_id} moved to {status} by {actor.uid}.")
        return team

    @staticmethod
    def _delete_transaction(
        transaction: Transaction, db: Client, team: HackathonTeam
    ) -> None:
        released = None
        if team.get("problemStatementId"):
            ref, statement = ProblemStatementService.read_in_transaction(
                db, transaction, team["problemStatementId"]
            )
            if statement is not None:
                released = (ref, statement)

        if team.get("inviteCode"):
            transaction.delete(
                db.collection(INVITE_CODES_COLLECTION).document(team["inviteCode"])
            )
        transaction.delete(db.collection(TEAMS_COLLECTION).document(team["id"]))
        if released is not None:
            ProblemStatementService.adjust_enrolment(transaction, *released, -1)

    @staticmethod
    def delete_team(db: Client, team_id: str, actor: Actor) -> int:
        """Delete a team with its member rows and invite code.

        Member rows go first, in batches, so an interrupted delete never
        leaves rows pointing at a missing team. The team, its invite code
        and its problem statement enrolment go together at the end. Returns
        the number of member rows removed.
        """
        team = TeamService.get_team(db, team_id)
        TeamService._check_manager(team, actor)
        if not actor.is_admin and team.get("status") != "forming":
            raise InvalidStateError("Only a forming team can be deleted by its leader")

        member_refs = [
            db.collection(MEMBERS_COLLECTION).document(m["id"])
            for m in list_documents(db, MEMBERS_COLLECTION, [("teamId", "==", team_id)])
        ]
        for i in range(0, len(member_refs), FIRESTORE_BATCH_LIMIT):
            batch = db.batch()
            for ref in member_refs[i : i + FIRESTORE_BATCH_LIMIT]:
                batch.delete(ref)
            batch.commit()

        run_transaction(db, TeamService._delete_transaction, db, team)

        logger.info(
            f"Team {team_id} deleted by {actor.uid} with {len(member_refs)} member rows."
        )
        return len(member_refs)

    @staticmethod
    def list_members(
        db: Client, team_id: str, include_inactive: bool = False
    ) -> list[TeamMember]:
        """Members of a team, leader first, then by join time."""
        filters = [("teamId", "==", team_id)]
        if not include_inactive:
            filters.append(("status", "==", "accepted"))
        members = list_documents(db, MEMBERS_COLLECTION, filters)
        return sorted(
            members,
            key=lambda m: (m.get("role") != "leader", sort_timestamp(m.get("joinedAt"))),
        )

    @staticmethod
    def get_team_by_invite_code(db: Client, invite_code: str) -> dict[str, Any]:
        """Return ``{"team", "members"}`` for an invite code."""
        code = normalize_code(invite_code)
        entry = get_document(db, INVITE_CODES_COLLECTION, code) if code else None
        team = None
        if entry is not None and entry.get("kind") == "team":
            team = get_document(db, TEAMS_COLLECTION, entry["targetId"])
        if team is None:
            # Teams created before the code registry existed
            matches = list_documents(db, TEAMS_COLLECTION, [("inviteCode", "==", code)])
            team = matches[0] if matches else None
        if team is None:
            raise NotFoundError("Invalid invite code")
        return {"team": team, "members": TeamService.list_members(db, team["id"])}

    @staticmethod
    def get_user_team(
        db: Client, event_id: str, user_id: str
    ) -> Optional[HackathonTeam]:
        """The team a user leads or belongs to for an event, if any."""
        led = list_documents(
            db,
            TEAMS_COLLECTION,
            [("eventId", "==", event_id), ("leaderId", "==", user_id)],
        )
        if led:
            return led[0]
        memberships = list_documents(
            db,
            MEMBERS_COLLECTION,
            [
                ("eventId", "==", event_id),
                ("userId", "==", user_id),
                ("status", "==", "accepted"),
            ],
        )
        if not memberships:
            return None
        return get_document(db, TEAMS_COLLECTION, memberships[0]["teamId"])

    @staticmethod
    def list_teams(db: Client, event_id: str) -> list[HackathonTeam]:
        """Teams registered for an event, oldest first."""
        teams = list_documents(db, TEAMS_COLLECTION, [("eventId", "==", event_id)])
        return sorted(teams, key=lambda t: sort_timestamp(t.get("createdAt")))

    @staticmethod
    def _recount_transaction(
        transaction: Transaction, db: Client, team_id: str
    ) -> int:
        team_ref = db.collection(TEAMS_COLLECTION).document(team_id)
        if not team_ref.get(transaction=transaction).exists:
            raise NotFoundError("Team not found")
        rows = query_in_transaction(
            db,
            transaction,
            MEMBERS_COLLECTION,
            [("teamId", "==", team_id), ("status", "==", "accepted")],
        )
        transaction.update(team_ref, {"memberCount": len(rows)})
        return len(rows)

    @staticmethod
    def recount_members(db: Client, team_id: str) -> int:
        """Rewrite ``memberCount`` from the accepted member rows."""
        count = run_transaction(db, TeamService._recount_transaction, db, team_id)
        logger.info(f"Team {team_id} memberCount reconciled to {count}.")
        return count
