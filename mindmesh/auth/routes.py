"""Session endpoints backed by Firebase Authentication."""

from firebase_admin import auth
from flask import current_app, g, jsonify, request, session
from flask_wtf.csrf import generate_csrf

from mindmesh.core.constants import USERS_COLLECTION
from mindmesh.core.store import get_db, get_document
from mindmesh.errors import NotFoundError, UnauthorizedError, ValidationError
from mindmesh.extensions import csrf

from . import bp
from .decorators import current_user_is_admin, is_admin_user, login_required


@bp.route("/session", methods=["POST"])
@csrf.exempt
def session_login():
    """
    Called by the client after a successful Firebase sign-in.
    It receives the ID token, verifies it, and creates a server-side session.
    """
    payload = request.get_json(silent=True) or {}
    id_token = payload.get("idToken")
    if not id_token:
        raise ValidationError("idToken required")

    try:
        decoded_token = auth.verify_id_token(id_token)
    except (ValueError, auth.InvalidIdTokenError, auth.ExpiredIdTokenError) as e:
        current_app.logger.warning(f"Rejected ID token during session login: {e}")
        raise UnauthorizedError("Invalid or expired token.") from e

    uid = decoded_token["uid"]
    user_info = get_document(get_db(), USERS_COLLECTION, uid)
    if user_info is None:
        raise NotFoundError("User not found.")

    session.clear()
    session["user_id"] = uid
    session["is_admin"] = is_admin_user(
        user_info, current_app.config.get("ADMIN_EMAILS", [])
    )
    current_app.logger.info(f"User {uid} signed in.")
    return jsonify({"status": "success", "isAdmin": session["is_admin"]})


@bp.route("/session", methods=["GET"])
@login_required
def current_session():
    """Return the signed-in user and a CSRF token for subsequent writes."""
    user = dict(g.user)
    return jsonify(
        {
            "user": {
                "uid": user.get("uid"),
                "name": user.get("name"),
                "email": user.get("email"),
            },
            "isAdmin": current_user_is_admin(),
            "csrfToken": generate_csrf(),
        }
    )


@bp.route("/session", methods=["DELETE"])
def logout():
    """Clear the server-side session."""
    session.clear()
    return jsonify({"status": "success"})
