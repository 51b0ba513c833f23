"""Decorators for protecting API routes."""

from functools import wraps

from flask import current_app, g, session

from mindmesh.core.types import Actor
from mindmesh.errors import ForbiddenError, UnauthorizedError


def is_admin_user(user_data, admin_emails=()):
    """Return True if the user document marks an administrator.

    A user is an admin when the ``isAdmin`` flag is set or their e-mail is in
    the configured ``ADMIN_EMAILS`` list.
    """
    if not user_data:
        return False
    if user_data.get("isAdmin"):
        return True
    email = (user_data.get("email") or "").strip().lower()
    return bool(email) and email in {e.strip().lower() for e in admin_emails}


def current_user_is_admin():
    """Check the session flag first, then the loaded user document."""
    if session.get("is_admin"):
        return True
    return is_admin_user(g.get("user"), current_app.config.get("ADMIN_EMAILS", []))


def login_required(f=None, admin_required=False):
    """Reject the request with 401 unless a user is signed in.

    Usage:
    @login_required
    def protected_view():
        ...

    @login_required(admin_required=True)
    def admin_view():
        ...
    """

    def decorator(func):
        @wraps(func)
        def decorated_function(*args, **kwargs):
            if "user_id" not in session or g.get("user") is None:
                raise UnauthorizedError("Authentication required")
            if admin_required and not current_user_is_admin():
                raise ForbiddenError("Admin access required")
            return func(*args, **kwargs)

        return decorated_function

    if f:
        return decorator(f)
    return decorator


def admin_required(f):
    """Shorthand for ``login_required(admin_required=True)``."""
    return login_required(f, admin_required=True)


def current_actor():
    """The signed-in user as an ``Actor`` for the service layer."""
    return Actor.from_user(g.user, is_admin=current_user_is_admin())
