"""Initialize the Flask app and its extensions."""

import datetime
import json
import os

import firebase_admin
from firebase_admin import credentials
from flask import Flask, current_app, g, session
from flask.json.provider import DefaultJSONProvider
from werkzeug.middleware.proxy_fix import ProxyFix

from .extensions import csrf


class FirestoreJSONProvider(DefaultJSONProvider):
    """JSON provider that renders Firestore values the API clients expect."""

    @staticmethod
    def default(o):
        """Serialize datetimes as ISO 8601 and document references by id."""
        if isinstance(o, datetime.datetime):
            return o.isoformat()
        if hasattr(o, "to_datetime"):
            return o.to_datetime().isoformat()
        if hasattr(o, "path") and hasattr(o, "id"):
            return o.id
        return DefaultJSONProvider.default(o)


def _env_flag(name, default="false"):
    return (os.environ.get(name) or default).lower() in ["true", "1", "t"]


def _init_firebase(app):
    """Initialize the Firebase Admin SDK from env, file or default credentials."""
    cred = None
    project_id = None

    # First, try to load from environment variable (for production)
    cred_json = os.environ.get("FIREBASE_CREDENTIALS_JSON")
    if cred_json:
        try:
            cred_info = json.loads(cred_json)
            project_id = cred_info.get("project_id")
            cred = credentials.Certificate(cred_info)
        except (json.JSONDecodeError, ValueError) as e:
            app.logger.error(f"Error parsing FIREBASE_CREDENTIALS_JSON: {e}")

    # If env var fails or is not present, try loading from file (for local dev)
    if not cred:
        cred_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)), "firebase_credentials.json"
        )
        if os.path.exists(cred_path):
            try:
                with open(cred_path, "r") as f:
                    cred_info = json.load(f)
                project_id = cred_info.get("project_id")
                cred = credentials.Certificate(cred_path)
            except (json.JSONDecodeError, ValueError) as e:
                app.logger.error(f"Error loading credentials from file: {e}")

    # If both methods fail, fallback to default credentials
    if not cred:
        try:
            cred = credentials.ApplicationDefault()
            project_id = os.environ.get("FIREBASE_PROJECT_ID")
        except Exception as e:
            app.logger.error(
                f"Could not find any valid credentials (env, file, or default): {e}"
            )

    if cred and not firebase_admin._apps:
        try:
            options = {"projectId": project_id} if project_id else None
            firebase_admin.initialize_app(cred, options)
        except ValueError:
            # This can happen if the app is already initialized, which is fine.
            app.logger.info("Firebase app already initialized.")


def create_app(test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(__name__, instance_relative_config=True)
    app.json = FirestoreJSONProvider(app)

    # Load configuration
    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY") or "dev",
        ADMIN_EMAILS=[
            e.strip()
            for e in (os.environ.get("ADMIN_EMAILS") or "").split(",")
            if e.strip()
        ],
        COUPON_REQUIRE_EVENT_CONTEXT=_env_flag("COUPON_REQUIRE_EVENT_CONTEXT"),
        TEAM_DEFAULT_MAX_SIZE=int(os.environ.get("TEAM_DEFAULT_MAX_SIZE") or 5),
        TEAM_MAX_SIZE_LIMIT=int(os.environ.get("TEAM_MAX_SIZE_LIMIT") or 10),
        TRANSACTION_MAX_ATTEMPTS=int(os.environ.get("TRANSACTION_MAX_ATTEMPTS") or 5),
    )

    if test_config:
        app.config.update(test_config)

    # Initialize Firebase Admin SDK only if not in testing mode
    if not app.config.get("TESTING"):
        _init_firebase(app)

    # Initialize extensions
    csrf.init_app(app)

    # Register blueprints
    from . import auth as auth_bp

    app.register_blueprint(auth_bp.bp)

    from . import coupons as coupons_bp

    app.register_blueprint(coupons_bp.bp)

    from . import teams as teams_bp

    app.register_blueprint(teams_bp.bp)

    from . import judging as judging_bp

    app.register_blueprint(judging_bp.bp)

    from . import submissions as submissions_bp

    app.register_blueprint(submissions_bp.bp)

    from . import problems as problems_bp

    app.register_blueprint(problems_bp.bp)

    from . import error_handlers

    app.register_blueprint(error_handlers.error_handlers_bp)

    @app.route("/health")
    def health_check():
        """Perform a simple health check."""
        return "OK", 200

    @app.before_request
    def load_logged_in_user():
        """If a user_id is in the session, load the user data from Firestore and store it in g."""
        from .core.constants import USERS_COLLECTION
        from .core.store import get_db, get_document

        user_id = session.get("user_id")
        g.user = None
        if user_id is None:
            return

        user = get_document(get_db(), USERS_COLLECTION, user_id)
        if user is None:
            # User ID in session but no user in DB. Clear the session.
            session.clear()
            current_app.logger.warning(
                f"User {user_id} in session but not found in Firestore."
            )
            return
        user["uid"] = user_id
        g.user = user

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app
