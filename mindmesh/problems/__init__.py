"""Blueprint for hackathon problem statements."""

from flask import Blueprint

bp = Blueprint("problems", __name__, url_prefix="/api/hackathon/problems")

from . import routes  # noqa: E402, F401
from .models import ProblemStatement  # noqa: E402
from .services import ProblemStatementService  # noqa: E402

__all__ = ["ProblemStatement", "ProblemStatementService", "routes"]
