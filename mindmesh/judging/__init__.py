"""Blueprint for hackathon judging."""

from flask import Blueprint

bp = Blueprint(
    "judging",
    __name__,
    url_prefix="/api/hackathon/judging",
)

from . import routes  # noqa: E402, F401
from .scoring import ScoringService  # noqa: E402
from .services import JudgingService  # noqa: E402

__all__ = ["JudgingService", "ScoringService", "routes"]
