"""Blueprint for hackathon teams."""

from flask import Blueprint

bp = Blueprint(
    "teams",
    __name__,
    url_prefix="/api/hackathon/teams",
)

from . import routes  # noqa: E402, F401
from .services import TeamService  # noqa: E402

__all__ = ["TeamService", "routes"]
