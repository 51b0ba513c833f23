"""Blueprint for hackathon submissions."""

from flask import Blueprint

bp = Blueprint(
    "submissions",
    __name__,
    url_prefix="/api/hackathon/submissions",
)

from . import routes  # noqa: E402, F401
from .services import SubmissionService  # noqa: E402

__all__ = ["SubmissionService", "routes"]
