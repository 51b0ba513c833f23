"""Score aggregation and ranking helpers for judging."""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Iterable

from mindmesh.core.constants import TOTAL_SCORE_PRECISION
from mindmesh.utils import sort_timestamp


def average_scores(scores: Iterable[dict[str, Any]]) -> dict[str, float]:
    """Average score per criterion across every judge."""
    by_criterion: dict[str, list[float]] = defaultdict(list)
    for row in scores:
        by_criterion[row["criteriaId"]].append(float(row.get("score") or 0))
    return {cid: sum(values) / len(values) for cid, values in by_criterion.items()}


def compute_weighted_total(
    criteria: Iterable[dict[str, Any]], scores: Iterable[dict[str, Any]]
) -> float:
    """Sum of each criterion's average score times its weight.

    Criteria nobody has scored yet contribute nothing. Scores for criteria
    not in ``criteria`` are ignored.
    """
    averages = average_scores(scores)
    total = 0.0
    for criterion in criteria:
        average = averages.get(criterion["id"])
        if average is not None:
            total += average * float(criterion.get("weight") or 0)
    return round(total, TOTAL_SCORE_PRECISION)


def rank_submissions(submissions: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Order submissions best first and number them from 1.

    Ties on ``totalScore`` go to the earlier ``submittedAt``, then to the
    lower document id, so equal scores always rank the same way.
    """
    ordered = sorted(
        submissions,
        key=lambda s: (
            -float(s.get("totalScore") or 0),
            sort_timestamp(s.get("submittedAt")),
            s.get("id") or "",
        ),
    )
    return [{**submission, "rank": i} for i, submission in enumerate(ordered, start=1)]
