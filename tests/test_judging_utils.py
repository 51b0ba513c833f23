"""Tests for score aggregation and ranking."""

from __future__ import annotations

import unittest

from mindmesh.errors import ValidationError
from mindmesh.judging.models import ScoreInput
from mindmesh.judging.utils import (
    average_scores,
    compute_weighted_total,
    rank_submissions,
)

CRITERIA = [
    {"id": "innovation", "weight": 0.6, "maxScore": 10},
    {"id": "design", "weight": 0.4, "maxScore": 10},
]


class WeightedTotalTestCase(unittest.TestCase):
    def test_averages_across_judges(self) -> None:
        scores = [
            {"criteriaId": "innovation", "judgeId": "j1", "score": 8},
            {"criteriaId": "innovation", "judgeId": "j2", "score": 6},
            {"criteriaId": "design", "judgeId": "j1", "score": 9},
        ]
        self.assertEqual(average_scores(scores), {"innovation": 7.0, "design": 9.0})
        self.assertEqual(compute_weighted_total(CRITERIA, scores), 7.8)

    def test_unscored_and_unknown_criteria(self) -> None:
        scores = [
            {"criteriaId": "design", "score": 5},
            {"criteriaId": "deleted", "score": 10},
        ]
        self.assertEqual(compute_weighted_total(CRITERIA, scores), 2.0)
        self.assertEqual(compute_weighted_total(CRITERIA, []), 0.0)

    def test_rounded(self) -> None:
        criteria = [{"id": "c", "weight": 1 / 3}]
        self.assertEqual(compute_weighted_total(criteria, [{"criteriaId": "c", "score": 1}]), 0.3333)


class RankSubmissionsTestCase(unittest.TestCase):
    def test_ranks_by_score(self) -> None:
        ranked = rank_submissions(
            [
                {"id": "a", "totalScore": 5},
                {"id": "b", "totalScore": 9},
                {"id": "c", "totalScore": 7},
            ]
        )
        self.assertEqual([(s["id"], s["rank"]) for s in ranked], [("b", 1), ("c", 2), ("a", 3)])

    def test_ties_go_to_earlier_submission_then_id(self) -> None:
        ranked = rank_submissions(
            [
                {"id": "late", "totalScore": 8, "submittedAt": "2024-06-02T00:00:00Z"},
                {"id": "z-early", "totalScore": 8, "submittedAt": "2024-06-01T00:00:00Z"},
                {"id": "a-early", "totalScore": 8, "submittedAt": "2024-06-01T00:00:00Z"},
                {"id": "undated", "totalScore": 8},
            ]
        )
        self.assertEqual(
            [s["id"] for s in ranked], ["a-early", "z-early", "late", "undated"]
        )
        self.assertEqual([s["rank"] for s in ranked], [1, 2, 3, 4])


class ScoreInputTestCase(unittest.TestCase):
    def test_from_dict(self) -> None:
        item = ScoreInput.from_dict(
            {"judgeId": "j1", "submissionId": "s1", "criteriaId": "c1", "score": "7.5"}
        )
        self.assertEqual(item.score, 7.5)
        self.assertEqual(item.doc_id, "j1_s1_c1")

    def test_zero_score_is_present(self) -> None:
        item = ScoreInput.from_dict(
            {"judgeId": "j1", "submissionId": "s1", "criteriaId": "c1", "score": 0}
        )
        self.assertEqual(item.score, 0.0)

    def test_rejects_malformed(self) -> None:
        bad = [
            "not an object",
            {"judgeId": "j1", "submissionId": "s1", "score": 3},
            {"judgeId": "j1", "submissionId": "s1", "criteriaId": "c1", "score": True},
            {"judgeId": "j1", "submissionId": "s1", "criteriaId": "c1", "score": "high"},
        ]
        for data in bad:
            with self.subTest(data=data):
                with self.assertRaises(ValidationError):
                    ScoreInput.from_dict(data)

    def test_rejects_path_ids(self) -> None:
        with self.assertRaises(ValidationError):
            ScoreInput("j/1", "s1", "c1", 1.0).validate()

    def test_rejects_separator_in_ids(self) -> None:
        # "j_1" + "s1" and "j" + "1_s1" would share one document key
        for ids in (("j_1", "s1", "c1"), ("j", "1_s1", "c1"), ("j1", "s1", "c_1")):
            with self.subTest(ids=ids):
                with self.assertRaises(ValidationError):
                    ScoreInput(*ids, 1.0).validate()
        self.assertEqual(ScoreInput("j1", "s1", "c1", 1.0).doc_id, "j1_s1_c1")
