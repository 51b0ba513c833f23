"""Tests for invite code generation and reservation."""

from __future__ import annotations

import unittest
from unittest.mock import patch

from mindmesh.core.codes import (
    generate_code,
    invite_code_record,
    normalize_code,
    reserve_invite_code,
)
from mindmesh.core.constants import CODE_ALPHABET
from mindmesh.errors import DuplicateResourceError
from tests.helpers import FirestoreTestCase
from tests.mock_utils import MockTransaction


class GenerateCodeTestCase(unittest.TestCase):
    def test_default_length_and_alphabet(self) -> None:
        code = generate_code()
        self.assertEqual(len(code), 6)
        self.assertTrue(set(code) <= set(CODE_ALPHABET))

    def test_no_ambiguous_characters(self) -> None:
        codes = "".join(generate_code(10) for _ in range(200))
        for ch in "01OI":
            self.assertNotIn(ch, codes)

    def test_length_bounds(self) -> None:
        self.assertEqual(len(generate_code(10)), 10)
        with self.assertRaises(ValueError):
            generate_code(5)
        with self.assertRaises(ValueError):
            generate_code(11)

    def test_normalize(self) -> None:
        self.assertEqual(normalize_code("  ab3x9k "), "AB3X9K")
        self.assertEqual(normalize_code(None), "")


class ReserveInviteCodeTestCase(FirestoreTestCase):
    def test_returns_unused_code(self) -> None:
        code, ref = reserve_invite_code(self.db, MockTransaction(self.db), 8)
        self.assertEqual(len(code), 8)
        self.assertEqual(ref.id, code)

    def test_retries_on_collision(self) -> None:
        self.put("invite_codes", "AAAAAA", {"kind": "team", "targetId": "t1"})
        codes = iter(["AAAAAA", "BBBBBB"])
        with patch(
            "mindmesh.core.codes.generate_code", side_effect=lambda length: next(codes)
        ):
            code, _ = reserve_invite_code(self.db, MockTransaction(self.db), 6)
        self.assertEqual(code, "BBBBBB")

    def test_gives_up_after_repeated_collisions(self) -> None:
        self.put("invite_codes", "AAAAAA", {"kind": "team", "targetId": "t1"})
        with patch(
            "mindmesh.core.codes.generate_code", return_value="AAAAAA"
        ):
            with self.assertRaises(DuplicateResourceError):
                reserve_invite_code(self.db, MockTransaction(self.db), 6)

    def test_record_shape(self) -> None:
        record = invite_code_record("judge", "j1", "e1", "now")
        self.assertEqual(
            record, {"kind": "judge", "targetId": "j1", "eventId": "e1", "createdAt": "now"}
        )
