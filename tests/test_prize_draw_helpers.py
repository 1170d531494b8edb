from __future__ import annotations

import hashlib
import hmac
import unittest

from fairdraw.prize_draw import RoleBonus, best_bonus, hex_to_unit_float, hmac_sha256_hex, score_row, weight_for
from fairdraw.prize_draw.scoring import build_rows_for_participant, row_message


class WeightTests(unittest.TestCase):
    def setUp(self) -> None:
        self.rules = [RoleBonus("vip", 3), RoleBonus("booster", 5), RoleBonus("member", 1)]

    def test_no_matching_role_gets_base(self) -> None:
        self.assertEqual(weight_for(2, ["stranger"], self.rules), 2)
        self.assertEqual(weight_for(2, [], []), 2)

    def test_bonuses_take_the_maximum_not_the_sum(self) -> None:
        self.assertEqual(best_bonus(["vip", "booster", "member"], self.rules), 5)
        self.assertEqual(weight_for(1, ["vip", "booster", "member"], self.rules), 6)

    def test_weight_is_floored_at_one(self) -> None:
        self.assertEqual(weight_for(0, [], self.rules), 1)
        self.assertEqual(weight_for(-4, ["member"], self.rules), 1)
        self.assertEqual(weight_for(1, ["cursed"], [RoleBonus("cursed", -10)]), 1)

    def test_role_ids_compare_as_strings(self) -> None:
        self.assertEqual(weight_for(1, [123], [RoleBonus("123", 2)]), 3)


class ScoringTests(unittest.TestCase):
    def test_hmac_matches_known_vector(self) -> None:
        # RFC 4231 test case 2
        self.assertEqual(
            hmac_sha256_hex("Jefe", "what do ya want for nothing?"),
            "5bdcc146bf60754e6a042426089575c75a003f089d2739839dec58b964ec3843",
        )

    def test_hex_to_unit_float_uses_first_52_bits(self) -> None:
        self.assertEqual(hex_to_unit_float("0" * 64), 0.0)
        self.assertEqual(hex_to_unit_float("8" + "0" * 63), 0.5)
        self.assertEqual(hex_to_unit_float("0000000000000" + "f" * 51), 0.0)
        self.assertEqual(hex_to_unit_float("f" * 64), (2**52 - 1) / 2**52)
        self.assertLess(hex_to_unit_float("f" * 64), 1.0)

    def test_short_digest_is_right_padded(self) -> None:
        self.assertEqual(hex_to_unit_float("1"), 1 / 16)
        self.assertEqual(hex_to_unit_float(""), 0.0)

    def test_row_message_format(self) -> None:
        self.assertEqual(row_message("u1", "C", 0), "u1:C:0")

    def test_score_row_is_keyed_by_server_seed(self) -> None:
        row = score_row("S", "C", "u1", 0, "Alice")
        expected = hmac.new(b"S", b"u1:C:0", hashlib.sha256).hexdigest()
        self.assertEqual(row.digest, expected)
        self.assertEqual(row.score, int(expected[:13], 16) / 2**52)
        self.assertEqual(row.display_name, "Alice")
        self.assertNotEqual(score_row("other", "C", "u1", 0).digest, row.digest)

    def test_rows_are_indexed_from_zero(self) -> None:
        rows = build_rows_for_participant("S", "C", "u1", 3)
        self.assertEqual([row.index for row in rows], [0, 1, 2])
        self.assertEqual(len({row.digest for row in rows}), 3)
        self.assertEqual(rows[2], score_row("S", "C", "u1", 2))


if __name__ == "__main__":
    unittest.main()
