from __future__ import annotations

import unittest
from dataclasses import dataclass, field

from fairdraw.errors import EmptyEntrantsWarning
from fairdraw.prize_draw import (
    AuditReport,
    RoleBonus,
    draw,
    evaluate_draw,
    rank_rows,
    replay,
    score_row,
    select_winners,
)


@dataclass
class Entry:
    participant_id: str
    display_name: str = ""
    roles: list = field(default_factory=list)


class DrawEngineTests(unittest.TestCase):
    def test_single_entry_always_wins(self) -> None:
        report = draw([Entry("u1", "Alice")], [], 1, "C", "S", 1)

        expected_row = score_row("S", "C", "u1", 0, "Alice")
        self.assertEqual(report.total_entrants, 1)
        self.assertEqual(report.total_entry_rows, 1)
        self.assertEqual(report.winner_ids, ["u1"])
        self.assertEqual(report.winners[0].digest, expected_row.digest)
        self.assertEqual(report.winners[0].score, expected_row.score)
        self.assertEqual(report.winners[0].row_index, 0)
        self.assertEqual(report.entrants[0].scores, (expected_row.score,))

    def test_two_entries_rank_by_descending_score(self) -> None:
        report = draw([Entry("u1"), Entry("u2")], [], 1, "C", "S", 2)

        scores = {pid: score_row("S", "C", pid, 0).score for pid in ("u1", "u2")}
        expected = sorted(scores, key=lambda pid: scores[pid], reverse=True)
        self.assertEqual(report.winner_ids, expected)
        self.assertGreaterEqual(report.winners[0].score, report.winners[1].score)

    def test_weighted_rows_and_unique_winners(self) -> None:
        entries = [
            Entry("whale", roles=["booster"]),
            Entry("u2"),
            Entry("u3"),
        ]
        evaluation = evaluate_draw(entries, [RoleBonus("booster", 9)], 1, "abc123", "S", 3)
        report = evaluation.report

        self.assertEqual(report.total_entry_rows, 12)
        self.assertEqual([e.entry_count for e in report.entrants], [10, 1, 1])
        self.assertEqual(sorted(report.winner_ids), ["u2", "u3", "whale"])
        self.assertEqual(len(evaluation.ranked_rows), 12)
        ranked_scores = [row.score for row in evaluation.ranked_rows]
        self.assertEqual(ranked_scores, sorted(ranked_scores, reverse=True))

    def test_winner_count_larger_than_participants(self) -> None:
        report = draw([Entry("u1"), Entry("u2")], [], 5, "C", "S", 10)
        self.assertEqual(len(report.winners), 2)
        self.assertEqual(len(set(report.winner_ids)), 2)

    def test_draw_is_deterministic(self) -> None:
        entries = [Entry(f"user-{i}", roles=["vip"] if i % 3 == 0 else []) for i in range(25)]
        rules = [RoleBonus("vip", 2)]
        first = draw(entries, rules, 1, "00ffbeef", "server", 4)
        second = draw(entries, rules, 1, "00ffbeef", "server", 4)
        self.assertEqual(first, second)
        self.assertEqual(first.to_dict(), second.to_dict())

        other_seed = draw(entries, rules, 1, "00ffbeee", "server", 4)
        self.assertNotEqual(first.to_dict(), other_seed.to_dict())

    def test_empty_draw_warns_and_has_no_winners(self) -> None:
        with self.assertWarns(EmptyEntrantsWarning):
            report = draw([], [], 1, "C", "S", 3)
        self.assertEqual(report.winners, ())
        self.assertEqual(report.total_entrants, 0)
        self.assertEqual(report.total_entry_rows, 0)

    def test_invalid_inputs_raise(self) -> None:
        with self.assertRaises(ValueError):
            draw([Entry("u1")], [], 1, "C", "S", 0)
        with self.assertRaises(ValueError):
            draw([Entry("u1")], [], 1, "", "S", 1)
        with self.assertRaises(ValueError):
            draw([Entry("u1")], [], 1, "C", "", 1)


class SelectionTests(unittest.TestCase):
    def test_each_participant_wins_at_most_once(self) -> None:
        rows = [score_row("S", "C", "a", i) for i in range(5)] + [score_row("S", "C", "b", 0)]
        winners = select_winners(rank_rows(rows), 2)
        self.assertEqual(sorted(w.participant_id for w in winners), ["a", "b"])

    def test_equal_scores_keep_expansion_order(self) -> None:
        first = score_row("S", "C", "a", 0)
        tied = first.__class__(
            participant_id="b", display_name="", index=0, digest=first.digest, score=first.score
        )
        ranked = rank_rows([first, tied])
        self.assertEqual([row.participant_id for row in ranked], ["a", "b"])


class ReplayTests(unittest.TestCase):
    def test_replay_reproduces_published_report(self) -> None:
        entries = [Entry("u1", roles=["vip"]), Entry("u2"), Entry("u3")]
        report = draw(entries, [RoleBonus("vip", 4)], 1, "a1b2c3", "S", 2)

        published = AuditReport.from_dict(report.to_dict())
        self.assertEqual(replay(published, "S", 2), report)

    def test_replay_with_wrong_server_seed_differs(self) -> None:
        entries = [Entry(f"u{i}") for i in range(10)]
        report = draw(entries, [], 1, "a1b2c3", "S", 1)
        self.assertNotEqual(replay(report, "not-S", 1).winners, report.winners)


if __name__ == "__main__":
    unittest.main()
