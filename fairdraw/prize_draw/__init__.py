"""Utilities for the prize draw subsystem."""

from .engine import (
    DrawEvaluation,
    WeightedEntrant,
    draw,
    evaluate_draw,
    evaluate_weighted,
    rank_rows,
    replay,
    select_winners,
    weigh_entries,
)
from .report import (
    AuditReport,
    EntrantRecord,
    WinnerRecord,
    render_report_json,
    report_filename,
)
from .scoring import ScoredRow, hex_to_unit_float, hmac_sha256_hex, score_row
from .weights import RoleBonus, best_bonus, weight_for

__all__ = [
    "AuditReport",
    "DrawEvaluation",
    "EntrantRecord",
    "RoleBonus",
    "ScoredRow",
    "WeightedEntrant",
    "WinnerRecord",
    "best_bonus",
    "draw",
    "evaluate_draw",
    "evaluate_weighted",
    "hex_to_unit_float",
    "hmac_sha256_hex",
    "rank_rows",
    "render_report_json",
    "replay",
    "report_filename",
    "score_row",
    "select_winners",
    "weigh_entries",
    "weight_for",
]
