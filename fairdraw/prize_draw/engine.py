"""Weighted lottery: expand entries into scored rows, rank them, pick unique winners."""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol, Sequence

from ..errors import EmptyEntrantsWarning
from .report import AuditReport, EntrantRecord, WinnerRecord
from .scoring import ScoredRow, build_rows_for_participant
from .weights import BonusRule, weight_for

logger = logging.getLogger(__name__)


class DrawEntry(Protocol):
    """Entry as seen by the engine (an ORM ``GiveawayEntry`` satisfies it)."""

    participant_id: str
    display_name: str
    roles: Sequence[str]


@dataclass(frozen=True)
class WeightedEntrant:
    """A participant together with the number of rows they hold."""

    participant_id: str
    display_name: str
    entry_count: int


@dataclass
class DrawEvaluation:
    """Value object describing one draw computation.

    Attributes
    ----------
    report : AuditReport
        The audit report for the draw.
    ranked_rows : list[ScoredRow]
        Every scored row ordered by score descending; ephemeral, used only by
        detail views.
    """

    report: AuditReport
    ranked_rows: list[ScoredRow]


def weigh_entries(
    entries: Iterable[DrawEntry],
    weight_rules: Iterable[BonusRule],
    base_amount: int,
) -> list[WeightedEntrant]:
    """Resolve each entry's row count with :func:`weight_for`, keeping entry order."""
    rules = list(weight_rules)
    return [
        WeightedEntrant(
            participant_id=str(entry.participant_id),
            display_name=entry.display_name or "",
            entry_count=weight_for(base_amount, entry.roles or (), rules),
        )
        for entry in entries
    ]


def rank_rows(rows: Iterable[ScoredRow]) -> list[ScoredRow]:
    """Sort rows by score, highest first.

    ``sorted`` is stable with ``reverse=True`` as well, so equal scores keep
    their expansion order.
    """
    return sorted(rows, key=lambda row: row.score, reverse=True)


def select_winners(ranked_rows: Iterable[ScoredRow], winner_count: int) -> list[WinnerRecord]:
    """Walk ranked rows and take the first row of each participant not yet chosen."""
    winners: list[WinnerRecord] = []
    chosen: set[str] = set()
    for row in ranked_rows:
        if len(winners) >= winner_count:
            break
        if row.participant_id in chosen:
            continue
        chosen.add(row.participant_id)
        winners.append(
            WinnerRecord(
                participant_id=row.participant_id,
                display_name=row.display_name,
                score=row.score,
                digest=row.digest,
                row_index=row.index,
            )
        )
    return winners


def evaluate_weighted(
    entrants: Sequence[WeightedEntrant],
    *,
    client_seed: str,
    server_seed_public: str,
    winner_count: int,
) -> DrawEvaluation:
    """Score, rank and select winners for entrants whose row counts are known.

    Raises
    ------
    ValueError
        If ``winner_count`` is not positive or a seed is empty.
    """
    if winner_count < 1:
        raise ValueError("winner_count must be a positive integer")
    if not client_seed:
        raise ValueError("client_seed must not be empty")
    if not server_seed_public:
        raise ValueError("server_seed_public must not be empty")

    if not entrants:
        logger.warning(f"Draw with client seed {client_seed} has no entrants; no winners")
        warnings.warn(
            "draw has no entrants; no winners were selected",
            EmptyEntrantsWarning,
            stacklevel=3,
        )

    rows: list[ScoredRow] = []
    entrant_records: list[EntrantRecord] = []
    for entrant in entrants:
        participant_rows = build_rows_for_participant(
            server_seed_public,
            client_seed,
            entrant.participant_id,
            max(1, entrant.entry_count),
            entrant.display_name,
        )
        rows.extend(participant_rows)
        entrant_records.append(
            EntrantRecord(
                participant_id=entrant.participant_id,
                display_name=entrant.display_name,
                entry_count=len(participant_rows),
                scores=tuple(row.score for row in participant_rows),
            )
        )

    ranked = rank_rows(rows)
    winners = select_winners(ranked, winner_count)
    report = AuditReport(
        client_seed=client_seed,
        total_entrants=len(entrant_records),
        total_entry_rows=len(rows),
        entrants=tuple(entrant_records),
        winners=tuple(winners),
    )
    return DrawEvaluation(report=report, ranked_rows=ranked)


def evaluate_draw(
    entries: Iterable[DrawEntry],
    weight_rules: Iterable[BonusRule],
    base_amount: int,
    client_seed: str,
    server_seed_public: str,
    winner_count: int,
) -> DrawEvaluation:
    """Run the full draw and keep the ranked rows alongside the report."""
    entrants = weigh_entries(entries, weight_rules, base_amount)
    return evaluate_weighted(
        entrants,
        client_seed=client_seed,
        server_seed_public=server_seed_public,
        winner_count=winner_count,
    )


def draw(
    entries: Iterable[DrawEntry],
    weight_rules: Iterable[BonusRule],
    base_amount: int,
    client_seed: str,
    server_seed_public: str,
    winner_count: int,
) -> AuditReport:
    """Compute the audit report for a giveaway.

    Parameters
    ----------
    entries : Iterable[DrawEntry]
        Entries in join order; the order only matters for breaking exact score ties.
    weight_rules : Iterable[BonusRule]
        Role bonus rules of the giveaway.
    base_amount : int
        Base entry weight.
    client_seed : str
        Post-close entropy value.
    server_seed_public : str
        Public HMAC key.
    winner_count : int
        Maximum number of distinct winners.

    Returns
    -------
    AuditReport
        Byte-for-byte reproducible for identical inputs. Fewer winners than
        ``winner_count`` are returned when there are fewer participants.
    """
    return evaluate_draw(
        entries, weight_rules, base_amount, client_seed, server_seed_public, winner_count
    ).report


def replay(
    report: AuditReport,
    server_seed_public: str,
    winner_count: Optional[int] = None,
) -> AuditReport:
    """Recompute a published report from its own entrant counts and client seed.

    ``winner_count`` defaults to the number of winners in ``report``; pass the
    giveaway's configured count when the published list may be short.
    """
    entrants = [
        WeightedEntrant(
            participant_id=entrant.participant_id,
            display_name=entrant.display_name,
            entry_count=entrant.entry_count,
        )
        for entrant in report.entrants
    ]
    count = winner_count if winner_count is not None else max(1, len(report.winners))
    return evaluate_weighted(
        entrants,
        client_seed=report.client_seed,
        server_seed_public=server_seed_public,
        winner_count=count,
    ).report


__all__ = [
    "DrawEntry",
    "DrawEvaluation",
    "WeightedEntrant",
    "draw",
    "evaluate_draw",
    "evaluate_weighted",
    "rank_rows",
    "replay",
    "select_winners",
    "weigh_entries",
]
