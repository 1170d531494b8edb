"""Keyed scoring of entry rows.

Each row is identified by ``participant_id:client_seed:index`` and scored with
HMAC-SHA256 keyed by the public server seed. The first 52 bits of the hex
digest, divided by ``2**52``, give a float in ``[0, 1)`` that is exactly
representable as an IEEE-754 double, so every reimplementation ranks rows the
same way.
"""

from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass

SCORE_HEX_DIGITS = 13
SCORE_DENOMINATOR = 2**52


@dataclass(frozen=True)
class ScoredRow:
    """One ticket of a participant, bearing one deterministic score.

    Attributes
    ----------
    participant_id : str
        Owner of the row.
    display_name : str
        Participant name copied onto the row for report rendering.
    index : int
        Position of the row within the participant's weight (``0..n-1``).
    digest : str
        Lower-case hex HMAC-SHA256 digest of the row message.
    score : float
        Value in ``[0, 1)`` derived from ``digest``.
    """

    participant_id: str
    display_name: str
    index: int
    digest: str
    score: float


def row_message(participant_id: str, client_seed: str, index: int) -> str:
    """Return the HMAC message for a row: ``participant_id:client_seed:index``."""
    return f"{participant_id}:{client_seed}:{index}"


def hmac_sha256_hex(key: str, message: str) -> str:
    """Return the hex HMAC-SHA256 of ``message`` keyed by ``key`` (both UTF-8)."""
    return hmac.new(
        str(key).encode("utf-8"), str(message).encode("utf-8"), hashlib.sha256
    ).hexdigest()


def hex_to_unit_float(digest: str) -> float:
    """Map the first 52 bits of a hex digest to a float in ``[0, 1)``.

    Digests shorter than 13 hex characters are right-padded with zeros.
    """
    if not digest:
        return 0.0
    head = digest[:SCORE_HEX_DIGITS].ljust(SCORE_HEX_DIGITS, "0")
    return int(head, 16) / SCORE_DENOMINATOR


def score_row(
    server_seed: str,
    client_seed: str,
    participant_id: str,
    index: int,
    display_name: str = "",
) -> ScoredRow:
    """Score a single row."""
    digest = hmac_sha256_hex(server_seed, row_message(participant_id, client_seed, index))
    return ScoredRow(
        participant_id=str(participant_id),
        display_name=display_name,
        index=index,
        digest=digest,
        score=hex_to_unit_float(digest),
    )


def build_rows_for_participant(
    server_seed: str,
    client_seed: str,
    participant_id: str,
    count: int,
    display_name: str = "",
) -> list[ScoredRow]:
    """Return ``count`` scored rows (indices ``0..count-1``) for one participant."""
    return [
        score_row(server_seed, client_seed, participant_id, index, display_name)
        for index in range(count)
    ]


__all__ = [
    "SCORE_DENOMINATOR",
    "SCORE_HEX_DIGITS",
    "ScoredRow",
    "build_rows_for_participant",
    "hex_to_unit_float",
    "hmac_sha256_hex",
    "row_message",
    "score_row",
]
