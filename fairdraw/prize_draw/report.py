"""Audit report produced by a draw and its published JSON form."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class EntrantRecord:
    """Per-participant summary: how many rows they held and each row's score."""

    participant_id: str
    display_name: str
    entry_count: int
    scores: tuple[float, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "participantId": self.participant_id,
            "displayName": self.display_name,
            "entryCount": self.entry_count,
            "scores": list(self.scores),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EntrantRecord":
        return cls(
            participant_id=str(data["participantId"]),
            display_name=str(data.get("displayName") or ""),
            entry_count=int(data["entryCount"]),
            scores=tuple(float(s) for s in data.get("scores") or ()),
        )


@dataclass(frozen=True)
class WinnerRecord:
    """A selected winner and the row that won."""

    participant_id: str
    display_name: str
    score: float
    digest: str
    row_index: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "participantId": self.participant_id,
            "displayName": self.display_name,
            "score": self.score,
            "digest": self.digest,
            "rowIndex": self.row_index,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WinnerRecord":
        return cls(
            participant_id=str(data["participantId"]),
            display_name=str(data.get("displayName") or ""),
            score=float(data["score"]),
            digest=str(data["digest"]),
            row_index=int(data["rowIndex"]),
        )


@dataclass(frozen=True)
class AuditReport:
    """Complete, reproducible record of one draw's inputs and outputs.

    Attributes
    ----------
    client_seed : str
        Entropy value the draw was scored with.
    total_entrants : int
        Number of distinct participants.
    total_entry_rows : int
        Number of scored rows after weight expansion.
    entrants : tuple[EntrantRecord, ...]
        Entrants in entry order.
    winners : tuple[WinnerRecord, ...]
        Winners in rank order.
    """

    client_seed: str
    total_entrants: int
    total_entry_rows: int
    entrants: tuple[EntrantRecord, ...] = field(default_factory=tuple)
    winners: tuple[WinnerRecord, ...] = field(default_factory=tuple)

    @property
    def winner_ids(self) -> list[str]:
        return [winner.participant_id for winner in self.winners]

    def to_dict(self) -> dict[str, Any]:
        """Return the report in its published shape (camelCase keys)."""
        return {
            "clientSeed": self.client_seed,
            "totalEntrants": self.total_entrants,
            "totalEntryRows": self.total_entry_rows,
            "entrants": [entrant.to_dict() for entrant in self.entrants],
            "winners": [winner.to_dict() for winner in self.winners],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AuditReport":
        """Parse a published report.

        Raises
        ------
        ValueError
            If a required key is missing or has the wrong type.
        """
        try:
            return cls(
                client_seed=str(data["clientSeed"]),
                total_entrants=int(data["totalEntrants"]),
                total_entry_rows=int(data["totalEntryRows"]),
                entrants=tuple(EntrantRecord.from_dict(e) for e in data.get("entrants") or ()),
                winners=tuple(WinnerRecord.from_dict(w) for w in data.get("winners") or ()),
            )
        except (KeyError, TypeError) as exc:
            raise ValueError(f"Malformed audit report: {exc}") from exc


def render_report_json(report: AuditReport) -> str:
    """Render ``report`` as the downloadable JSON document (2-space indent)."""
    return json.dumps(report.to_dict(), indent=2, ensure_ascii=False)


def report_filename(giveaway_id: str) -> str:
    """File name used when the report is offered as a download."""
    return f"giveaway_{giveaway_id}_report.json"


__all__ = [
    "AuditReport",
    "EntrantRecord",
    "WinnerRecord",
    "render_report_json",
    "report_filename",
]
