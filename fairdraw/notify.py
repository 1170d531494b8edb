"""Presentation collaborator interface.

The chat layer implements :class:`DrawNotifier` to update announcements and
post winners; the lifecycle only hands it computed data.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .models import Giveaway
    from .prize_draw.report import AuditReport

logger = logging.getLogger(__name__)


class DrawNotifier(Protocol):
    def giveaway_closed(self, giveaway: "Giveaway") -> None: ...

    def giveaway_drawn(self, giveaway: "Giveaway", report: "AuditReport") -> None: ...

    def draw_failed(self, giveaway: "Giveaway", error: Exception) -> None: ...


class LoggingNotifier:
    """Default notifier that only writes to the log."""

    def giveaway_closed(self, giveaway: "Giveaway") -> None:
        logger.info(f"Giveaway {giveaway.id} ({giveaway.title}) closed for entries")

    def giveaway_drawn(self, giveaway: "Giveaway", report: "AuditReport") -> None:
        winners = ", ".join(w.display_name or w.participant_id for w in report.winners)
        logger.info(
            f"Giveaway {giveaway.id} ({giveaway.title}) drawn with client seed "
            f"{report.client_seed}: {winners or 'No winners'}"
        )

    def draw_failed(self, giveaway: "Giveaway", error: Exception) -> None:
        logger.error(f"Giveaway {giveaway.id} ({giveaway.title}) could not be drawn: {error}")


__all__ = ["DrawNotifier", "LoggingNotifier"]
