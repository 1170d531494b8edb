from .base import Base

# import models so Alembic/autoloaders can discover mappers
from .giveaway import (  # noqa: F401
    EntryTotals,
    Giveaway,
    GiveawayEntry,
    GiveawayStatus,
    WeightRule,
)

__all__ = [
    "Base",
    "EntryTotals",
    "Giveaway",
    "GiveawayEntry",
    "GiveawayStatus",
    "WeightRule",
]
