"""Database models for giveaways, their entries and their weight rules."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.utils import dt_iso, ensure_utc
from ..prize_draw.report import AuditReport
from ..prize_draw.weights import weight_for
from .base import Base


class GiveawayStatus:
    """Lifecycle states. ``drawn`` is terminal."""

    OPEN = "open"
    CLOSED = "closed"
    DRAWN = "drawn"
    ALL = (OPEN, CLOSED, DRAWN)


@dataclass(frozen=True)
class EntryTotals:
    """Participant and row counts shown while a giveaway is running."""

    participants: int
    total_entries: int


class Giveaway(Base):
    """A timed prize drawing and, once drawn, its permanent result."""

    __tablename__ = "giveaways"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    """Opaque identifier."""

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    channel_id: Mapped[str] = mapped_column(String(64), nullable=False)
    """Hosting channel reference on the chat platform."""

    message_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    """Announcement message, filled in by the presentation layer."""

    created_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    base_amount: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    """Entry weight every participant receives before role bonuses."""

    winner_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    closes_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    """Entries are accepted strictly before this instant (UTC)."""

    status: Mapped[str] = mapped_column(
        String(10), nullable=False, default=GiveawayStatus.OPEN
    )

    entry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    """Number of accepted entries, bumped by the guarded entry insert."""

    server_seed_public: Mapped[str] = mapped_column(String(255), nullable=False)
    """Public HMAC key this giveaway is scored with."""

    client_seed: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    """Block hash acquired after close. Written once, together with the result."""

    winners: Mapped[Optional[list]] = mapped_column(
        JSON(none_as_null=True), nullable=True
    )
    """Published winner list (same shape as the report's ``winners``)."""

    roll_report: Mapped[Optional[dict]] = mapped_column(
        JSON(none_as_null=True), nullable=True
    )
    """Published audit report."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    closed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    drawn_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    entries: Mapped[list["GiveawayEntry"]] = relationship(
        back_populates="giveaway",
        cascade="all, delete-orphan",
        order_by="GiveawayEntry.id",
        lazy="selectin",
    )
    weight_rules: Mapped[list["WeightRule"]] = relationship(
        back_populates="giveaway",
        cascade="all, delete-orphan",
        order_by="WeightRule.position",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("status IN ('open','closed','drawn')", name="status_enum"),
        CheckConstraint("winner_count >= 1", name="winner_count_positive"),
        Index("ix_giveaways_status_closes_at", "status", "closes_at"),
    )

    def __init__(
        self,
        *,
        id: str,
        title: str,
        channel_id: str,
        closes_at: datetime,
        server_seed_public: str,
        base_amount: int = 1,
        winner_count: int = 1,
        weight_rules: Optional[Iterable["WeightRule"]] = None,
        message_id: Optional[str] = None,
        created_by: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> None:
        self.id = id
        self.title = title
        self.channel_id = channel_id
        self.closes_at = ensure_utc(closes_at)
        self.server_seed_public = server_seed_public
        self.base_amount = base_amount
        self.winner_count = winner_count
        self.message_id = message_id
        self.created_by = created_by
        self.status = GiveawayStatus.OPEN
        self.entry_count = 0
        if weight_rules is not None:
            self.weight_rules = list(weight_rules)
        if created_at is not None:
            self.created_at = created_at

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<Giveaway(id={id}, title={title!r}, status={status})>".format(
            id=self.id, title=self.title, status=self.status
        )

    @property
    def closes_at_utc(self) -> datetime:
        return ensure_utc(self.closes_at)

    @property
    def is_drawn(self) -> bool:
        return self.status == GiveawayStatus.DRAWN

    def is_past_close(self, now: datetime) -> bool:
        """Return ``True`` once ``now`` has reached the close time."""
        return ensure_utc(now) >= self.closes_at_utc

    def accepts_entries(self, now: datetime) -> bool:
        return self.status == GiveawayStatus.OPEN and not self.is_past_close(now)

    def has_entry(self, participant_id: str) -> bool:
        return any(entry.participant_id == str(participant_id) for entry in self.entries)

    def weight_of(self, entry: "GiveawayEntry") -> int:
        """Rows ``entry`` will hold in the draw under this giveaway's rules."""
        return weight_for(self.base_amount, entry.roles or (), self.weight_rules)

    def entry_totals(self) -> EntryTotals:
        return EntryTotals(
            participants=len(self.entries),
            total_entries=sum(self.weight_of(entry) for entry in self.entries),
        )

    def stored_report(self) -> Optional[AuditReport]:
        """Return the committed report, or ``None`` before the draw."""
        if self.roll_report is None:
            return None
        return AuditReport.from_dict(self.roll_report)

    def to_json(self) -> dict[str, Any]:
        """Serialize for the presentation and management collaborators."""
        totals = self.entry_totals()
        return {
            "id": self.id,
            "title": self.title,
            "channelId": self.channel_id,
            "messageId": self.message_id,
            "createdBy": self.created_by,
            "baseAmount": self.base_amount,
            "extras": [rule.to_json() for rule in self.weight_rules],
            "winnersCount": self.winner_count,
            "closesAt": dt_iso(self.closes_at),
            "createdAt": dt_iso(self.created_at),
            "closedAt": dt_iso(self.closed_at),
            "drawnAt": dt_iso(self.drawn_at),
            "status": self.status,
            "participants": totals.participants,
            "totalEntries": totals.total_entries,
            "entries": [entry.to_json() for entry in self.entries],
            "serverSeedPublic": self.server_seed_public,
            "clientSeed": self.client_seed,
            "winners": self.winners,
        }


class GiveawayEntry(Base):
    """One participant's entry, with their roles frozen at join time."""

    __tablename__ = "giveaway_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    giveaway_id: Mapped[str] = mapped_column(
        ForeignKey("giveaways.id", ondelete="CASCADE"), nullable=False, index=True
    )
    participant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    roles: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    """Role ids held when the participant joined."""

    giveaway: Mapped["Giveaway"] = relationship(back_populates="entries")

    __table_args__ = (
        UniqueConstraint(
            "giveaway_id", "participant_id", name="uq_giveaway_entry_participant"
        ),
    )

    def __init__(
        self,
        *,
        participant_id: str,
        display_name: str = "",
        roles: Iterable[str] = (),
        joined_at: Optional[datetime] = None,
        giveaway_id: Optional[str] = None,
    ) -> None:
        self.participant_id = str(participant_id)
        self.display_name = display_name or ""
        self.roles = [str(role) for role in roles]
        if joined_at is not None:
            self.joined_at = ensure_utc(joined_at)
        if giveaway_id is not None:
            self.giveaway_id = giveaway_id

    def to_json(self) -> dict[str, Any]:
        return {
            "participantId": self.participant_id,
            "displayName": self.display_name,
            "joinedAt": dt_iso(self.joined_at),
            "roles": list(self.roles or ()),
        }


class WeightRule(Base):
    """Extra entry weight granted to holders of a role."""

    __tablename__ = "giveaway_weight_rules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    giveaway_id: Mapped[str] = mapped_column(
        ForeignKey("giveaways.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    role_id: Mapped[str] = mapped_column(String(64), nullable=False)
    bonus: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    giveaway: Mapped["Giveaway"] = relationship(back_populates="weight_rules")

    def __init__(self, *, role_id: str, bonus: int, position: int = 0) -> None:
        self.role_id = str(role_id)
        self.bonus = int(bonus)
        self.position = position

    def to_json(self) -> dict[str, Any]:
        return {"roleId": self.role_id, "extra": self.bonus}


__all__ = [
    "EntryTotals",
    "Giveaway",
    "GiveawayEntry",
    "GiveawayStatus",
    "WeightRule",
]
