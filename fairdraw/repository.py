"""Giveaway persistence behind an explicit repository.

Each public method runs in its own transaction and returns detached objects
with entries and weight rules already loaded, so a caller always reads its own
writes. State-changing methods are single conditional ``UPDATE`` statements
(compare-and-commit) so concurrent writers cannot both pass a guard.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.orm import Session, sessionmaker

from .db.utils import ensure_utc
from .errors import (
    AlreadyEnteredError,
    GiveawayClosedError,
    GiveawayNotFoundError,
    GiveawayStateError,
)
from .models import Giveaway, GiveawayEntry, GiveawayStatus, WeightRule
from .models.utils import generate_giveaway_id

logger = logging.getLogger(__name__)


class GiveawayRepository:
    """SQLAlchemy-backed store for :class:`~fairdraw.models.Giveaway` rows."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._sessions = session_factory

    # -------- reads --------
    def load(self) -> list[Giveaway]:
        """Return every giveaway ordered by creation time."""
        with self._sessions() as session:
            stmt = select(Giveaway).order_by(Giveaway.created_at.asc(), Giveaway.id.asc())
            return list(session.scalars(stmt).all())

    def load_pending(self) -> list[Giveaway]:
        """Return giveaways that still need a draw (``open`` or ``closed``)."""
        with self._sessions() as session:
            stmt = (
                select(Giveaway)
                .where(Giveaway.status != GiveawayStatus.DRAWN)
                .order_by(Giveaway.closes_at.asc(), Giveaway.id.asc())
            )
            return list(session.scalars(stmt).all())

    def get(self, giveaway_id: str) -> Optional[Giveaway]:
        with self._sessions() as session:
            return session.get(Giveaway, giveaway_id)

    def require(self, giveaway_id: str) -> Giveaway:
        """Like :meth:`get` but raise :class:`GiveawayNotFoundError` on a miss."""
        giveaway = self.get(giveaway_id)
        if giveaway is None:
            raise GiveawayNotFoundError(f"Giveaway {giveaway_id!r} not found")
        return giveaway

    # -------- writes --------
    def append(self, giveaway: Giveaway) -> Giveaway:
        """Persist a new giveaway, assigning an id when it has none."""
        with self._sessions.begin() as session:
            if not giveaway.id:
                giveaway.id = generate_giveaway_id(session)
            session.add(giveaway)
            session.flush()
            giveaway_id = giveaway.id
        return self.require(giveaway_id)

    def replace(
        self,
        giveaway_id: str,
        *,
        title: Optional[str] = None,
        channel_id: Optional[str] = None,
        message_id: Optional[str] = None,
        closes_at: Optional[datetime] = None,
        base_amount: Optional[int] = None,
        winner_count: Optional[int] = None,
        weight_rules: Optional[Sequence[WeightRule]] = None,
    ) -> Giveaway:
        """Update a giveaway's configuration.

        Presentation fields (``title``, ``channel_id``, ``message_id``) can change
        at any time. Draw inputs (close time, weights, winner count) can only
        change while the giveaway is ``open`` so a closed giveaway's result stays
        reproducible from what entrants saw.

        Raises
        ------
        GiveawayNotFoundError
            If the giveaway does not exist.
        GiveawayStateError
            If a draw input is changed after the giveaway left ``open``.
        """
        draw_inputs_changed = any(
            value is not None for value in (closes_at, base_amount, winner_count, weight_rules)
        )
        with self._sessions.begin() as session:
            giveaway = self._lock_row(session, giveaway_id)
            if draw_inputs_changed and giveaway.status != GiveawayStatus.OPEN:
                raise GiveawayStateError(
                    f"Giveaway {giveaway_id!r} is {giveaway.status}; draw settings are frozen"
                )
            if title is not None:
                giveaway.title = title
            if channel_id is not None:
                giveaway.channel_id = channel_id
            if message_id is not None:
                giveaway.message_id = message_id
            if closes_at is not None:
                giveaway.closes_at = ensure_utc(closes_at)
            if base_amount is not None:
                giveaway.base_amount = base_amount
            if winner_count is not None:
                giveaway.winner_count = winner_count
            if weight_rules is not None:
                giveaway.weight_rules = list(weight_rules)
        return self.require(giveaway_id)

    def remove(self, giveaway_id: str) -> bool:
        """Delete a giveaway with its entries and rules. Return ``False`` if absent."""
        with self._sessions.begin() as session:
            giveaway = session.get(Giveaway, giveaway_id)
            if giveaway is None:
                return False
            session.delete(giveaway)
        return True

    def add_entry(
        self, giveaway_id: str, entry: GiveawayEntry, *, now: datetime
    ) -> GiveawayEntry:
        """Insert ``entry`` if the giveaway still accepts entries at ``now``.

        The insert shares a transaction with a conditional bump of
        ``entry_count`` guarded on ``status = 'open'``; the close transition
        updates the same row, so an entry is either committed before the close
        or rejected.

        Raises
        ------
        GiveawayNotFoundError
            If the giveaway does not exist.
        GiveawayClosedError
            If the close time has passed or the giveaway is no longer open.
        AlreadyEnteredError
            If the participant already has an entry.
        """
        with self._sessions.begin() as session:
            giveaway = self._lock_row(session, giveaway_id)
            if not giveaway.accepts_entries(now):
                raise GiveawayClosedError(f"Giveaway {giveaway_id!r} is no longer accepting entries")

            bumped = session.execute(
                update(Giveaway)
                .where(Giveaway.id == giveaway_id, Giveaway.status == GiveawayStatus.OPEN)
                .values(entry_count=Giveaway.entry_count + 1)
                .execution_options(synchronize_session=False)
            )
            if bumped.rowcount != 1:
                raise GiveawayClosedError(f"Giveaway {giveaway_id!r} closed while joining")

            existing = session.scalar(
                select(GiveawayEntry.id).where(
                    GiveawayEntry.giveaway_id == giveaway_id,
                    GiveawayEntry.participant_id == entry.participant_id,
                )
            )
            if existing is not None:
                raise AlreadyEnteredError(
                    f"Participant {entry.participant_id} already entered giveaway {giveaway_id!r}"
                )

            entry.giveaway_id = giveaway_id
            entry.joined_at = now
            session.add(entry)
            session.flush()
        return entry

    def mark_closed(self, giveaway_id: str, *, now: datetime) -> bool:
        """Flip ``open`` to ``closed``. Return ``True`` only for the caller that flipped it."""
        with self._sessions.begin() as session:
            result = session.execute(
                update(Giveaway)
                .where(Giveaway.id == giveaway_id, Giveaway.status == GiveawayStatus.OPEN)
                .values(status=GiveawayStatus.CLOSED, closed_at=now)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1

    def commit_draw(
        self,
        giveaway_id: str,
        *,
        client_seed: str,
        winners: list[dict],
        report: dict,
        now: datetime,
    ) -> bool:
        """Record seed, winners and report and flip ``closed`` to ``drawn``.

        All four columns change in one ``UPDATE`` guarded on the giveaway being
        ``closed`` with no seed yet, so readers never observe a partial draw and
        only one committer can succeed. Return ``False`` when the guard fails.
        """
        with self._sessions.begin() as session:
            result = session.execute(
                update(Giveaway)
                .where(
                    Giveaway.id == giveaway_id,
                    Giveaway.status == GiveawayStatus.CLOSED,
                    Giveaway.client_seed.is_(None),
                )
                .values(
                    status=GiveawayStatus.DRAWN,
                    client_seed=client_seed,
                    winners=winners,
                    roll_report=report,
                    drawn_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            committed = result.rowcount == 1
        if not committed:
            logger.warning(f"Draw commit for giveaway {giveaway_id} lost the race; nothing written")
        return committed

    @staticmethod
    def _lock_row(session: Session, giveaway_id: str) -> Giveaway:
        # FOR UPDATE is a no-op on SQLite, which serializes writers anyway.
        giveaway = session.scalar(
            select(Giveaway).where(Giveaway.id == giveaway_id).with_for_update()
        )
        if giveaway is None:
            raise GiveawayNotFoundError(f"Giveaway {giveaway_id!r} not found")
        return giveaway


__all__ = ["GiveawayRepository"]
