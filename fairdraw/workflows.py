"""Giveaway lifecycle: ``open -> closed -> drawn``.

Scheduled and manual draws both go through :meth:`GiveawayLifecycle.draw_giveaway`,
which never commits a result without a freshly acquired client seed and
commits at most once per giveaway.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Optional, Sequence

from .blockchain.entropy import EntropySource
from .config import Settings
from .db.utils import ensure_utc
from .errors import (
    AlreadyDrawnError,
    ConfigError,
    DrawError,
    EntropyTimeoutError,
    GiveawayNotFoundError,
    GiveawayStateError,
    NetworkError,
)
from .models import Giveaway, GiveawayEntry, GiveawayStatus, WeightRule
from .notify import DrawNotifier, LoggingNotifier
from .prize_draw.engine import DrawEvaluation, evaluate_draw
from .prize_draw.report import AuditReport, render_report_json
from .prize_draw.weights import RoleBonus
from .repository import GiveawayRepository
from .scheduler import DrawScheduler, retry_job_id

logger = logging.getLogger(__name__)

# Failures worth another scheduled attempt; protocol and config errors need a human.
RETRIABLE_ERRORS = (NetworkError, EntropyTimeoutError)


@dataclass(frozen=True)
class Verification:
    """Outcome of a read-only reproduction of a giveaway's draw.

    Attributes
    ----------
    report : AuditReport
        Recomputed report.
    committed : bool
        ``True`` when the report was computed from the stored client seed of a
        drawn giveaway, ``False`` for a preview with a fresh, unsaved seed.
    matches_stored : Optional[bool]
        For drawn giveaways, whether the recomputed winners equal the stored
        winners; ``None`` for previews.
    """

    report: AuditReport
    committed: bool
    matches_stored: Optional[bool]


class GiveawayLifecycle:
    """Owns giveaway state transitions, close triggers and verification.

    Parameters
    ----------
    repository : GiveawayRepository
        Store for giveaways; all state changes go through its guarded updates.
    entropy_source : Optional[EntropySource]
        Source of client seeds. ``None`` means no provider is configured and
        every draw or preview raises :class:`~fairdraw.errors.ConfigError`.
    settings : Optional[Settings], default: None
        Server seed, default winner count and retry delay.
    scheduler : Optional[DrawScheduler], default: None
        When omitted no close triggers are armed (draws must be requested).
    notifier : Optional[DrawNotifier], default: None
        Presentation collaborator; defaults to :class:`~fairdraw.notify.LoggingNotifier`.
    clock : Optional[Callable[[], datetime]], default: None
        Source of the current UTC time.
    """

    def __init__(
        self,
        repository: GiveawayRepository,
        entropy_source: Optional[EntropySource],
        *,
        settings: Optional[Settings] = None,
        scheduler: Optional[DrawScheduler] = None,
        notifier: Optional[DrawNotifier] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._repository = repository
        self._entropy = entropy_source
        self._settings = settings or Settings()
        self._scheduler = scheduler
        self._notifier = notifier or LoggingNotifier()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._details_cache: dict[str, AuditReport] = {}

    # -------- helpers --------
    def _now(self) -> datetime:
        return ensure_utc(self._clock())

    def _lock_for(self, giveaway_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(giveaway_id)
            if lock is None:
                lock = self._locks[giveaway_id] = threading.Lock()
            return lock

    def _acquire_seed(self) -> str:
        if self._entropy is None:
            raise ConfigError("No entropy provider configured (TRX_API_URL is not set)")
        return self._entropy.acquire_entropy()

    def _notify(self, method: str, *args) -> None:
        try:
            getattr(self._notifier, method)(*args)
        except Exception:
            # Rendering failures never undo a state change.
            logger.exception(f"Notifier {method} failed")

    def _arm(self, giveaway: Giveaway) -> None:
        if self._scheduler is not None:
            self._scheduler.arm(giveaway.id, giveaway.closes_at_utc, self.handle_close_trigger)

    # -------- creation & configuration --------
    def create_giveaway(
        self,
        *,
        title: str,
        channel_id: str,
        closes_at: Optional[datetime] = None,
        duration: Optional[timedelta] = None,
        base_amount: int = 1,
        weight_rules: Iterable[RoleBonus] = (),
        winner_count: Optional[int] = None,
        created_by: Optional[str] = None,
        giveaway_id: Optional[str] = None,
    ) -> Giveaway:
        """Create an ``open`` giveaway and arm its close trigger.

        Exactly one of ``closes_at`` or ``duration`` must be given.

        Raises
        ------
        ValueError
            If the close time is missing or not in the future, or the winner
            count is not positive.
        """
        now = self._now()
        if (closes_at is None) == (duration is None):
            raise ValueError("Pass exactly one of closes_at or duration")
        close_time = ensure_utc(closes_at) if closes_at is not None else now + duration
        if close_time <= now:
            raise ValueError("Giveaway close time must be in the future")
        count = winner_count if winner_count is not None else self._settings.default_winners
        if count < 1:
            raise ValueError("winner_count must be a positive integer")

        giveaway = Giveaway(
            id=giveaway_id or "",
            title=title,
            channel_id=str(channel_id),
            closes_at=close_time,
            server_seed_public=self._settings.server_seed_public,
            base_amount=int(base_amount),
            winner_count=count,
            weight_rules=[
                WeightRule(role_id=rule.role_id, bonus=rule.bonus, position=position)
                for position, rule in enumerate(weight_rules)
            ],
            created_by=created_by,
            created_at=now,
        )
        stored = self._repository.append(giveaway)
        logger.info(f"Created giveaway {stored.id} ({stored.title}) closing at {close_time.isoformat()}")
        self._arm(stored)
        return stored

    def update_giveaway(self, giveaway_id: str, **changes) -> Giveaway:
        """Apply :meth:`GiveawayRepository.replace` and re-arm if the close time moved."""
        giveaway = self._repository.replace(giveaway_id, **changes)
        if changes.get("closes_at") is not None:
            self._arm(giveaway)
        return giveaway

    def remove_giveaway(self, giveaway_id: str) -> bool:
        """Delete a giveaway and cancel its close trigger and any pending retry."""
        if self._scheduler is not None:
            self._scheduler.cancel(giveaway_id)
        with self._locks_guard:
            self._locks.pop(giveaway_id, None)
        self._details_cache.pop(giveaway_id, None)
        return self._repository.remove(giveaway_id)

    def rearm_pending(self) -> int:
        """Re-arm triggers for every giveaway not yet drawn, e.g. after a restart.

        Close times already in the past fire immediately.
        """
        if self._scheduler is None:
            return 0
        pending = self._repository.load_pending()
        for giveaway in pending:
            self._arm(giveaway)
        logger.info(f"Re-armed {len(pending)} pending giveaway trigger(s)")
        return len(pending)

    # -------- entries --------
    def submit_entry(
        self,
        giveaway_id: str,
        participant_id: str,
        display_name: str = "",
        roles: Sequence[str] = (),
    ) -> GiveawayEntry:
        """Record a participant's entry with a snapshot of their roles.

        Raises
        ------
        GiveawayNotFoundError
            If the giveaway does not exist.
        GiveawayClosedError
            If the close time has passed or the giveaway is closed or drawn.
        AlreadyEnteredError
            If the participant already entered.
        """
        entry = GiveawayEntry(
            participant_id=str(participant_id),
            display_name=display_name,
            roles=roles,
        )
        stored = self._repository.add_entry(giveaway_id, entry, now=self._now())
        logger.debug(f"Participant {stored.participant_id} entered giveaway {giveaway_id}")
        return stored

    # -------- transitions --------
    def close_giveaway(self, giveaway_id: str) -> Giveaway:
        """Move an ``open`` giveaway whose close time has passed to ``closed``.

        Already closed or drawn giveaways are returned unchanged.

        Raises
        ------
        GiveawayStateError
            If the close time has not been reached yet.
        """
        giveaway = self._repository.require(giveaway_id)
        if giveaway.status != GiveawayStatus.OPEN:
            return giveaway
        now = self._now()
        if not giveaway.is_past_close(now):
            raise GiveawayStateError(
                f"Giveaway {giveaway_id!r} accepts entries until {giveaway.closes_at_utc.isoformat()}"
            )
        if self._repository.mark_closed(giveaway_id, now=now):
            logger.info(f"Giveaway {giveaway_id} closed with {giveaway.entry_count} entries")
            giveaway = self._repository.require(giveaway_id)
            self._notify("giveaway_closed", giveaway)
            return giveaway
        return self._repository.require(giveaway_id)

    def draw_giveaway(self, giveaway_id: str) -> AuditReport:
        """Draw winners for a giveaway: the only path from ``closed`` to ``drawn``.

        Steps, under the giveaway's lock:

        1. Reject a ``drawn`` giveaway without side effects.
        2. Close it if still ``open`` and its close time has passed.
        3. Acquire a fresh client seed from the entropy source.
        4. Compute the report from the frozen entries.
        5. Commit seed, winners, report and status in one guarded update.

        Returns
        -------
        AuditReport
            The committed report.

        Raises
        ------
        AlreadyDrawnError
            If the giveaway was already drawn (nothing changes).
        GiveawayStateError
            If the close time has not been reached.
        ConfigError, NetworkError, ProtocolError, EntropyTimeoutError
            If no client seed could be acquired; the giveaway stays ``closed``.
        DrawError
            If the computation fails; nothing is committed.
        """
        with self._lock_for(giveaway_id):
            giveaway = self._repository.require(giveaway_id)
            if giveaway.is_drawn:
                raise AlreadyDrawnError(f"Giveaway {giveaway_id!r} has already been drawn")
            if giveaway.status == GiveawayStatus.OPEN:
                giveaway = self.close_giveaway(giveaway_id)
                if giveaway.is_drawn:
                    raise AlreadyDrawnError(f"Giveaway {giveaway_id!r} has already been drawn")

            client_seed = self._acquire_seed()

            try:
                evaluation = self._evaluate(giveaway, client_seed)
            except Exception as exc:
                raise DrawError(f"Computing winners for giveaway {giveaway_id!r} failed: {exc}") from exc

            report = evaluation.report
            report_dict = report.to_dict()
            committed = self._repository.commit_draw(
                giveaway_id,
                client_seed=client_seed,
                winners=report_dict["winners"],
                report=report_dict,
                now=self._now(),
            )
            if not committed:
                raise AlreadyDrawnError(f"Giveaway {giveaway_id!r} was drawn concurrently")

        # Later callers are rejected by the stored status; the lock is no longer needed.
        with self._locks_guard:
            self._locks.pop(giveaway_id, None)
        logger.info(
            f"Giveaway {giveaway_id} drawn: {len(report.winners)} winner(s) from "
            f"{report.total_entrants} entrant(s), client seed {client_seed}"
        )
        self._details_cache[giveaway_id] = report
        self._notify("giveaway_drawn", self._repository.require(giveaway_id), report)
        return report

    def handle_close_trigger(self, giveaway_id: str) -> Optional[AuditReport]:
        """Scheduled entry point fired at a giveaway's close time.

        Runs :meth:`draw_giveaway` and logs errors instead of raising them.
        Network and timeout failures re-arm a retry after ``draw_retry_seconds``.
        """
        try:
            return self.draw_giveaway(giveaway_id)
        except AlreadyDrawnError:
            logger.debug(f"Close trigger for giveaway {giveaway_id} found it already drawn")
        except GiveawayNotFoundError:
            logger.info(f"Close trigger fired for removed giveaway {giveaway_id}")
        except GiveawayStateError as exc:
            # Close time moved later after the trigger was armed.
            logger.info(f"Close trigger for giveaway {giveaway_id} fired early: {exc}")
            giveaway = self._repository.get(giveaway_id)
            if giveaway is not None:
                self._arm(giveaway)
        except RETRIABLE_ERRORS as exc:
            logger.error(f"Scheduled draw of giveaway {giveaway_id} failed, will retry: {exc}")
            self._report_failure(giveaway_id, exc)
            if self._scheduler is not None:
                self._scheduler.after(
                    self._settings.draw_retry_seconds,
                    self.handle_close_trigger,
                    giveaway_id,
                    job_id=retry_job_id(giveaway_id),
                )
        except Exception as exc:
            logger.exception(f"Scheduled draw of giveaway {giveaway_id} failed")
            self._report_failure(giveaway_id, exc)
        return None

    def _report_failure(self, giveaway_id: str, exc: Exception) -> None:
        giveaway = self._repository.get(giveaway_id)
        if giveaway is not None:
            self._notify("draw_failed", giveaway, exc)

    def _evaluate(self, giveaway: Giveaway, client_seed: str) -> DrawEvaluation:
        return evaluate_draw(
            giveaway.entries,
            giveaway.weight_rules,
            giveaway.base_amount,
            client_seed,
            giveaway.server_seed_public,
            giveaway.winner_count,
        )

    # -------- verification --------
    def verify_giveaway(self, giveaway_id: str) -> Verification:
        """Reproduce a giveaway's report without changing its state.

        A drawn giveaway is recomputed from its stored client seed and the
        winners are compared with the stored ones. A giveaway past its close
        time but not yet drawn gets a preview with a freshly acquired seed that
        is neither stored nor used to change state.

        Raises
        ------
        GiveawayStateError
            If the giveaway still accepts entries.
        """
        giveaway = self._repository.require(giveaway_id)
        if giveaway.is_drawn:
            evaluation = self._evaluate(giveaway, giveaway.client_seed)
            recomputed = evaluation.report.to_dict()["winners"]
            matches = list(giveaway.winners or ()) == recomputed
            if not matches:
                logger.error(
                    f"Verification mismatch for giveaway {giveaway_id}: "
                    f"stored {giveaway.winners}, recomputed {recomputed}"
                )
            verification = Verification(evaluation.report, committed=True, matches_stored=matches)
            self._details_cache[giveaway_id] = evaluation.report
        else:
            if not giveaway.is_past_close(self._now()):
                raise GiveawayStateError("Verification is only available after the giveaway ends")
            client_seed = self._acquire_seed()
            evaluation = self._evaluate(giveaway, client_seed)
            verification = Verification(evaluation.report, committed=False, matches_stored=None)
        return verification

    def report_details(self, giveaway_id: str) -> str:
        """Return the committed report JSON for a "details" view.

        Only drawn giveaways have details; previews from :meth:`verify_giveaway`
        are never served here. The report cached by the draw or the last
        verification is used, recomputing from the stored seed when none is cached.

        Raises
        ------
        GiveawayStateError
            If the giveaway has not been drawn yet.
        """
        report = self._details_cache.get(giveaway_id)
        if report is None:
            if not self._repository.require(giveaway_id).is_drawn:
                raise GiveawayStateError(f"Giveaway {giveaway_id!r} has no committed report yet")
            report = self.verify_giveaway(giveaway_id).report
        return render_report_json(report)


__all__ = ["GiveawayLifecycle", "RETRIABLE_ERRORS", "Verification"]
