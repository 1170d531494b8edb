"""Deferred close triggers for giveaways.

Jobs run on APScheduler's thread pool, so a draw that is polling the chain for
entropy does not hold up other giveaways' triggers or callers.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional, Union

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.date import DateTrigger

from .db.utils import ensure_utc

logger = logging.getLogger(__name__)

Delay = Union[timedelta, float, int]


def close_job_id(giveaway_id: str) -> str:
    return f"close_{giveaway_id}"


def retry_job_id(giveaway_id: str) -> str:
    return f"retry_{giveaway_id}"


class DrawScheduler:
    """Arms, re-arms and cancels one close trigger per giveaway.

    Parameters
    ----------
    scheduler : Optional[BaseScheduler], default: None
        APScheduler instance to submit jobs to. A UTC ``BackgroundScheduler``
        is created when omitted.
    clock : Callable[[], datetime], default: ``datetime.now(timezone.utc)``
        Source of the current time, used to turn delays into run dates.
    """

    def __init__(
        self,
        scheduler: Optional[BaseScheduler] = None,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._scheduler = scheduler or BackgroundScheduler(timezone=timezone.utc)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    def start(self) -> None:
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("Draw scheduler started")

    def shutdown(self, wait: bool = True) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=wait)
            logger.info("Draw scheduler stopped")

    def _submit(self, job_id: str, run_date: datetime, callback: Callable[..., Any], args: tuple) -> Any:
        return self._scheduler.add_job(
            callback,
            DateTrigger(run_date=run_date),
            args=list(args),
            id=job_id,
            replace_existing=True,
            # A trigger that fires late (process was down or busy) still fires.
            misfire_grace_time=None,
        )

    def after(self, delay: Delay, callback: Callable[..., Any], *args: Any, job_id: Optional[str] = None) -> Any:
        """Run ``callback(*args)`` once ``delay`` has elapsed.

        ``job_id`` makes the job replaceable and cancellable; re-arming with the
        same id replaces the earlier job.
        """
        seconds = delay.total_seconds() if isinstance(delay, timedelta) else float(delay)
        run_date = self._clock() + timedelta(seconds=max(0.0, seconds))
        job_id = job_id or f"after_{getattr(callback, '__name__', 'job')}_{run_date.timestamp()}"
        return self._submit(job_id, run_date, callback, args)

    def arm(self, giveaway_id: str, closes_at: datetime, callback: Callable[[str], Any]) -> Any:
        """Arm ``callback(giveaway_id)`` for the close time, or immediately if it passed.

        The delay is derived from the stored close time on every call, so arming
        again after a restart picks up where the previous process left off.
        """
        now = self._clock()
        run_date = max(ensure_utc(closes_at), now)
        logger.debug(f"Arming close trigger for giveaway {giveaway_id} at {run_date.isoformat()}")
        return self._submit(close_job_id(giveaway_id), run_date, callback, (giveaway_id,))

    def cancel(self, giveaway_id: str) -> bool:
        """Remove the giveaway's close trigger and any pending draw retry.

        Return ``False`` if neither was scheduled.
        """
        removed = False
        for job_id in (close_job_id(giveaway_id), retry_job_id(giveaway_id)):
            try:
                self._scheduler.remove_job(job_id)
            except JobLookupError:
                continue
            removed = True
        if removed:
            logger.debug(f"Cancelled pending jobs for giveaway {giveaway_id}")
        return removed

    def is_armed(self, giveaway_id: str) -> bool:
        return self._scheduler.get_job(close_job_id(giveaway_id)) is not None


__all__ = ["DrawScheduler", "close_job_id", "retry_job_id"]
