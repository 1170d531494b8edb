import threading
import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, call

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler

from fairdraw.scheduler import DrawScheduler, close_job_id, retry_job_id

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def callback(giveaway_id):
    return giveaway_id


class DrawSchedulerTests(unittest.TestCase):
    def setUp(self):
        self.backend = MagicMock(spec=BaseScheduler)
        self.scheduler = DrawScheduler(self.backend, clock=lambda: NOW)

    def _submitted(self):
        args, kwargs = self.backend.add_job.call_args
        return args, kwargs

    def test_arm_schedules_at_close_time(self):
        self.scheduler.arm("gw1", NOW + timedelta(minutes=5), callback)

        args, kwargs = self._submitted()
        self.assertIs(args[0], callback)
        self.assertEqual(args[1].run_date, NOW + timedelta(minutes=5))
        self.assertEqual(kwargs["args"], ["gw1"])
        self.assertEqual(kwargs["id"], close_job_id("gw1"))
        self.assertTrue(kwargs["replace_existing"])
        self.assertIsNone(kwargs["misfire_grace_time"])

    def test_arm_past_close_time_fires_immediately(self):
        self.scheduler.arm("gw1", NOW - timedelta(days=2), callback)
        args, _ = self._submitted()
        self.assertEqual(args[1].run_date, NOW)

    def test_arm_accepts_naive_utc_close_times(self):
        self.scheduler.arm("gw1", datetime(2025, 6, 1, 13, 0), callback)
        args, _ = self._submitted()
        self.assertEqual(args[1].run_date, NOW + timedelta(hours=1))

    def test_after_uses_delay(self):
        self.scheduler.after(timedelta(seconds=60), callback, "gw1", job_id="retry_gw1")
        args, kwargs = self._submitted()
        self.assertEqual(args[1].run_date, NOW + timedelta(seconds=60))
        self.assertEqual(kwargs["id"], "retry_gw1")

        self.scheduler.after(2.5, callback, "gw2")
        args, kwargs = self._submitted()
        self.assertEqual(args[1].run_date, NOW + timedelta(seconds=2.5))
        self.assertEqual(kwargs["args"], ["gw2"])

    def test_cancel_removes_close_and_retry_jobs(self):
        self.assertTrue(self.scheduler.cancel("gw1"))
        self.assertEqual(
            self.backend.remove_job.call_args_list, [call("close_gw1"), call("retry_gw1")]
        )

        self.backend.remove_job.side_effect = JobLookupError("close_gw1")
        self.assertFalse(self.scheduler.cancel("gw1"))

    def test_cancel_with_only_a_pending_retry(self):
        self.backend.remove_job.side_effect = [JobLookupError("close_gw1"), None]
        self.assertTrue(self.scheduler.cancel("gw1"))
        self.backend.remove_job.assert_called_with(retry_job_id("gw1"))

    def test_is_armed(self):
        self.backend.get_job.return_value = None
        self.assertFalse(self.scheduler.is_armed("gw1"))
        self.backend.get_job.return_value = object()
        self.assertTrue(self.scheduler.is_armed("gw1"))


class BackgroundSchedulerTests(unittest.TestCase):
    def setUp(self):
        self.scheduler = DrawScheduler(BackgroundScheduler(timezone=timezone.utc))
        self.scheduler.start()

    def tearDown(self):
        self.scheduler.shutdown(wait=False)

    def test_trigger_fires_on_worker_thread(self):
        fired = threading.Event()
        seen = []

        def on_close(giveaway_id):
            seen.append((giveaway_id, threading.current_thread() is not threading.main_thread()))
            fired.set()

        self.scheduler.arm("gw1", datetime.now(timezone.utc) - timedelta(seconds=1), on_close)
        self.assertTrue(fired.wait(5))
        self.assertEqual(seen, [("gw1", True)])

    def test_cancelled_trigger_does_not_fire(self):
        fired = threading.Event()
        self.scheduler.arm("gw1", datetime.now(timezone.utc) + timedelta(hours=1), lambda _: fired.set())
        self.assertTrue(self.scheduler.is_armed("gw1"))
        self.assertTrue(self.scheduler.cancel("gw1"))
        self.assertFalse(self.scheduler.is_armed("gw1"))
        self.assertFalse(self.scheduler.cancel("gw1"))

    def test_cancel_drops_pending_retry(self):
        fired = threading.Event()
        self.scheduler.after(3600, lambda _: fired.set(), "gw1", job_id=retry_job_id("gw1"))
        self.assertTrue(self.scheduler.cancel("gw1"))
        self.assertEqual(self.scheduler._scheduler.get_jobs(), [])
        self.assertFalse(fired.is_set())


if __name__ == "__main__":
    unittest.main()
