"""Run the giveaway close triggers until interrupted.

Giveaways stored in the database that are not drawn yet get their triggers
re-armed on start; close times that passed while the process was down fire
immediately. A missing or invalid entropy provider configuration stops the
process before any trigger is armed.
"""

import logging
import os
import signal
import threading

from fairdraw.errors import ConfigError
from fairdraw.runtime import build_runtime

log = logging.getLogger(__name__)


def main() -> int:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    try:
        runtime = build_runtime(create_tables=True)
    except ConfigError as exc:
        log.error(f"Cannot start the draw scheduler: {exc}")
        return 1
    stop = threading.Event()

    def _handle_signal(signum, frame):
        stop.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    armed = runtime.start()
    log.info(f"Scheduler running with {armed} pending giveaway(s)")
    try:
        stop.wait()
    finally:
        runtime.stop()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
