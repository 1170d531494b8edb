#!/usr/bin/env python3
"""Recompute the winners of a published giveaway report.

Reads a report JSON file (as produced by the details view), replays the draw
from its client seed and entrant row counts with the public server seed, and
exits non-zero when the recomputed winners differ from the published ones.
Optionally confirms that the client seed is the hash of a given TRON block.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import pathlib
import sys

ROOT_DIR = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:  # pragma: no cover - simple environment setup
    sys.path.insert(0, str(ROOT_DIR))

from fairdraw.blockchain.api import TronClient  # noqa: E402
from fairdraw.blockchain.utils import extract_block_hash  # noqa: E402
from fairdraw.config import Settings  # noqa: E402
from fairdraw.errors import FairdrawError  # noqa: E402
from fairdraw.prize_draw import AuditReport, replay  # noqa: E402

log = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("report", type=pathlib.Path, help="Path to the report JSON file")
    parser.add_argument(
        "--server-seed",
        help="Public server seed (defaults to SERVER_SEED_PUBLIC)",
    )
    parser.add_argument(
        "--winners",
        type=int,
        help="Configured winner count (defaults to the number of published winners)",
    )
    parser.add_argument(
        "--block",
        type=int,
        help="Block height whose hash should equal the report's client seed",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args()


def check_block(settings: Settings, height: int, client_seed: str) -> bool:
    client = TronClient.from_settings(settings)
    block_hash = extract_block_hash(client.get_block_by_num(height))
    if block_hash is None:
        log.error(f"Block {height} has no hash in the provider response")
        return False
    if block_hash.lower() != client_seed.lower():
        log.error(f"Block {height} hash {block_hash} does not match client seed {client_seed}")
        return False
    log.info(f"Client seed matches the hash of block {height}")
    return True


def main() -> int:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )
    settings = Settings.from_env()

    try:
        published = AuditReport.from_dict(json.loads(args.report.read_text(encoding="utf-8")))
    except (OSError, ValueError) as exc:
        log.error(f"Cannot read report {args.report}: {exc}")
        return 2

    server_seed = args.server_seed or settings.server_seed_public
    recomputed = replay(published, server_seed, args.winners)

    ok = recomputed.winner_ids == published.winner_ids
    if ok:
        winners = ", ".join(recomputed.winner_ids) or "(none)"
        log.info(f"Winners reproduced: {winners}")
    else:
        log.error(
            f"Winner mismatch: published {published.winner_ids}, "
            f"recomputed {recomputed.winner_ids}"
        )

    if args.block is not None:
        try:
            ok = check_block(settings, args.block, published.client_seed) and ok
        except FairdrawError as exc:
            log.error(f"Block lookup failed: {exc}")
            ok = False

    return 0 if ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
