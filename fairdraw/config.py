"""Runtime configuration read from the environment (and an optional ``.env``)."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .db.utils import resolve_sqlite_url
from .errors import ConfigError

logger = logging.getLogger(__name__)

# Project root directory (repo root)
ROOT_DIR = Path(__file__).resolve().parents[1]

DEMO_SERVER_SEED = "demo-server-seed-please-change"


def _env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip()


def _env_int(name: str, default: int, *, minimum: int = 1) -> int:
    raw = _env_str(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"Environment variable '{name}' must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ConfigError(f"Environment variable '{name}' must be >= {minimum}, got {value}")
    return value


def _env_float(name: str, default: float) -> float:
    raw = _env_str(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigError(f"Environment variable '{name}' must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ConfigError(f"Environment variable '{name}' must be positive, got {value}")
    return value


@dataclass(frozen=True)
class Settings:
    """Settings shared by the entropy source, the lifecycle and the database layer.

    Attributes
    ----------
    server_seed_public : str
        Publicly known HMAC key used to score every entry row.
    trx_api_url : Optional[str]
        Base URL of the TRON full-node HTTP API used as the entropy provider.
    target_increment : int
        Number of blocks to look ahead of the observed head before reading a hash.
    poll_interval : float
        Seconds to wait between head polls.
    max_poll_attempts : int
        Poll budget; exhausting it raises :class:`~fairdraw.errors.EntropyTimeoutError`.
    request_timeout : float
        Per-request HTTP timeout in seconds.
    default_winners : int
        Winner count used when a giveaway is created without one.
    draw_retry_seconds : float
        Delay before a failed scheduled draw is attempted again.
    db_url : str
        SQLAlchemy database URL.
    """

    server_seed_public: str = DEMO_SERVER_SEED
    trx_api_url: Optional[str] = None
    target_increment: int = 2
    poll_interval: float = 1.5
    max_poll_attempts: int = 40
    request_timeout: float = 15.0
    default_winners: int = 1
    draw_retry_seconds: float = 60.0
    db_url: str = "sqlite:///./dev.db"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables, loading ``.env`` first.

        Raises
        ------
        ConfigError
            If a numeric variable is malformed or out of range.
        """
        load_dotenv()
        server_seed = _env_str("SERVER_SEED_PUBLIC", DEMO_SERVER_SEED)
        if server_seed == DEMO_SERVER_SEED:
            logger.warning(
                "SERVER_SEED_PUBLIC is not set; using the demo seed. Set it before running real giveaways."
            )
        api_url = _env_str("TRX_API_URL")
        return cls(
            server_seed_public=server_seed,
            trx_api_url=api_url.rstrip("/") if api_url else None,
            target_increment=_env_int("TRX_TARGET_INCREMENT", 2),
            poll_interval=_env_float("TRX_POLL_INTERVAL", 1.5),
            max_poll_attempts=_env_int("TRX_MAX_ATTEMPTS", 40),
            request_timeout=_env_float("TRX_REQUEST_TIMEOUT", 15.0),
            default_winners=_env_int("DEFAULT_WINNERS", 1),
            draw_retry_seconds=_env_float("DRAW_RETRY_SECONDS", 60.0),
            db_url=resolve_sqlite_url(
                _env_str("DB_URL", "sqlite:///./dev.db"), ROOT_DIR
            ),
        )

    def require_entropy_url(self) -> str:
        """Return the entropy provider URL or raise :class:`ConfigError`."""
        if not self.trx_api_url:
            raise ConfigError("Environment variable 'TRX_API_URL' is not set")
        return self.trx_api_url


__all__ = ["DEMO_SERVER_SEED", "ROOT_DIR", "Settings"]
