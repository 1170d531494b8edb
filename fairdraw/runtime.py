"""Wiring of settings, database, entropy source, scheduler and lifecycle."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import Engine

from .blockchain.entropy import BlockHashEntropySource
from .config import Settings
from .db.engine import get_sessionmaker, make_engine
from .models import Base
from .notify import DrawNotifier
from .repository import GiveawayRepository
from .scheduler import DrawScheduler
from .workflows import GiveawayLifecycle

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    settings: Settings
    engine: Engine
    repository: GiveawayRepository
    scheduler: DrawScheduler
    lifecycle: GiveawayLifecycle

    def start(self) -> int:
        """Start the scheduler and re-arm triggers of giveaways not yet drawn."""
        self.scheduler.start()
        return self.lifecycle.rearm_pending()

    def stop(self, wait: bool = True) -> None:
        self.scheduler.shutdown(wait=wait)
        self.engine.dispose()


def build_runtime(
    settings: Optional[Settings] = None,
    *,
    notifier: Optional[DrawNotifier] = None,
    create_tables: bool = False,
    require_entropy: bool = True,
) -> Runtime:
    """Assemble the draw subsystem from ``settings`` (environment by default).

    Raises
    ------
    ConfigError
        If ``TRX_API_URL`` is not set. Pass ``require_entropy=False`` to build a
        runtime that only manages giveaways (seeding, inspection); its draws
        and previews raise :class:`~fairdraw.errors.ConfigError`.
    """
    settings = settings or Settings.from_env()
    entropy_source = None
    if require_entropy or settings.trx_api_url:
        entropy_source = BlockHashEntropySource.from_settings(settings)
    else:
        logger.warning("TRX_API_URL is not set; this runtime cannot draw giveaways")

    engine = make_engine(database_url=settings.db_url)
    if create_tables:
        Base.metadata.create_all(engine)
    repository = GiveawayRepository(get_sessionmaker(engine))

    scheduler = DrawScheduler()
    lifecycle = GiveawayLifecycle(
        repository,
        entropy_source,
        settings=settings,
        scheduler=scheduler,
        notifier=notifier,
    )
    return Runtime(
        settings=settings,
        engine=engine,
        repository=repository,
        scheduler=scheduler,
        lifecycle=lifecycle,
    )


__all__ = ["Runtime", "build_runtime"]
