"""Alembic environment for the giveaway tables.

The target database is ``alembic -x db_url=<url>`` when given, otherwise
``DB_URL`` (``.env`` included) exactly as the application resolves it. Only
tables declared on :data:`fairdraw.models.Base.metadata` are compared during
autogenerate, so the giveaway store can share a database with other schemas.
"""

from __future__ import annotations

import logging
from logging.config import fileConfig

from alembic import context
from sqlalchemy.engine import make_url

from fairdraw.config import ROOT_DIR
from fairdraw.db.engine import DEFAULT_SQLITE_URL, make_engine
from fairdraw.db.utils import resolve_sqlite_url
from fairdraw.models import Base

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

log = logging.getLogger("alembic.env")

target_metadata = Base.metadata
GIVEAWAY_TABLES = frozenset(target_metadata.tables)


def target_url() -> str:
    override = context.get_x_argument(as_dictionary=True).get("db_url")
    if override:
        return resolve_sqlite_url(override, ROOT_DIR)
    return DEFAULT_SQLITE_URL


def include_object(obj, name, type_, reflected, compare_to) -> bool:
    # Reflected tables that are not ours belong to someone else.
    if type_ == "table":
        return name in GIVEAWAY_TABLES
    return True


def _configure(**options) -> None:
    context.configure(
        target_metadata=target_metadata,
        include_object=include_object,
        compare_type=True,
        **options,
    )
    with context.begin_transaction():
        context.run_migrations()


def migrate_offline(url: str) -> None:
    """Write the migration SQL for ``url``'s dialect instead of executing it."""
    _configure(url=url, literal_binds=True, dialect_opts={"paramstyle": "named"})


def migrate_online(url: str) -> None:
    engine = make_engine(database_url=url)
    try:
        with engine.connect() as connection:
            # SQLite cannot ALTER constraints in place.
            _configure(
                connection=connection,
                render_as_batch=connection.dialect.name == "sqlite",
            )
    finally:
        engine.dispose()


url = target_url()
log.info(f"Migrating giveaway tables at {make_url(url).render_as_string(hide_password=True)}")
if context.is_offline_mode():
    migrate_offline(url)
else:
    migrate_online(url)
