"""Alembic migration environment for the EarthLord schema."""

import os
import re
from logging.config import fileConfig

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import engine_from_config, pool

load_dotenv()

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

from earthlord_api.database import Base  # noqa: E402
from earthlord_api.models import (  # noqa: E402, F401
    InventoryItem,
    PlayerBuilding,
    Territory,
    TrackingSession,
)

target_metadata = Base.metadata


def to_sync_url(url: str) -> str:
    """Turn the app's asyncpg URL into one psycopg2 accepts.

    Drops the ``+asyncpg`` driver and maps ``ssl=`` back to ``sslmode=``.
    """
    url = re.sub(r"^postgres(ql)?(\+asyncpg)?://", "postgresql://", url)
    return re.sub(r"\bssl=(\w+)", r"sslmode=\1", url)


def get_url() -> str:
    """DATABASE_URL_SYNC if set, else a sync form of DATABASE_URL."""
    sync_url = os.getenv("DATABASE_URL_SYNC")
    if sync_url:
        return sync_url
    return to_sync_url(os.getenv("DATABASE_URL", "postgresql://localhost/earthlord"))


def run_migrations_offline() -> None:
    """Emit SQL for the migrations without connecting."""
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply the migrations over a short-lived connection."""
    configuration = config.get_section(config.config_ini_section) or {}
    configuration["sqlalchemy.url"] = get_url()
    connectable = engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
