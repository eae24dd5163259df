"""Alembic environment for the budget schema (sync driver only)"""

import os
from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool
from alembic import context

os.environ.setdefault("ALEMBIC_MODE", "1")

from app.infrastructure.db.database import Base  # noqa: E402
from app.infrastructure.db import models  # noqa: E402,F401
from app.config import settings  # noqa: E402


def _normalize_sync_url(url: str) -> str:
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    if "+asyncpg" in url:
        url = url.replace("+asyncpg", "+psycopg2")
    if "+aiosqlite" in url:
        url = url.replace("+aiosqlite", "")
    return url


config = context.config
config.set_main_option("sqlalchemy.url", _normalize_sync_url(settings.DATABASE_URL))

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_offline(url: str) -> None:
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=url.startswith("sqlite"),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_online() -> None:
    engine = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=connection.dialect.name == "sqlite",
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_offline(config.get_main_option("sqlalchemy.url"))
else:
    run_online()
