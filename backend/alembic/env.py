"""
Alembic Migration Environment
===============================

What:  Configures Alembic to work with the async SQLAlchemy setup.
How:   Builds an async engine from plantscan.config.settings (same URL and
       TLS arguments as the application) and runs migrations through
       connection.run_sync().
Who:   Called by `alembic` CLI commands (upgrade, downgrade, revision).

The PlantList table is normally seeded by the nursery's own tooling. The
initial revision creates it for fresh deployments and local development;
run `alembic stamp 001` against an existing database instead.
"""

import asyncio
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.ext.asyncio import async_engine_from_config
from alembic import context

from plantscan.config import settings
from plantscan.database import Base, build_connect_args

# Import all models so Alembic can detect them for --autogenerate
from plantscan.models.plant import PlantRecord  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# Database URL comes from settings, not from alembic.ini
config.set_main_option("sqlalchemy.url", settings.database_url)


def run_migrations_offline() -> None:
    """Emit SQL to stdout without connecting to the database."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection):
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        # SQLite cannot ALTER most constraints in place
        render_as_batch=settings.is_sqlite,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """
    Run migrations in 'online' mode with an async engine.

    NullPool: a migration run opens exactly one connection and exits.
    """
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
        connect_args=build_connect_args(settings),
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
