"""Alembic migration environment.

Migrations run against the database named by the application settings
(DATABASE_URL), through the async engine.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from schoolhub.core.config import get_settings
from schoolhub.core.database import Base

# Register every table on Base.metadata
from schoolhub.modules.audit.models import AuditLog  # noqa: F401
from schoolhub.modules.classrooms.models import Classroom  # noqa: F401
from schoolhub.modules.counters.models import SequenceCounter  # noqa: F401
from schoolhub.modules.schools.models import School  # noqa: F401
from schoolhub.modules.students.models import Student  # noqa: F401
from schoolhub.modules.tokens.models import LongSession  # noqa: F401
from schoolhub.modules.transfer_requests.models import TransferRequest  # noqa: F401
from schoolhub.modules.users.models import User  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Emit the migration SQL without connecting."""
    context.configure(
        url=get_settings().database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """Run migrations in 'online' mode with the async engine."""
    configuration = config.get_section(config.config_ini_section) or {}
    configuration["sqlalchemy.url"] = get_settings().database_url

    connectable = async_engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
