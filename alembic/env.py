# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024-2026 The Truth Prevails Contributors

"""Alembic environment: runs migrations against DATABASE_URL with the async driver."""

import asyncio

from alembic import context
from sqlalchemy.ext.asyncio import create_async_engine

from truthprevails.shared.config import settings
from truthprevails.shared.database import models  # noqa: F401
from truthprevails.shared.database.connection import Base

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    context.configure(
        url=settings.async_database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_sync(connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = create_async_engine(settings.async_database_url)
    async with engine.connect() as connection:
        await connection.run_sync(_run_sync)
    await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
