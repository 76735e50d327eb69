# -*- coding: utf-8 -*-
"""Alembic environment for Lottery Ledger (async).

Назначение:
    • Настроить Alembic для async SQLAlchemy (PostgreSQL + asyncpg).
    • Подтянуть Declarative Base и все модели проекта.
    • Запустить миграции в оффлайн/онлайн-режиме.

Канон/инварианты:
    • Только DDL, никаких изменений данных лотерей.
    • DSN и схема берутся из config_core (единственный источник истины).
"""

from __future__ import annotations

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import async_engine_from_config

from lottery_ledger.core.config_core import get_settings
from lottery_ledger.models import Base

config = context.config
if config.config_file_name:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

settings = get_settings()

db_url = settings.database_url_asyncpg()
config.set_main_option("sqlalchemy.url", db_url)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Миграции без подключения к БД (вывод SQL)."""

    context.configure(
        url=db_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        include_schemas=True,
        compare_type=True,
        compare_server_default=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
        include_schemas=True,
    )
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    """Async engine и запуск миграций."""

    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section) or {},
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
