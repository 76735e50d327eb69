# -*- coding: utf-8 -*-
"""Initial migration for Lottery Ledger.

Назначение:
    • Создать схему DB_SCHEMA_CORE и таблицы registry, lotteries,
      lottery_tickets, fund_transfers со всеми CHECK/UNIQUE/индексами.

Канон/инварианты:
    • Таблицы создаются из Declarative Base, поэтому миграция и модели
      не расходятся.
    • checkfirst=True: повторный запуск не ломает БД.
"""

from __future__ import annotations

from alembic import op
from sqlalchemy import text

from lottery_ledger.core.config_core import get_settings
from lottery_ledger.core.logging_core import get_logger
from lottery_ledger.models import Base, FundTransfer, Lottery, LotteryTicket, Registry

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels = None
depends_on = None

logger = get_logger(__name__)
settings = get_settings()
SCHEMA = settings.DB_SCHEMA_CORE

# Порядок важен: внешние ключи ссылаются на lotteries.
_TABLES = [Registry.__table__, Lottery.__table__, LotteryTicket.__table__, FundTransfer.__table__]


def upgrade() -> None:
    """Создать схему и таблицы."""

    bind = op.get_bind()
    logger.info("Creating schema if missing", extra={"schema": SCHEMA})
    bind.execute(text(f'CREATE SCHEMA IF NOT EXISTS "{SCHEMA}"'))
    Base.metadata.create_all(bind=bind, tables=_TABLES, checkfirst=True)


def downgrade() -> None:
    """Удалить таблицы и схему."""

    bind = op.get_bind()
    Base.metadata.drop_all(bind=bind, tables=list(reversed(_TABLES)), checkfirst=True)
    logger.info("Dropping schema (cascade)", extra={"schema": SCHEMA})
    bind.execute(text(f'DROP SCHEMA IF EXISTS "{SCHEMA}" CASCADE'))
