# -*- coding: utf-8 -*-
# lottery_ledger/services/registry_service.py
# =============================================================================
# Назначение кода:
#   Реестр лотерей и выдача идентификаторов:
#   • init_registry - однократное создание реестра (next_lottery_id = 0);
#   • allocate_lottery_id - выдача следующего id под блокировкой строки;
#   • get_registry - чтение состояния реестра.
#
# Канон/инварианты:
#   • id выдаются строго по возрастанию без пропусков: allocate_lottery_id
#     работает ТОЛЬКО внутри транзакции create_lottery, поэтому id без
#     записи лотереи не существует (откат возвращает счётчик).
#   • Повторная инициализация - AlreadyInitialized, а не «тихий» успех.
#
# Запреты:
#   • Никаких in-process блокировок: очередь выстраивает FOR UPDATE в БД.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from lottery_ledger.core.database_core import atomic_operation
from lottery_ledger.core.errors_core import (
    AlreadyInitializedError,
    LedgerOverflowError,
    RegistryNotInitializedError,
)
from lottery_ledger.core.logging_core import get_logger
from lottery_ledger.core.utils_core import CounterOverflow, checked_add
from lottery_ledger.crud import LotteriesCRUD
from lottery_ledger.models import Registry

logger = get_logger(__name__)


@dataclass(frozen=True)
class RegistryView:
    next_lottery_id: int
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, row: Registry) -> "RegistryView":
        return cls(next_lottery_id=int(row.next_lottery_id), created_at=row.created_at)


@atomic_operation("init_registry")
async def init_registry(db: AsyncSession) -> RegistryView:
    """
    Создаёт реестр. Параллельный инициализатор, проскочивший проверку,
    упрётся в PK и тоже получит AlreadyInitialized.
    """
    crud = LotteriesCRUD(db)
    if await crud.get_registry() is not None:
        raise AlreadyInitializedError()
    try:
        row = await crud.create_registry()
    except IntegrityError as exc:
        raise AlreadyInitializedError() from exc

    logger.info("Registry initialized: next_lottery_id=%s", row.next_lottery_id)
    return RegistryView.from_model(row)


async def get_registry(db: AsyncSession) -> RegistryView:
    row = await LotteriesCRUD(db).get_registry()
    if row is None:
        raise RegistryNotInitializedError()
    return RegistryView.from_model(row)


async def allocate_lottery_id(db: AsyncSession) -> int:
    """
    Возвращает текущий next_lottery_id и увеличивает счётчик на 1.

    Вызывается только внутри уже открытой транзакции (create_lottery):
    отдельного commit здесь нет.
    """
    registry = await LotteriesCRUD(db).lock_registry()
    if registry is None:
        raise RegistryNotInitializedError()

    issued = int(registry.next_lottery_id)
    try:
        registry.next_lottery_id = checked_add(issued, 1)
    except CounterOverflow as exc:
        raise LedgerOverflowError(
            "Lottery id space is exhausted.",
            details={"next_lottery_id": issued},
        ) from exc
    await db.flush()
    return issued


__all__ = ["RegistryView", "init_registry", "get_registry", "allocate_lottery_id"]
