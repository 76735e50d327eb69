# -*- coding: utf-8 -*-
# lottery_ledger/services/lotteries_service.py
# =============================================================================
# Назначение кода:
#   Жизненный цикл лотереи: создание, чтение, листинг и общие проверки
#   состояния, которые используют сервисы билетов, розыгрыша и выплаты.
#
# Канон/инварианты:
#   • Состояния только вперёд: open → drawn → settled (system_locks).
#   • Нужно open, а лотерея drawn/settled → LotteryNotOpen.
#     Нужно drawn, а лотерея open → LotteryNotDrawn.
#   • Лотерея создаётся в той же транзакции, в которой выдан её id.
#
# Запреты:
#   • Лотереи не удаляются: это аудит-запись.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from lottery_ledger.core.config_core import get_settings
from lottery_ledger.core.database_core import atomic_operation
from lottery_ledger.core.errors_core import (
    InvalidIdentityError,
    InvalidTicketPriceError,
    LotteryNotDrawnError,
    LotteryNotFoundError,
    LotteryNotOpenError,
)
from lottery_ledger.core.logging_core import get_logger, set_request_context
from lottery_ledger.core.system_locks import LOTTERY_STATES, STATE_DRAWN, STATE_OPEN, STATE_SETTLED
from lottery_ledger.core.utils_core import COUNTER_MAX, is_valid_identity
from lottery_ledger.crud import LotteriesCRUD
from lottery_ledger.models import Lottery
from lottery_ledger.services.registry_service import allocate_lottery_id

logger = get_logger(__name__)
settings = get_settings()


@dataclass(frozen=True)
class LotteryView:
    """Снимок лотереи после commit (ORM-объект наружу не отдаём)."""

    id: int
    authority: str
    ticket_price: int
    ticket_count: int
    state: str
    winner_ticket_index: Optional[int]
    prize_pot: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    drawn_at: Optional[datetime] = None
    settled_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, row: Lottery) -> "LotteryView":
        return cls(
            id=int(row.id),
            authority=row.authority,
            ticket_price=int(row.ticket_price),
            ticket_count=int(row.ticket_count),
            state=row.state,
            winner_ticket_index=None if row.winner_ticket_index is None else int(row.winner_ticket_index),
            prize_pot=int(row.prize_pot),
            created_at=row.created_at,
            updated_at=row.updated_at,
            drawn_at=row.drawn_at,
            settled_at=row.settled_at,
        )


# -----------------------------------------------------------------------------
# Общие проверки (используются другими сервисами)
# -----------------------------------------------------------------------------
def ensure_identity(value: Any, *, field: str) -> str:
    if not is_valid_identity(value):
        raise InvalidIdentityError(
            f"Malformed {field} identity.",
            details={"field": field},
        )
    return value


async def load_lottery_for_update(db: AsyncSession, lottery_id: int) -> Lottery:
    """Лотерея под FOR UPDATE; нет строки → LotteryNotFound."""
    lottery = await LotteriesCRUD(db).lock_lottery(lottery_id)
    if lottery is None:
        raise LotteryNotFoundError(details={"lottery_id": lottery_id})
    set_request_context(lottery_id=lottery.id)
    return lottery


def ensure_open(lottery: Lottery) -> None:
    if lottery.state != STATE_OPEN:
        raise LotteryNotOpenError(details={"lottery_id": lottery.id, "state": lottery.state})


def ensure_drawn(lottery: Lottery, *, allow_settled: bool = False) -> None:
    allowed = (STATE_DRAWN, STATE_SETTLED) if allow_settled else (STATE_DRAWN,)
    if lottery.state not in allowed:
        raise LotteryNotDrawnError(details={"lottery_id": lottery.id, "state": lottery.state})


# -----------------------------------------------------------------------------
# Операции
# -----------------------------------------------------------------------------
@atomic_operation("create_lottery")
async def create_lottery(db: AsyncSession, authority: str, ticket_price: int) -> LotteryView:
    """
    Создаёт лотерею в состоянии open с ticket_count = 0 и prize_pot = 0.

    Ошибки: InvalidTicketPrice (цена ≤ 0 или не целое), InvalidIdentity,
    RegistryNotInitialized, Overflow (исчерпано пространство id).
    """
    if isinstance(ticket_price, bool) or not isinstance(ticket_price, int) or ticket_price <= 0:
        raise InvalidTicketPriceError(details={"ticket_price": repr(ticket_price)})
    if ticket_price > COUNTER_MAX:
        raise InvalidTicketPriceError(
            "Ticket price exceeds the storable maximum.",
            details={"ticket_price": str(ticket_price)},
        )
    ensure_identity(authority, field="authority")
    set_request_context(identity=authority)

    lottery_id = await allocate_lottery_id(db)
    lottery = await LotteriesCRUD(db).add_lottery(
        lottery_id=lottery_id,
        authority=authority,
        ticket_price=ticket_price,
    )
    set_request_context(lottery_id=lottery_id)

    logger.info(
        "Lottery created: id=%s authority=%s ticket_price=%s",
        lottery.id,
        lottery.authority,
        lottery.ticket_price,
    )
    return LotteryView.from_model(lottery)


async def get_lottery(db: AsyncSession, lottery_id: int) -> LotteryView:
    lottery = await LotteriesCRUD(db).get_lottery(lottery_id)
    if lottery is None:
        raise LotteryNotFoundError(details={"lottery_id": lottery_id})
    return LotteryView.from_model(lottery)


async def list_lotteries(
    db: AsyncSession,
    *,
    limit: int = 50,
    after_id: Optional[int] = None,
    state: Optional[str] = None,
    authority: Optional[str] = None,
) -> Tuple[List[LotteryView], Optional[int]]:
    """
    Курсорный листинг по возрастанию id.
    Возвращает (страница, after_id для следующей страницы или None).
    """
    limit = max(1, min(int(limit), settings.LIST_PAGE_LIMIT_MAX))
    if state is not None and state not in LOTTERY_STATES:
        return [], None
    rows = await LotteriesCRUD(db).list_lotteries_cursor(
        limit=limit + 1,
        after_id=after_id,
        state=state,
        authority=authority,
    )
    page = [LotteryView.from_model(r) for r in rows[:limit]]
    next_after = page[-1].id if len(rows) > limit else None
    return page, next_after


__all__ = [
    "LotteryView",
    "create_lottery",
    "get_lottery",
    "list_lotteries",
    "ensure_identity",
    "ensure_open",
    "ensure_drawn",
    "load_lottery_for_update",
]
