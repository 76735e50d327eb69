# -*- coding: utf-8 -*-
# lottery_ledger/services/tickets_service.py
# =============================================================================
# Назначение кода:
#   Продажа и чтение билетов.
#
# Канон/инварианты:
#   • Номера билетов лотереи - ровно 0..ticket_count-1 без дыр и повторов:
#     индекс берётся из ticket_count под FOR UPDATE строки лотереи.
#   • Оплата строго равна цене билета; любое расхождение → InvalidPayment
#     без изменений в БД.
#   • Продажа только в состоянии open.
#   • Переполнение ticket_count/prize_pot → Overflow, продажи по этой
#     лотерее прекращаются, проданные билеты остаются в силе.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from lottery_ledger.core.config_core import get_settings
from lottery_ledger.core.database_core import atomic_operation
from lottery_ledger.core.errors_core import (
    InvalidPaymentError,
    LedgerOverflowError,
    LotteryNotFoundError,
    TicketNotFoundError,
)
from lottery_ledger.core.logging_core import get_logger, set_request_context
from lottery_ledger.core.utils_core import CounterOverflow, checked_add
from lottery_ledger.crud import LotteriesCRUD
from lottery_ledger.models import LotteryTicket
from lottery_ledger.services.lotteries_service import (
    ensure_identity,
    ensure_open,
    load_lottery_for_update,
)
from lottery_ledger.services.transfers_service import record_purchase

logger = get_logger(__name__)
settings = get_settings()


@dataclass(frozen=True)
class TicketView:
    lottery_id: int
    ticket_index: int
    buyer: str
    claimed: bool
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, row: LotteryTicket) -> "TicketView":
        return cls(
            lottery_id=int(row.lottery_id),
            ticket_index=int(row.ticket_index),
            buyer=row.buyer,
            claimed=bool(row.claimed),
            created_at=row.created_at,
        )


@atomic_operation("buy_ticket")
async def buy_ticket(db: AsyncSession, lottery_id: int, buyer: str, payment: int) -> TicketView:
    """
    Покупка билета:
      1) лотерея под FOR UPDATE (нет → LotteryNotFound);
      2) buyer - корректная идентичность (иначе InvalidIdentity);
      3) state = open (иначе LotteryNotOpen);
      4) payment == ticket_price (иначе InvalidPayment);
      5) ticket_index := ticket_count, билет, ticket_count += 1,
         prize_pot += payment, запись buyer → pot в журнал.
    """
    lottery = await load_lottery_for_update(db, lottery_id)
    ensure_identity(buyer, field="buyer")
    set_request_context(identity=buyer)
    ensure_open(lottery)

    if isinstance(payment, bool) or not isinstance(payment, int) or payment != lottery.ticket_price:
        raise InvalidPaymentError(
            details={
                "lottery_id": lottery.id,
                "payment": repr(payment),
                "ticket_price": lottery.ticket_price,
            },
        )

    ticket_index = int(lottery.ticket_count)
    try:
        new_count = checked_add(ticket_index, 1)
        new_pot = checked_add(int(lottery.prize_pot), payment)
    except CounterOverflow as exc:
        raise LedgerOverflowError(
            "Lottery ticket counter or prize pot is exhausted.",
            details={"lottery_id": lottery.id},
        ) from exc

    ticket = await LotteriesCRUD(db).add_ticket(
        lottery_id=lottery.id,
        ticket_index=ticket_index,
        buyer=buyer,
    )
    lottery.ticket_count = new_count
    lottery.prize_pot = new_pot
    await record_purchase(
        db,
        lottery_id=lottery.id,
        ticket_index=ticket_index,
        buyer=buyer,
        amount=payment,
    )
    await db.flush()

    logger.info("Ticket bought: lottery=%s index=%s buyer=%s", lottery.id, ticket_index, buyer)
    return TicketView.from_model(ticket)


async def get_ticket(db: AsyncSession, lottery_id: int, ticket_index: int) -> TicketView:
    ticket = await LotteriesCRUD(db).get_ticket(lottery_id, ticket_index)
    if ticket is None:
        raise TicketNotFoundError(details={"lottery_id": lottery_id, "ticket_index": ticket_index})
    return TicketView.from_model(ticket)


async def list_tickets(
    db: AsyncSession,
    lottery_id: int,
    *,
    limit: int = 100,
    after_index: Optional[int] = None,
    buyer: Optional[str] = None,
) -> Tuple[List[TicketView], Optional[int]]:
    """Билеты лотереи по возрастанию индекса; фильтр по покупателю опционален."""
    crud = LotteriesCRUD(db)
    if await crud.get_lottery(lottery_id) is None:
        raise LotteryNotFoundError(details={"lottery_id": lottery_id})
    limit = max(1, min(int(limit), settings.LIST_PAGE_LIMIT_MAX))
    rows = await crud.list_tickets_cursor(
        lottery_id=lottery_id,
        limit=limit + 1,
        after_index=after_index,
        buyer=buyer,
    )
    page = [TicketView.from_model(r) for r in rows[:limit]]
    next_after = page[-1].ticket_index if len(rows) > limit else None
    return page, next_after


__all__ = ["TicketView", "buy_ticket", "get_ticket", "list_tickets"]
