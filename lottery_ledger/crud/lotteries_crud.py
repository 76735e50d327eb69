# -*- coding: utf-8 -*-
# lottery_ledger/crud/lotteries_crud.py
# =============================================================================
# Назначение:
#   • Доступ к таблицам registry / lotteries / lottery_tickets без бизнес-правил.
#   • Блокирующие чтения (SELECT ... FOR UPDATE) для изменяющих операций.
#   • Курсорные выборки: лотереи по id ASC, билеты по ticket_index ASC.
#
# Канон/инварианты:
#   • Проверки состояний, цен и прав выполняют сервисы, не CRUD.
#   • Блокирующие чтения всегда перечитывают строку из БД (populate_existing),
#     чтобы не работать с устаревшей копией из identity map.
#   • OFFSET не используется, только keyset-пагинация.
#   • Ключ вне 0..COUNTER_MAX в запрос не попадает: такой строки нет,
#     ответ None (или пустая страница).
#
# Запреты:
#   • CRUD не коммитит: транзакцией управляет database_core.transaction().
# =============================================================================
from __future__ import annotations

from typing import Optional

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from lottery_ledger.core.system_locks import STATE_OPEN
from lottery_ledger.core.utils_core import COUNTER_MAX, is_storable_key
from lottery_ledger.models import REGISTRY_ROW_ID, Lottery, LotteryTicket, Registry


class LotteriesCRUD:
    """CRUD-обёртка для реестра, лотерей и билетов."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # ------------------------------------------------------------------ registry
    async def get_registry(self) -> Registry | None:
        return await self.session.get(Registry, REGISTRY_ROW_ID)

    async def lock_registry(self) -> Registry | None:
        """Строка реестра под FOR UPDATE: параллельные выдачи id выстраиваются в очередь."""
        stmt: Select[tuple[Registry]] = (
            select(Registry)
            .where(Registry.id == REGISTRY_ROW_ID)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return await self.session.scalar(stmt)

    async def create_registry(self) -> Registry:
        """Вставка строки реестра; повторная вставка упадёт на PK (IntegrityError)."""
        registry = Registry(id=REGISTRY_ROW_ID, next_lottery_id=0)
        self.session.add(registry)
        await self.session.flush()
        return registry

    # ----------------------------------------------------------------- lotteries
    async def get_lottery(self, lottery_id: int) -> Lottery | None:
        if not is_storable_key(lottery_id):
            return None
        return await self.session.get(Lottery, int(lottery_id))

    async def lock_lottery(self, lottery_id: int) -> Lottery | None:
        if not is_storable_key(lottery_id):
            return None
        stmt: Select[tuple[Lottery]] = (
            select(Lottery)
            .where(Lottery.id == int(lottery_id))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return await self.session.scalar(stmt)

    async def add_lottery(self, *, lottery_id: int, authority: str, ticket_price: int) -> Lottery:
        lottery = Lottery(
            id=int(lottery_id),
            authority=authority,
            ticket_price=int(ticket_price),
            ticket_count=0,
            state=STATE_OPEN,
            winner_ticket_index=None,
            prize_pot=0,
        )
        self.session.add(lottery)
        await self.session.flush()
        return lottery

    async def list_lotteries_cursor(
        self,
        *,
        limit: int,
        after_id: Optional[int] = None,
        state: Optional[str] = None,
        authority: Optional[str] = None,
    ) -> list[Lottery]:
        """Лотереи по возрастанию id, начиная строго после after_id."""
        if after_id is not None and after_id >= COUNTER_MAX:
            return []
        stmt: Select[tuple[Lottery]] = select(Lottery).order_by(Lottery.id.asc()).limit(limit)
        if after_id is not None:
            stmt = stmt.where(Lottery.id > int(after_id))
        if state is not None:
            stmt = stmt.where(Lottery.state == state)
        if authority is not None:
            stmt = stmt.where(Lottery.authority == authority)
        rows = await self.session.scalars(stmt)
        return list(rows)

    # ------------------------------------------------------------------- tickets
    async def get_ticket(self, lottery_id: int, ticket_index: int) -> LotteryTicket | None:
        if not (is_storable_key(lottery_id) and is_storable_key(ticket_index)):
            return None
        return await self.session.get(LotteryTicket, (int(lottery_id), int(ticket_index)))

    async def lock_ticket(self, lottery_id: int, ticket_index: int) -> LotteryTicket | None:
        if not (is_storable_key(lottery_id) and is_storable_key(ticket_index)):
            return None
        stmt: Select[tuple[LotteryTicket]] = (
            select(LotteryTicket)
            .where(
                LotteryTicket.lottery_id == int(lottery_id),
                LotteryTicket.ticket_index == int(ticket_index),
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return await self.session.scalar(stmt)

    async def add_ticket(self, *, lottery_id: int, ticket_index: int, buyer: str) -> LotteryTicket:
        """Вставка билета; занятый индекс упадёт на PK (IntegrityError)."""
        ticket = LotteryTicket(
            lottery_id=int(lottery_id),
            ticket_index=int(ticket_index),
            buyer=buyer,
            claimed=False,
        )
        self.session.add(ticket)
        await self.session.flush()
        return ticket

    async def list_tickets_cursor(
        self,
        *,
        lottery_id: int,
        limit: int,
        after_index: Optional[int] = None,
        buyer: Optional[str] = None,
    ) -> list[LotteryTicket]:
        if not is_storable_key(lottery_id) or (after_index is not None and after_index >= COUNTER_MAX):
            return []
        stmt: Select[tuple[LotteryTicket]] = (
            select(LotteryTicket)
            .where(LotteryTicket.lottery_id == int(lottery_id))
            .order_by(LotteryTicket.ticket_index.asc())
            .limit(limit)
        )
        if after_index is not None:
            stmt = stmt.where(LotteryTicket.ticket_index > int(after_index))
        if buyer is not None:
            stmt = stmt.where(LotteryTicket.buyer == buyer)
        rows = await self.session.scalars(stmt)
        return list(rows)


__all__ = ["LotteriesCRUD"]
