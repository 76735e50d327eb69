# -*- coding: utf-8 -*-
# lottery_ledger/crud/transfers_crud.py
# =============================================================================
# Назначение:
#   • Запись и чтение журнала переводов fund_transfers.
#
# Канон/инварианты:
#   • Журнал только дописывается. Повтор idempotency_key падает на UNIQUE.
# =============================================================================
from __future__ import annotations

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from lottery_ledger.models import FundTransfer


class TransfersCRUD:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add_transfer(
        self,
        *,
        lottery_id: int,
        direction: str,
        source: str,
        destination: str,
        amount: int,
        idempotency_key: str,
    ) -> FundTransfer:
        row = FundTransfer(
            lottery_id=int(lottery_id),
            direction=direction,
            source=source,
            destination=destination,
            amount=int(amount),
            idempotency_key=idempotency_key,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def sum_amount(self, *, lottery_id: int, direction: str) -> int:
        """Сумма переводов лотереи в заданном направлении (0, если строк нет)."""
        stmt = select(func.coalesce(func.sum(FundTransfer.amount), 0)).where(
            FundTransfer.lottery_id == int(lottery_id),
            FundTransfer.direction == direction,
        )
        total = await self.session.scalar(stmt)
        return int(total or 0)

    async def list_for_lottery(self, lottery_id: int) -> list[FundTransfer]:
        stmt: Select[tuple[FundTransfer]] = (
            select(FundTransfer)
            .where(FundTransfer.lottery_id == int(lottery_id))
            .order_by(FundTransfer.id.asc())
        )
        rows = await self.session.scalars(stmt)
        return list(rows)


__all__ = ["TransfersCRUD"]
