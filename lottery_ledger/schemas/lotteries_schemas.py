# -*- coding: utf-8 -*-
# lottery_ledger/schemas/lotteries_schemas.py
# =============================================================================
# Назначение кода:
#   DTO HTTP-слоя лотерей: тела запросов и ответы. Без бизнес-логики:
#   диапазоны здесь только отсекают мусор, доменные проверки делают сервисы.
# =============================================================================

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from lottery_ledger.core.utils_core import COUNTER_MAX
from lottery_ledger.schemas.common_schemas import CursorOut


class _Out(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# -----------------------------------------------------------------------------
# Запросы
# -----------------------------------------------------------------------------
class CreateLotteryIn(BaseModel):
    # Положительность цены проверяет сервис (InvalidTicketPrice).
    ticket_price: int = Field(..., le=COUNTER_MAX, description="Цена билета в минимальных единицах")


class BuyTicketIn(BaseModel):
    payment: int = Field(..., description="Оплата, должна точно совпадать с ценой билета")


class DrawIn(BaseModel):
    seed: Optional[int] = Field(
        None,
        description="Явный seed (тесты/оракул). Без него используется настроенный источник.",
    )


class ClaimIn(BaseModel):
    ticket_index: int = Field(..., ge=0, le=COUNTER_MAX, description="Индекс выигравшего билета")


# -----------------------------------------------------------------------------
# Ответы
# -----------------------------------------------------------------------------
class RegistryOut(_Out):
    next_lottery_id: int
    created_at: Optional[datetime] = None


class LotteryOut(_Out):
    id: int
    authority: str
    ticket_price: int
    ticket_count: int
    state: str
    winner_ticket_index: Optional[int] = None
    prize_pot: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    drawn_at: Optional[datetime] = None
    settled_at: Optional[datetime] = None


class LotteryListOut(BaseModel):
    items: List[LotteryOut]
    next_cursor: CursorOut
    etag: str


class TicketOut(_Out):
    lottery_id: int
    ticket_index: int
    buyer: str
    claimed: bool
    created_at: Optional[datetime] = None


class TicketListOut(BaseModel):
    items: List[TicketOut]
    next_cursor: CursorOut
    etag: str


class DrawOut(BaseModel):
    lottery: LotteryOut
    winner_ticket_index: int
    seed: int
    seed_source: str


class ClaimOut(BaseModel):
    lottery: LotteryOut
    ticket: TicketOut
    amount: int
    transfer_id: int
