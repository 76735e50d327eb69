# -*- coding: utf-8 -*-
# lottery_ledger/routes/lotteries_routes.py
# =============================================================================
# Назначение кода:
#   HTTP-ручки реестра и лотерей: инициализация реестра, создание лотереи,
#   покупка билета, розыгрыш, выплата приза и чтения с курсорами.
#
# Канон/инварианты:
#   • Ручки тонкие: вся логика и все проверки в services/*.
#   • Изменяющие ручки требуют X-Identity (deps.require_identity).
#   • Доменные ошибки превращает в JSON errors_core.setup_exception_handlers.
#   • Списки курсорные, с ETag.
# =============================================================================

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from lottery_ledger.core.logging_core import get_logger
from lottery_ledger.deps import (
    IdentityContext,
    PageParams,
    encode_cursor,
    get_db,
    make_etag,
    pagination_params,
    require_identity,
)
from lottery_ledger.schemas import (
    BuyTicketIn,
    ClaimIn,
    ClaimOut,
    CreateLotteryIn,
    CursorOut,
    DrawIn,
    DrawOut,
    LotteryListOut,
    LotteryOut,
    RegistryOut,
    TicketListOut,
    TicketOut,
)
from lottery_ledger.services import (
    buy_ticket,
    claim_prize,
    create_lottery,
    get_lottery,
    get_registry,
    get_ticket,
    init_registry,
    list_lotteries,
    list_tickets,
    pick_winner,
)

logger = get_logger(__name__)
router = APIRouter(tags=["lotteries"])


# -----------------------------------------------------------------------------
# Реестр
# -----------------------------------------------------------------------------
@router.post("/registry", response_model=RegistryOut, status_code=status.HTTP_201_CREATED, summary="Инициализировать реестр")
async def init_registry_route(db: AsyncSession = Depends(get_db)) -> RegistryOut:
    view = await init_registry(db)
    return RegistryOut.model_validate(view)


@router.get("/registry", response_model=RegistryOut, summary="Состояние реестра")
async def get_registry_route(db: AsyncSession = Depends(get_db)) -> RegistryOut:
    return RegistryOut.model_validate(await get_registry(db))


# -----------------------------------------------------------------------------
# Лотереи
# -----------------------------------------------------------------------------
@router.post("/lotteries", response_model=LotteryOut, status_code=status.HTTP_201_CREATED, summary="Создать лотерею")
async def create_lottery_route(
    payload: CreateLotteryIn,
    who: IdentityContext = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
) -> LotteryOut:
    view = await create_lottery(db, who.identity, payload.ticket_price)
    return LotteryOut.model_validate(view)


@router.get("/lotteries", response_model=LotteryListOut, summary="Лотереи (курсорно)")
async def list_lotteries_route(
    page: PageParams = Depends(pagination_params),
    state: Optional[str] = Query(None, pattern="^(open|drawn|settled)$"),
    authority: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> LotteryListOut:
    items, next_after = await list_lotteries(
        db,
        limit=page.limit,
        after_id=page.after,
        state=state,
        authority=authority,
    )
    etag = make_etag({
        "kind": "lotteries",
        "count": len(items),
        "last": items[-1].id if items else None,
        "states": [i.state for i in items],
    })
    return LotteryListOut(
        items=[LotteryOut.model_validate(i) for i in items],
        next_cursor=CursorOut(value=encode_cursor(next_after) if next_after is not None else None),
        etag=etag,
    )


@router.get("/lotteries/{lottery_id}", response_model=LotteryOut, summary="Карточка лотереи")
async def get_lottery_route(lottery_id: int, db: AsyncSession = Depends(get_db)) -> LotteryOut:
    return LotteryOut.model_validate(await get_lottery(db, lottery_id))


# -----------------------------------------------------------------------------
# Билеты
# -----------------------------------------------------------------------------
@router.post(
    "/lotteries/{lottery_id}/tickets",
    response_model=TicketOut,
    status_code=status.HTTP_201_CREATED,
    summary="Купить билет",
)
async def buy_ticket_route(
    lottery_id: int,
    payload: BuyTicketIn,
    who: IdentityContext = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
) -> TicketOut:
    view = await buy_ticket(db, lottery_id, who.identity, payload.payment)
    return TicketOut.model_validate(view)


@router.get("/lotteries/{lottery_id}/tickets", response_model=TicketListOut, summary="Билеты лотереи (курсорно)")
async def list_tickets_route(
    lottery_id: int,
    page: PageParams = Depends(pagination_params),
    buyer: Optional[str] = Query(None, description="Фильтр по покупателю"),
    db: AsyncSession = Depends(get_db),
) -> TicketListOut:
    items, next_after = await list_tickets(
        db,
        lottery_id,
        limit=page.limit,
        after_index=page.after,
        buyer=buyer,
    )
    etag = make_etag({
        "kind": "tickets",
        "lottery_id": lottery_id,
        "count": len(items),
        "last": items[-1].ticket_index if items else None,
        "claimed": [i.ticket_index for i in items if i.claimed],
    })
    return TicketListOut(
        items=[TicketOut.model_validate(i) for i in items],
        next_cursor=CursorOut(value=encode_cursor(next_after) if next_after is not None else None),
        etag=etag,
    )


@router.get("/lotteries/{lottery_id}/tickets/{ticket_index}", response_model=TicketOut, summary="Билет")
async def get_ticket_route(lottery_id: int, ticket_index: int, db: AsyncSession = Depends(get_db)) -> TicketOut:
    return TicketOut.model_validate(await get_ticket(db, lottery_id, ticket_index))


# -----------------------------------------------------------------------------
# Розыгрыш и выплата
# -----------------------------------------------------------------------------
@router.post("/lotteries/{lottery_id}/draw", response_model=DrawOut, summary="Разыграть победителя")
async def draw_route(
    lottery_id: int,
    payload: Optional[DrawIn] = Body(None),
    who: IdentityContext = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
) -> DrawOut:
    seed = payload.seed if payload is not None else None
    result = await pick_winner(db, lottery_id, who.identity, randomness_seed=seed)
    return DrawOut(
        lottery=LotteryOut.model_validate(result.lottery),
        winner_ticket_index=result.winner_ticket_index,
        seed=result.seed,
        seed_source=result.seed_source,
    )


@router.post("/lotteries/{lottery_id}/claim", response_model=ClaimOut, summary="Забрать приз")
async def claim_route(
    lottery_id: int,
    payload: ClaimIn,
    who: IdentityContext = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
) -> ClaimOut:
    result = await claim_prize(db, lottery_id, payload.ticket_index, who.identity)
    return ClaimOut(
        lottery=LotteryOut.model_validate(result.lottery),
        ticket=TicketOut.model_validate(result.ticket),
        amount=result.amount,
        transfer_id=result.transfer_id,
    )
