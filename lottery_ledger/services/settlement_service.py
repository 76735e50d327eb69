# -*- coding: utf-8 -*-
# lottery_ledger/services/settlement_service.py
# =============================================================================
# Назначение кода:
#   Выплата приза владельцу выигравшего билета. Ровно один раз.
#
# Канон/инварианты:
#   • Перевод и бухгалтерия (claimed, prize_pot = 0, state = settled)
#     фиксируются ОДНОЙ транзакцией. Ошибка перевода откатывает всё,
#     claimed не ставится, законный победитель может повторить запрос.
#   • Сумма выплаты = prize_pot = ticket_price × ticket_count
#     (расхождение → LockViolation).
#   • После выплаты повтор на выигравший билет → AlreadyClaimed;
#     на любой другой → NotWinningTicket.
#   • Второй перевод по лотерее невозможен и на уровне БД:
#     UNIQUE ключ claim:<lottery_id> в журнале.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from lottery_ledger.core.database_core import atomic_operation
from lottery_ledger.core.errors_core import (
    AlreadyClaimedError,
    NotWinningTicketError,
    TicketNotFoundError,
    UnauthorizedError,
)
from lottery_ledger.core.logging_core import get_logger, set_request_context
from lottery_ledger.core.system_locks import STATE_SETTLED, assert_pot_consistent, assert_transition
from lottery_ledger.core.utils_core import utc_now
from lottery_ledger.crud import LotteriesCRUD
from lottery_ledger.services.lotteries_service import LotteryView, ensure_drawn, load_lottery_for_update
from lottery_ledger.services.tickets_service import TicketView
from lottery_ledger.services.transfers_service import FundsTransfer, claim_key, default_funds_transfer

logger = get_logger(__name__)


@dataclass(frozen=True)
class ClaimResult:
    lottery: LotteryView
    ticket: TicketView
    amount: int
    transfer_id: int


@atomic_operation("claim_prize")
async def claim_prize(
    db: AsyncSession,
    lottery_id: int,
    ticket_index: int,
    claimant: str,
    transfer: Optional[FundsTransfer] = None,
) -> ClaimResult:
    """
    Проверки по порядку: лотерея (LotteryNotFound) → розыгрыш состоялся
    (LotteryNotDrawn) → билет (TicketNotFound) → билет выигравший
    (NotWinningTicket) → claimant владелец (Unauthorized) → ещё не выплачен
    (AlreadyClaimed). Затем перевод и фиксация settled.
    """
    set_request_context(identity=claimant)
    lottery = await load_lottery_for_update(db, lottery_id)
    # settled пропускаем дальше: повтор на выигравший билет даёт AlreadyClaimed.
    ensure_drawn(lottery, allow_settled=True)

    ticket = await LotteriesCRUD(db).lock_ticket(lottery.id, ticket_index)
    if ticket is None:
        raise TicketNotFoundError(details={"lottery_id": lottery.id, "ticket_index": ticket_index})
    if ticket.ticket_index != lottery.winner_ticket_index:
        raise NotWinningTicketError(details={"lottery_id": lottery.id, "ticket_index": ticket_index})
    if ticket.buyer != claimant:
        raise UnauthorizedError(
            "Only the ticket buyer can claim the prize.",
            details={"lottery_id": lottery.id, "ticket_index": ticket_index},
        )
    if ticket.claimed:
        raise AlreadyClaimedError(details={"lottery_id": lottery.id})

    assert_transition(lottery.state, STATE_SETTLED)
    assert_pot_consistent(
        ticket_price=int(lottery.ticket_price),
        ticket_count=int(lottery.ticket_count),
        prize_pot=int(lottery.prize_pot),
    )

    amount = int(lottery.prize_pot)
    executor = transfer or default_funds_transfer()
    receipt = await executor.transfer(
        db,
        lottery_id=lottery.id,
        to_identity=claimant,
        amount=amount,
        idempotency_key=claim_key(lottery.id),
    )

    ticket.claimed = True
    lottery.prize_pot = 0
    lottery.state = STATE_SETTLED
    lottery.settled_at = utc_now()
    await db.flush()

    logger.info(
        "Prize claimed: lottery=%s index=%s claimant=%s amount=%s",
        lottery.id,
        ticket.ticket_index,
        claimant,
        amount,
    )
    return ClaimResult(
        lottery=LotteryView.from_model(lottery),
        ticket=TicketView.from_model(ticket),
        amount=amount,
        transfer_id=receipt.transfer_id,
    )


__all__ = ["ClaimResult", "claim_prize"]
