# -*- coding: utf-8 -*-
# lottery_ledger/services/draw_service.py
# =============================================================================
# Назначение кода:
#   Розыгрыш: выбор выигрышного индекса билета и перевод лотереи в drawn.
#
# Канон/инварианты:
#   • Розыгрыш только один раз: после него state = drawn, повтор →
#     LotteryNotOpen.
#   • Розыгрыш запускает только authority лотереи.
#   • winner_ticket_index = seed mod ticket_count. Множество билетов
#     не загружается: читается только ticket_count.
#   • Без билетов → NoTickets, состояние остаётся open.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from lottery_ledger.core.database_core import atomic_operation
from lottery_ledger.core.errors_core import InvalidSeedError, NoTicketsError, UnauthorizedError
from lottery_ledger.core.logging_core import get_logger, set_request_context
from lottery_ledger.core.system_locks import STATE_DRAWN, assert_transition
from lottery_ledger.core.utils_core import utc_now
from lottery_ledger.services.lotteries_service import LotteryView, ensure_open, load_lottery_for_update
from lottery_ledger.services.randomness_service import RandomnessSource, get_randomness_source

logger = get_logger(__name__)


@dataclass(frozen=True)
class DrawResult:
    lottery: LotteryView
    winner_ticket_index: int
    seed: int
    seed_source: str


def _validate_seed(seed: object) -> int:
    if isinstance(seed, bool) or not isinstance(seed, int) or seed < 0:
        raise InvalidSeedError(details={"seed": repr(seed)})
    return seed


@atomic_operation("pick_winner")
async def pick_winner(
    db: AsyncSession,
    lottery_id: int,
    caller: str,
    randomness_seed: Optional[int] = None,
    source: Optional[RandomnessSource] = None,
) -> DrawResult:
    """
    1) лотерея под FOR UPDATE; 2) caller == authority; 3) state = open;
    4) ticket_count > 0; 5) seed (явный или от источника);
    6) winner_ticket_index, state = drawn, drawn_at.
    """
    set_request_context(identity=caller)
    lottery = await load_lottery_for_update(db, lottery_id)

    if caller != lottery.authority:
        raise UnauthorizedError(
            "Only the lottery authority can pick the winner.",
            details={"lottery_id": lottery.id},
        )
    ensure_open(lottery)
    if lottery.ticket_count <= 0:
        raise NoTicketsError(details={"lottery_id": lottery.id})

    if randomness_seed is not None:
        seed = _validate_seed(randomness_seed)
        seed_source = "explicit"
    else:
        provider = source or get_randomness_source()
        seed = _validate_seed(provider.seed_for(lottery.id))
        seed_source = type(provider).__name__

    winner = seed % int(lottery.ticket_count)

    assert_transition(lottery.state, STATE_DRAWN)
    lottery.winner_ticket_index = winner
    lottery.state = STATE_DRAWN
    lottery.drawn_at = utc_now()
    await db.flush()

    logger.info(
        "Winner picked: lottery=%s winner_index=%s tickets=%s source=%s",
        lottery.id,
        winner,
        lottery.ticket_count,
        seed_source,
    )
    return DrawResult(
        lottery=LotteryView.from_model(lottery),
        winner_ticket_index=winner,
        seed=seed,
        seed_source=seed_source,
    )


__all__ = ["DrawResult", "pick_winner"]
