from __future__ import annotations

import pytest
from sqlalchemy import update

from lottery_ledger.core.errors_core import (
    AlreadyClaimedError,
    InsufficientFundsError,
    InvalidDestinationError,
    LotteryNotDrawnError,
    NotWinningTicketError,
    TicketNotFoundError,
    UnauthorizedError,
)
from lottery_ledger.core.system_locks import STATE_DRAWN, STATE_SETTLED, LockViolation
from lottery_ledger.crud import TransfersCRUD
from lottery_ledger.models import DIRECTION_POT_TO_WINNER, FundTransfer, Lottery
from lottery_ledger.services import (
    JournalFundsTransfer,
    claim_prize,
    get_lottery,
    get_ticket,
    pick_winner,
)


class BrokenTransfer:
    def __init__(self):
        self.calls = 0

    async def transfer(self, db, *, lottery_id, to_identity, amount, idempotency_key):
        self.calls += 1
        raise InvalidDestinationError(details={"lottery_id": lottery_id})


@pytest.fixture
async def drawn(make_lottery, sell, session):
    lottery = await make_lottery(ticket_price=100)
    await sell(lottery)
    await pick_winner(session, lottery.id, "authority", randomness_seed=7)
    return lottery


async def test_winner_is_paid_exactly_once(drawn, session):
    result = await claim_prize(session, drawn.id, 1, "bob")

    assert result.amount == 300
    assert result.ticket.claimed is True
    assert result.lottery.state == STATE_SETTLED
    assert result.lottery.prize_pot == 0
    assert result.lottery.settled_at is not None

    with pytest.raises(AlreadyClaimedError):
        await claim_prize(session, drawn.id, 1, "bob")

    rows = await TransfersCRUD(session).list_for_lottery(drawn.id)
    payouts = [r for r in rows if r.direction == DIRECTION_POT_TO_WINNER]
    assert len(payouts) == 1
    assert payouts[0].destination == "bob"
    assert payouts[0].amount == 300
    assert payouts[0].id == result.transfer_id


async def test_losing_ticket(drawn, session):
    with pytest.raises(NotWinningTicketError):
        await claim_prize(session, drawn.id, 0, "alice")
    assert (await get_lottery(session, drawn.id)).state == STATE_DRAWN


async def test_losing_ticket_after_settlement(drawn, session):
    await claim_prize(session, drawn.id, 1, "bob")
    with pytest.raises(NotWinningTicketError):
        await claim_prize(session, drawn.id, 2, "carol")


async def test_only_buyer_can_claim(drawn, session):
    with pytest.raises(UnauthorizedError):
        await claim_prize(session, drawn.id, 1, "alice")
    assert (await get_ticket(session, drawn.id, 1)).claimed is False


async def test_claim_before_draw(make_lottery, sell, session):
    lottery = await make_lottery()
    await sell(lottery)
    with pytest.raises(LotteryNotDrawnError):
        await claim_prize(session, lottery.id, 1, "bob")


async def test_ticket_out_of_range(drawn, session):
    with pytest.raises(TicketNotFoundError):
        await claim_prize(session, drawn.id, 3, "bob")


async def test_failed_transfer_leaves_ticket_claimable(drawn, session):
    broken = BrokenTransfer()
    with pytest.raises(InvalidDestinationError) as info:
        await claim_prize(session, drawn.id, 1, "bob", transfer=broken)
    assert info.value.retryable is True
    assert broken.calls == 1

    assert (await get_ticket(session, drawn.id, 1)).claimed is False
    lottery = await get_lottery(session, drawn.id)
    assert lottery.state == STATE_DRAWN
    assert lottery.prize_pot == 300

    result = await claim_prize(session, drawn.id, 1, "bob")
    assert result.amount == 300


async def test_journal_refuses_to_overdraw_pot(drawn, session):
    await session.execute(
        update(FundTransfer).where(FundTransfer.lottery_id == drawn.id).values(amount=50),
    )
    await session.commit()

    with pytest.raises(InsufficientFundsError):
        await claim_prize(session, drawn.id, 1, "bob", transfer=JournalFundsTransfer())
    assert (await get_ticket(session, drawn.id, 1)).claimed is False


async def test_pot_mismatch_is_a_lock_violation(drawn, session):
    await session.execute(update(Lottery).where(Lottery.id == drawn.id).values(prize_pot=299))
    await session.commit()

    with pytest.raises(LockViolation):
        await claim_prize(session, drawn.id, 1, "bob")
    assert (await get_ticket(session, drawn.id, 1)).claimed is False
    assert (await get_lottery(session, drawn.id)).state == STATE_DRAWN


async def test_ticket_index_beyond_bigint(drawn, session):
    with pytest.raises(TicketNotFoundError):
        await claim_prize(session, drawn.id, 2**63, "bob")
    assert (await get_lottery(session, drawn.id)).state == STATE_DRAWN
