from __future__ import annotations

import pytest

from lottery_ledger.core.errors_core import (
    InvalidSeedError,
    LotteryNotFoundError,
    LotteryNotOpenError,
    NoTicketsError,
    UnauthorizedError,
)
from lottery_ledger.core.system_locks import STATE_DRAWN, STATE_OPEN
from lottery_ledger.services import get_lottery, pick_winner


class FixedSeed:
    def __init__(self, seed):
        self.seed = seed
        self.calls = []

    def seed_for(self, lottery_id: int) -> int:
        self.calls.append(lottery_id)
        return self.seed


async def test_seed_seven_over_three_tickets_picks_index_one(make_lottery, sell, session):
    lottery = await make_lottery()
    await sell(lottery)

    result = await pick_winner(session, lottery.id, "authority", randomness_seed=7)

    assert result.winner_ticket_index == 1
    assert result.seed == 7
    assert result.seed_source == "explicit"
    assert result.lottery.state == STATE_DRAWN
    assert result.lottery.drawn_at is not None

    stored = await get_lottery(session, lottery.id)
    assert stored.state == STATE_DRAWN
    assert stored.winner_ticket_index == 1


@pytest.mark.parametrize("seed, expected", [(0, 0), (3, 0), (5, 2), (2**64 - 1, (2**64 - 1) % 3)])
async def test_winner_is_seed_mod_ticket_count(make_lottery, sell, session, seed, expected):
    lottery = await make_lottery()
    await sell(lottery)
    result = await pick_winner(session, lottery.id, "authority", randomness_seed=seed)
    assert result.winner_ticket_index == expected


async def test_seed_from_injected_source(make_lottery, sell, session):
    lottery = await make_lottery()
    await sell(lottery)
    source = FixedSeed(10)

    result = await pick_winner(session, lottery.id, "authority", source=source)

    assert source.calls == [lottery.id]
    assert result.winner_ticket_index == 1
    assert result.seed_source == "FixedSeed"


async def test_default_source_is_used_without_seed(make_lottery, sell, session):
    lottery = await make_lottery()
    await sell(lottery)
    result = await pick_winner(session, lottery.id, "authority")
    assert 0 <= result.winner_ticket_index < 3
    assert result.seed_source == "ClockSlotRandomness"


async def test_no_tickets_keeps_lottery_open(make_lottery, session):
    lottery = await make_lottery()
    with pytest.raises(NoTicketsError):
        await pick_winner(session, lottery.id, "authority", randomness_seed=7)
    stored = await get_lottery(session, lottery.id)
    assert stored.state == STATE_OPEN
    assert stored.winner_ticket_index is None


async def test_only_authority_can_draw(make_lottery, sell, session):
    lottery = await make_lottery()
    await sell(lottery)
    with pytest.raises(UnauthorizedError):
        await pick_winner(session, lottery.id, "alice", randomness_seed=7)
    assert (await get_lottery(session, lottery.id)).state == STATE_OPEN


async def test_draw_happens_once(make_lottery, sell, session):
    lottery = await make_lottery()
    await sell(lottery)
    await pick_winner(session, lottery.id, "authority", randomness_seed=7)

    with pytest.raises(LotteryNotOpenError):
        await pick_winner(session, lottery.id, "authority", randomness_seed=8)
    assert (await get_lottery(session, lottery.id)).winner_ticket_index == 1


@pytest.mark.parametrize("seed", [-1, 1.5, "7", True])
async def test_invalid_seed(make_lottery, sell, session, seed):
    lottery = await make_lottery()
    await sell(lottery)
    with pytest.raises(InvalidSeedError):
        await pick_winner(session, lottery.id, "authority", randomness_seed=seed)
    assert (await get_lottery(session, lottery.id)).state == STATE_OPEN


async def test_negative_seed_from_source(make_lottery, sell, session):
    lottery = await make_lottery()
    await sell(lottery)
    with pytest.raises(InvalidSeedError):
        await pick_winner(session, lottery.id, "authority", source=FixedSeed(-5))


async def test_unknown_lottery(session, registry):
    with pytest.raises(LotteryNotFoundError):
        await pick_winner(session, 7, "authority", randomness_seed=1)


async def test_lottery_id_beyond_bigint(session, registry):
    with pytest.raises(LotteryNotFoundError):
        await pick_winner(session, 2**63, "authority", randomness_seed=1)
