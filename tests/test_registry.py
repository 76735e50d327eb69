from __future__ import annotations

import pytest
from sqlalchemy import update

from lottery_ledger.core.errors_core import (
    AlreadyInitializedError,
    InvalidIdentityError,
    InvalidTicketPriceError,
    LedgerOverflowError,
    RegistryNotInitializedError,
)
from lottery_ledger.core.system_locks import STATE_OPEN
from lottery_ledger.core.utils_core import COUNTER_MAX
from lottery_ledger.models import Registry
from lottery_ledger.services import create_lottery, get_registry, init_registry, list_lotteries


async def test_init_registry_starts_at_zero(session):
    view = await init_registry(session)
    assert view.next_lottery_id == 0
    assert (await get_registry(session)).next_lottery_id == 0


async def test_second_init_is_rejected(session, registry):
    with pytest.raises(AlreadyInitializedError) as info:
        await init_registry(session)
    assert info.value.category == "state_violation"
    assert (await get_registry(session)).next_lottery_id == 0


async def test_create_without_registry(session):
    with pytest.raises(RegistryNotInitializedError):
        await create_lottery(session, "authority", 100)
    with pytest.raises(RegistryNotInitializedError):
        await get_registry(session)


async def test_lottery_ids_are_sequential_without_gaps(make_lottery, session):
    ids = [(await make_lottery()).id for _ in range(5)]
    assert ids == [0, 1, 2, 3, 4]
    assert (await get_registry(session)).next_lottery_id == 5


async def test_new_lottery_is_open_and_empty(make_lottery):
    lottery = await make_lottery(ticket_price=250)
    assert lottery.state == STATE_OPEN
    assert lottery.ticket_count == 0
    assert lottery.prize_pot == 0
    assert lottery.winner_ticket_index is None
    assert lottery.ticket_price == 250


@pytest.mark.parametrize("price", [0, -1, True, 1.5, "100"])
async def test_bad_ticket_price_does_not_consume_an_id(session, registry, price):
    with pytest.raises(InvalidTicketPriceError):
        await create_lottery(session, "authority", price)
    assert (await get_registry(session)).next_lottery_id == 0
    assert (await create_lottery(session, "authority", 1)).id == 0


@pytest.mark.parametrize("authority", ["", "has space", "x" * 65, None])
async def test_malformed_authority(session, registry, authority):
    with pytest.raises(InvalidIdentityError):
        await create_lottery(session, authority, 100)


async def test_id_space_exhaustion(session, registry):
    await session.execute(update(Registry).values(next_lottery_id=COUNTER_MAX))
    await session.commit()

    with pytest.raises(LedgerOverflowError) as info:
        await create_lottery(session, "authority", 100)
    assert info.value.code == "overflow"
    assert (await get_registry(session)).next_lottery_id == COUNTER_MAX
    items, _ = await list_lotteries(session)
    assert items == []


async def test_list_lotteries_pages_by_id(make_lottery, session):
    for _ in range(5):
        await make_lottery()
    first, after = await list_lotteries(session, limit=2)
    assert [x.id for x in first] == [0, 1]
    second, after2 = await list_lotteries(session, limit=2, after_id=after)
    assert [x.id for x in second] == [2, 3]
    third, after3 = await list_lotteries(session, limit=2, after_id=after2)
    assert [x.id for x in third] == [4]
    assert after3 is None


async def test_listing_after_the_last_storable_id_is_empty(make_lottery, session):
    await make_lottery()
    items, after = await list_lotteries(session, after_id=COUNTER_MAX + 5)
    assert items == [] and after is None
