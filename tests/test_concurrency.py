from __future__ import annotations

import asyncio

from sqlalchemy.ext.asyncio import async_sessionmaker

from lottery_ledger.services import (
    buy_ticket,
    create_lottery,
    get_lottery,
    get_registry,
    init_registry,
    list_tickets,
)


async def test_parallel_creates_get_distinct_gap_free_ids(file_engine):
    factory = async_sessionmaker(bind=file_engine, expire_on_commit=False, autoflush=False)
    async with factory() as s:
        await init_registry(s)

    async def _create(n: int) -> int:
        async with factory() as s:
            return (await create_lottery(s, f"authority{n}", 10 + n)).id

    ids = await asyncio.gather(*(_create(n) for n in range(8)))

    assert sorted(ids) == list(range(8))
    async with factory() as s:
        assert (await get_registry(s)).next_lottery_id == 8


async def test_parallel_buys_get_contiguous_indices(file_engine):
    factory = async_sessionmaker(bind=file_engine, expire_on_commit=False, autoflush=False)
    async with factory() as s:
        await init_registry(s)
        lottery = await create_lottery(s, "authority", 100)

    async def _buy(n: int) -> int:
        async with factory() as s:
            return (await buy_ticket(s, lottery.id, f"buyer{n}", 100)).ticket_index

    indices = await asyncio.gather(*(_buy(n) for n in range(10)))

    assert sorted(indices) == list(range(10))
    async with factory() as s:
        stored = await get_lottery(s, lottery.id)
        assert stored.ticket_count == 10
        assert stored.prize_pot == 1000
        tickets, _ = await list_tickets(s, lottery.id, limit=100)
        assert {t.buyer for t in tickets} == {f"buyer{n}" for n in range(10)}
