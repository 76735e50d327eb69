from __future__ import annotations

import os

# Настройки читаются один раз при импорте пакета: окружение задаём до него.
os.environ["ENV"] = "dev"
os.environ["DEBUG"] = "false"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["RANDOMNESS_SOURCE"] = "clock"
os.environ["API_PREFIX"] = "/api"

from typing import AsyncIterator, Awaitable, Callable, List  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from lottery_ledger import create_app  # noqa: E402
from lottery_ledger.deps import get_db  # noqa: E402
from lottery_ledger.models import SCHEMA, Base  # noqa: E402
from lottery_ledger.services import (  # noqa: E402
    LotteryView,
    TicketView,
    buy_ticket,
    create_lottery,
    init_registry,
)

AUTHORITY = "authority"
BUYERS = ("alice", "bob", "carol")

_TRANSLATE = {"schema_translate_map": {SCHEMA: None}}


async def _create_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        execution_options=_TRANSLATE,
    )
    await _create_schema(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with session_factory() as s:
        yield s


@pytest.fixture
async def registry(session: AsyncSession):
    return await init_registry(session)


@pytest.fixture
def make_lottery(session: AsyncSession, registry) -> Callable[..., Awaitable[LotteryView]]:
    async def _make(authority: str = AUTHORITY, ticket_price: int = 100) -> LotteryView:
        return await create_lottery(session, authority, ticket_price)

    return _make


@pytest.fixture
def sell(session: AsyncSession) -> Callable[..., Awaitable[List[TicketView]]]:
    async def _sell(lottery: LotteryView, buyers=BUYERS) -> List[TicketView]:
        return [await buy_ticket(session, lottery.id, b, lottery.ticket_price) for b in buyers]

    return _sell


# -----------------------------------------------------------------------------
# Файловая SQLite с BEGIN IMMEDIATE: писатели честно ждут друг друга,
# как под FOR UPDATE в PostgreSQL.
# -----------------------------------------------------------------------------
@pytest.fixture
async def file_engine(tmp_path) -> AsyncIterator[AsyncEngine]:
    eng = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}",
        connect_args={"timeout": 30},
        execution_options=_TRANSLATE,
    )

    @event.listens_for(eng.sync_engine, "connect")
    def _no_implicit_begin(dbapi_connection, _record):
        dbapi_connection.isolation_level = None

    @event.listens_for(eng.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    await _create_schema(eng)
    yield eng
    await eng.dispose()


# -----------------------------------------------------------------------------
# HTTP
# -----------------------------------------------------------------------------
@pytest.fixture
async def client(engine: AsyncEngine, session_factory) -> AsyncIterator[httpx.AsyncClient]:
    app = create_app()
    app.state.engine = engine

    async def _override_get_db() -> AsyncIterator[AsyncSession]:
        async with session_factory() as s:
            yield s

    app.dependency_overrides[get_db] = _override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
