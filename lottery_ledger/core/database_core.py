# -*- coding: utf-8 -*-
# lottery_ledger/core/database_core.py
# =============================================================================
# Назначение кода:
#   • Единая точка работы с БД (PostgreSQL + asyncpg + SQLAlchemy 2.0).
#   • AsyncEngine, async_sessionmaker, декларативная база моделей.
#   • Транзакционная граница операций: transaction() и @atomic_operation.
#   • Health-check db_ping().
#
# Канон / инварианты:
#   • Каждая изменяющая операция = ОДНА транзакция «всё или ничего».
#     Любое исключение внутри откатывает все изменения.
#   • Конфликты хранилища (UNIQUE, блокировки, сериализация) наружу выходят
#     только как StoreConflictError, повторов внутри нет.
#   • Сессии expire_on_commit=False, autoflush=False.
#
# Запреты:
#   • Никакой бизнес-логики лотерей.
#   • Никаких миграций/DDL здесь (см. migrations/).
# =============================================================================

from __future__ import annotations

import functools
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, AsyncIterator, Awaitable, Callable, Optional, TypeVar

from sqlalchemy import MetaData, text
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from lottery_ledger.core.config_core import get_settings
from lottery_ledger.core.errors_core import LedgerError, StoreConflictError
from lottery_ledger.core.logging_core import get_logger

logger = get_logger(__name__)
settings = get_settings()

T = TypeVar("T")

_NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Декларативная база всех моделей проекта."""

    metadata = MetaData(naming_convention=_NAMING_CONVENTION)


# -----------------------------------------------------------------------------
# Глобальные объекты: движок и фабрика сессий
# -----------------------------------------------------------------------------
_engine: Optional[AsyncEngine] = None
_SessionFactory: Optional[async_sessionmaker[AsyncSession]] = None


def _create_engine() -> AsyncEngine:
    """
    Новый AsyncEngine по актуальным настройкам.
    Для SQLite параметры пула не передаются (у него свой пул).
    """
    dsn = settings.database_url_asyncpg()
    logger.info("Creating async DB engine", extra={"dsn_set": bool(dsn)})
    if settings.is_sqlite:
        return create_async_engine(dsn, echo=settings.DEBUG)
    return create_async_engine(
        dsn,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        echo=settings.DEBUG,
    )


def _create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False,
        autoflush=False,
        class_=AsyncSession,
    )


def get_engine() -> AsyncEngine:
    global _engine, _SessionFactory

    if _engine is None:
        _engine = _create_engine()
        _SessionFactory = _create_session_factory(_engine)
        logger.info("DB engine lazily initialized")
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _SessionFactory

    if _SessionFactory is None:
        _SessionFactory = _create_session_factory(get_engine())
        logger.info("Session factory initialized")
    return _SessionFactory


# -----------------------------------------------------------------------------
# FastAPI-зависимость: выдача сессии
# -----------------------------------------------------------------------------
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Сессия на запрос. Коммитом управляют сервисы через transaction();
    здесь только открытие и закрытие.

        SessionDep = Annotated[AsyncSession, Depends(get_db)]
    """
    session = get_session_factory()()
    try:
        yield session
    finally:
        await session.close()


# -----------------------------------------------------------------------------
# Транзакционная граница
# -----------------------------------------------------------------------------
@asynccontextmanager
async def transaction(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Одна атомарная транзакция: commit при успехе, rollback при любом исключении.

    Если сессия уже в транзакции (например, после чтения вне сервиса),
    она продолжается и фиксируется этим же блоком.
    """
    if session.in_transaction():
        try:
            yield session
        except BaseException:
            await session.rollback()
            raise
        else:
            await session.commit()
        return

    async with session.begin():
        yield session


def atomic_operation(name: str) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Декоратор изменяющей операции сервиса.

    • Первый аргумент (или db=...) обязан быть AsyncSession.
    • Тело выполняется внутри transaction().
    • LedgerError пишется в лог WARNING с кодом и пробрасывается как есть.
    • IntegrityError/OperationalError хранилища → StoreConflictError.
    """

    def decorator(fn: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(fn)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            db: AsyncSession = kwargs["db"] if "db" in kwargs else args[0]
            try:
                async with transaction(db):
                    return await fn(*args, **kwargs)
            except LedgerError as exc:
                logger.warning(
                    "%s rejected: %s",
                    name,
                    exc.code,
                    extra={"details": exc.details, "error": exc.code},
                )
                raise
            except (IntegrityError, OperationalError) as exc:
                logger.warning(
                    "%s rejected: store_conflict",
                    name,
                    extra={"error": "store_conflict", "db_error": type(exc.orig).__name__},
                )
                raise StoreConflictError(details={"operation": name}) from exc

        return wrapper

    return decorator


# -----------------------------------------------------------------------------
# Health-check
# -----------------------------------------------------------------------------
async def db_ping(engine: Optional[AsyncEngine] = None) -> bool:
    """True, если SELECT 1 прошёл; False, если БД не отвечает."""
    engine = engine or get_engine()
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except (OperationalError, DBAPIError, OSError) as exc:
        logger.error("DB ping failed: DB is not reachable", extra={"error": str(exc)})
        return False


__all__ = [
    "AsyncSession",
    "AsyncEngine",
    "Base",
    "get_engine",
    "get_session_factory",
    "get_db",
    "db_ping",
    "transaction",
    "atomic_operation",
]
