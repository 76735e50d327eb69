# -*- coding: utf-8 -*-
# lottery_ledger/models/lottery_models.py
# =============================================================================
# Назначение кода:
#   SQLAlchemy-модели ядра лотерей: реестр (счётчик id), лотерея, билет.
#
# Канон/инварианты:
#   • Суммы - целые BIGINT в минимальных единицах валюты, без Decimal/float.
#   • Реестр - единственная строка с id=1; next_lottery_id только растёт.
#   • winner_ticket_index задан тогда и только тогда, когда state ≠ open;
#     state = settled ⇒ prize_pot = 0 (дублируется CHECK-ограничениями).
#   • Билет ссылается на лотерею только по внешнему ключу (lottery_id),
#     PK (lottery_id, ticket_index) исключает дубли номеров.
#
# Запреты:
#   • Никакой бизнес-логики; строки лотерей и билетов не удаляются.
# =============================================================================

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from ..core.config_core import get_settings
from ..core.database_core import Base
from ..core.system_locks import LOTTERY_STATES, STATE_OPEN
from ..core.utils_core import utc_now

_settings = get_settings()
SCHEMA = _settings.DB_SCHEMA_CORE

REGISTRY_ROW_ID = 1


class Registry(Base):
    """Глобальный реестр. Единственная строка хранит следующий id лотереи."""

    __tablename__ = "registry"
    __table_args__ = (
        CheckConstraint(f"id = {REGISTRY_ROW_ID}", name="singleton"),
        CheckConstraint("next_lottery_id >= 0", name="next_id_nonneg"),
        {"schema": SCHEMA},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    next_lottery_id: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, server_default=text("CURRENT_TIMESTAMP")
    )


class Lottery(Base):
    """
    Карточка лотереи: цена, счётчик билетов, состояние, победитель и банк.
    id выдаёт реестр, поэтому autoincrement выключен.
    """

    __tablename__ = "lotteries"
    __table_args__ = (
        CheckConstraint(f"state IN {LOTTERY_STATES}", name="state_enum"),
        CheckConstraint("ticket_price > 0", name="price_positive"),
        CheckConstraint("ticket_count >= 0", name="ticket_count_nonneg"),
        CheckConstraint("prize_pot >= 0", name="prize_pot_nonneg"),
        CheckConstraint(
            f"(state = '{STATE_OPEN}' AND winner_ticket_index IS NULL) OR "
            f"(state <> '{STATE_OPEN}' AND winner_ticket_index IS NOT NULL)",
            name="winner_iff_drawn",
        ),
        CheckConstraint(
            "winner_ticket_index IS NULL OR winner_ticket_index < ticket_count",
            name="winner_in_range",
        ),
        CheckConstraint("state <> 'settled' OR prize_pot = 0", name="settled_pot_empty"),
        Index("ix_lotteries_state", "state"),
        Index("ix_lotteries_authority", "authority", "id"),
        {"schema": SCHEMA},
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    authority: Mapped[str] = mapped_column(String(256), nullable=False)

    ticket_price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    ticket_count: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    state: Mapped[str] = mapped_column(String(16), nullable=False, default=STATE_OPEN)
    winner_ticket_index: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    prize_pot: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    drawn_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    settled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class LotteryTicket(Base):
    """
    Билет. ticket_index нумеруется с 0 подряд внутри лотереи;
    claimed = true только у выигравшего билета и только один раз.
    """

    __tablename__ = "lottery_tickets"
    __table_args__ = (
        CheckConstraint("ticket_index >= 0", name="index_nonneg"),
        Index("ix_lottery_tickets_buyer", "lottery_id", "buyer", "ticket_index"),
        {"schema": SCHEMA},
    )

    lottery_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey(f"{SCHEMA}.lotteries.id", ondelete="RESTRICT"),
        primary_key=True,
        autoincrement=False,
    )
    ticket_index: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    buyer: Mapped[str] = mapped_column(String(256), nullable=False)
    claimed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, server_default=text("CURRENT_TIMESTAMP")
    )
