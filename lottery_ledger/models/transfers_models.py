# -*- coding: utf-8 -*-
# lottery_ledger/models/transfers_models.py
# =============================================================================
# Назначение кода:
#   Журнал денежных переводов лотерей: покупатель → банк лотереи при покупке,
#   банк лотереи → победитель при выплате.
#
# Канон/инварианты:
#   • Одна строка = одно движение средств; строки не изменяются и не удаляются.
#   • idempotency_key UNIQUE: "buy:<lottery_id>:<ticket_index>" и
#     "claim:<lottery_id>". Второй выплаты по лотерее не может быть даже
#     в обход проверок жизненного цикла.
# =============================================================================

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database_core import Base
from ..core.utils_core import utc_now
from .lottery_models import SCHEMA

DIRECTION_BUYER_TO_POT = "buyer_to_pot"
DIRECTION_POT_TO_WINNER = "pot_to_winner"
TRANSFER_DIRECTIONS = (DIRECTION_BUYER_TO_POT, DIRECTION_POT_TO_WINNER)


class FundTransfer(Base):
    __tablename__ = "fund_transfers"
    __table_args__ = (
        UniqueConstraint("idempotency_key"),
        CheckConstraint(f"direction IN {TRANSFER_DIRECTIONS}", name="direction_enum"),
        CheckConstraint("amount > 0", name="amount_positive"),
        Index("ix_fund_transfers_lottery", "lottery_id", "id"),
        {"schema": SCHEMA},
    )

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    lottery_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey(f"{SCHEMA}.lotteries.id", ondelete="RESTRICT"),
        nullable=False,
    )
    direction: Mapped[str] = mapped_column(String(16), nullable=False)
    # Для buyer_to_pot источник - покупатель, для pot_to_winner - "lottery:<id>".
    source: Mapped[str] = mapped_column(String(256), nullable=False)
    destination: Mapped[str] = mapped_column(String(256), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    idempotency_key: Mapped[str] = mapped_column(String(128), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, server_default=text("CURRENT_TIMESTAMP")
    )
