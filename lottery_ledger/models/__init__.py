# -*- coding: utf-8 -*-
# lottery_ledger/models/__init__.py
# =============================================================================
# Единая точка входа слоя моделей: импорт всех таблиц регистрирует их
# в Base.metadata (нужно Alembic и тестам).
# =============================================================================

from __future__ import annotations

from ..core.database_core import Base
from .lottery_models import REGISTRY_ROW_ID, SCHEMA, Lottery, LotteryTicket, Registry
from .transfers_models import (
    DIRECTION_BUYER_TO_POT,
    DIRECTION_POT_TO_WINNER,
    TRANSFER_DIRECTIONS,
    FundTransfer,
)

__all__ = [
    "Base",
    "SCHEMA",
    "REGISTRY_ROW_ID",
    "Registry",
    "Lottery",
    "LotteryTicket",
    "FundTransfer",
    "DIRECTION_BUYER_TO_POT",
    "DIRECTION_POT_TO_WINNER",
    "TRANSFER_DIRECTIONS",
]
