# -*- coding: utf-8 -*-
# lottery_ledger/services/__init__.py
# Публичная поверхность сервисов: пять изменяющих операций и чтения.

from .draw_service import DrawResult, pick_winner
from .lotteries_service import LotteryView, create_lottery, get_lottery, list_lotteries
from .randomness_service import ClockSlotRandomness, RandomnessSource, SystemRandomness
from .registry_service import RegistryView, allocate_lottery_id, get_registry, init_registry
from .settlement_service import ClaimResult, claim_prize
from .tickets_service import TicketView, buy_ticket, get_ticket, list_tickets
from .transfers_service import FundsTransfer, JournalFundsTransfer

__all__ = [
    "init_registry",
    "get_registry",
    "allocate_lottery_id",
    "create_lottery",
    "get_lottery",
    "list_lotteries",
    "buy_ticket",
    "get_ticket",
    "list_tickets",
    "pick_winner",
    "claim_prize",
    "RegistryView",
    "LotteryView",
    "TicketView",
    "DrawResult",
    "ClaimResult",
    "RandomnessSource",
    "ClockSlotRandomness",
    "SystemRandomness",
    "FundsTransfer",
    "JournalFundsTransfer",
]
