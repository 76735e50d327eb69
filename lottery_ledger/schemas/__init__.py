from .common_schemas import CursorOut, ErrorOut, HealthOut
from .lotteries_schemas import (
    BuyTicketIn,
    ClaimIn,
    ClaimOut,
    CreateLotteryIn,
    DrawIn,
    DrawOut,
    LotteryListOut,
    LotteryOut,
    RegistryOut,
    TicketListOut,
    TicketOut,
)

__all__ = [
    "CursorOut",
    "ErrorOut",
    "HealthOut",
    "BuyTicketIn",
    "ClaimIn",
    "ClaimOut",
    "CreateLotteryIn",
    "DrawIn",
    "DrawOut",
    "LotteryListOut",
    "LotteryOut",
    "RegistryOut",
    "TicketListOut",
    "TicketOut",
]
