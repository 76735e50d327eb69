# -*- coding: utf-8 -*-
# lottery_ledger/services/transfers_service.py
# =============================================================================
# Назначение кода:
#   Граница перевода средств (Funds Transfer) и её эталонный адаптер:
#   • FundsTransfer - протокол внешнего исполнителя переводов;
#   • JournalFundsTransfer - адаптер, который пишет перевод в журнал
#     fund_transfers в ТОЙ ЖЕ транзакции, что и бухгалтерия лотереи;
#   • record_purchase - журнал входящего перевода покупателя в банк лотереи.
#
# Канон:
#   • Выплата из банка лотереи не больше, чем в него пришло
#     (сумма buyer_to_pot минус сумма pot_to_winner), иначе InsufficientFunds.
#   • Ключи идемпотентности: buy:<lid>:<idx> и claim:<lid>, UNIQUE в журнале.
#   • Ошибка перевода откатывает всю операцию; флаг claimed не ставится.
#
# Запреты:
#   • Никаких переводов мимо журнала и никаких повторов внутри сервиса.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from sqlalchemy.ext.asyncio import AsyncSession

from lottery_ledger.core.errors_core import InsufficientFundsError, InvalidDestinationError
from lottery_ledger.core.logging_core import get_logger
from lottery_ledger.core.system_locks import assert_positive_amount
from lottery_ledger.core.utils_core import is_valid_identity
from lottery_ledger.crud import TransfersCRUD
from lottery_ledger.models import DIRECTION_BUYER_TO_POT, DIRECTION_POT_TO_WINNER

logger = get_logger(__name__)


def purchase_key(lottery_id: int, ticket_index: int) -> str:
    return f"buy:{lottery_id}:{ticket_index}"


def claim_key(lottery_id: int) -> str:
    return f"claim:{lottery_id}"


def pot_account(lottery_id: int) -> str:
    return f"lottery:{lottery_id}"


@dataclass(frozen=True)
class TransferReceipt:
    transfer_id: int
    lottery_id: int
    destination: str
    amount: int
    idempotency_key: str


@runtime_checkable
class FundsTransfer(Protocol):
    """
    Исполнитель выплаты из банка лотереи. Реализация обязана либо провести
    перевод целиком, либо бросить InvalidDestinationError / InsufficientFundsError.
    """

    async def transfer(
        self,
        db: AsyncSession,
        *,
        lottery_id: int,
        to_identity: str,
        amount: int,
        idempotency_key: str,
    ) -> TransferReceipt: ...


class JournalFundsTransfer:
    """Эталонный адаптер: перевод = строка pot_to_winner в fund_transfers."""

    async def transfer(
        self,
        db: AsyncSession,
        *,
        lottery_id: int,
        to_identity: str,
        amount: int,
        idempotency_key: str,
    ) -> TransferReceipt:
        assert_positive_amount(amount)
        if not is_valid_identity(to_identity):
            raise InvalidDestinationError(details={"lottery_id": lottery_id})

        crud = TransfersCRUD(db)
        inbound = await crud.sum_amount(lottery_id=lottery_id, direction=DIRECTION_BUYER_TO_POT)
        outbound = await crud.sum_amount(lottery_id=lottery_id, direction=DIRECTION_POT_TO_WINNER)
        available = inbound - outbound
        if amount > available:
            raise InsufficientFundsError(
                details={"lottery_id": lottery_id, "requested": amount, "available": available},
            )

        row = await crud.add_transfer(
            lottery_id=lottery_id,
            direction=DIRECTION_POT_TO_WINNER,
            source=pot_account(lottery_id),
            destination=to_identity,
            amount=amount,
            idempotency_key=idempotency_key,
        )
        logger.info(
            "Transfer journaled: %s -> %s amount=%s key=%s",
            pot_account(lottery_id),
            to_identity,
            amount,
            idempotency_key,
        )
        return TransferReceipt(
            transfer_id=int(row.id),
            lottery_id=lottery_id,
            destination=to_identity,
            amount=amount,
            idempotency_key=idempotency_key,
        )


async def record_purchase(
    db: AsyncSession,
    *,
    lottery_id: int,
    ticket_index: int,
    buyer: str,
    amount: int,
) -> None:
    """Входящий перевод покупателя в банк лотереи (внутри транзакции buy_ticket)."""
    assert_positive_amount(amount)
    await TransfersCRUD(db).add_transfer(
        lottery_id=lottery_id,
        direction=DIRECTION_BUYER_TO_POT,
        source=buyer,
        destination=pot_account(lottery_id),
        amount=amount,
        idempotency_key=purchase_key(lottery_id, ticket_index),
    )


def default_funds_transfer() -> FundsTransfer:
    return JournalFundsTransfer()


__all__ = [
    "FundsTransfer",
    "JournalFundsTransfer",
    "TransferReceipt",
    "record_purchase",
    "default_funds_transfer",
    "purchase_key",
    "claim_key",
    "pot_account",
]
