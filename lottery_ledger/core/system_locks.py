# -*- coding: utf-8 -*-
# lottery_ledger/core/system_locks.py
# =============================================================================
# Назначение кода:
#   «Канон-замок» Lottery Ledger. Проверки инвариантов, нарушение которых
#   означает ошибку в коде проекта, а не ошибку вызывающей стороны:
#   • жизненный цикл лотереи только вперёд: open → drawn → settled;
#   • банк лотереи (prize_pot) равен ticket_price × ticket_count до выплаты;
#   • суммы переводов строго положительные;
#   • небезопасный часовой источник случайности не запускается в prod
#     без явного разрешения.
#
# Канон / инварианты:
#   • Нарушение → LockViolation. Сервисы не ловят его, транзакция откатывается.
#
# Запреты:
#   • Никакой бизнес-логики: только проверки и стартовая самодиагностика.
# =============================================================================

from __future__ import annotations

from typing import Any, Dict, FrozenSet, Tuple

from lottery_ledger.core.config_core import get_settings
from lottery_ledger.core.logging_core import get_logger

logger = get_logger(__name__)

STATE_OPEN = "open"
STATE_DRAWN = "drawn"
STATE_SETTLED = "settled"

LOTTERY_STATES: Tuple[str, ...] = (STATE_OPEN, STATE_DRAWN, STATE_SETTLED)

ALLOWED_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    STATE_OPEN: frozenset({STATE_DRAWN}),
    STATE_DRAWN: frozenset({STATE_SETTLED}),
    STATE_SETTLED: frozenset(),
}


class LockViolation(RuntimeError):
    """
    Нарушение канона / архитектурных запретов.

    Это ОШИБКА ПРОЕКТА, а не ошибка пользователя: верхний слой логирует её
    и отдаёт клиенту код lock_violation.
    """


def assert_transition(current: str, target: str) -> None:
    """Разрешены только переходы open→drawn и drawn→settled."""
    if current not in ALLOWED_TRANSITIONS:
        raise LockViolation(f"Unknown lottery state: {current!r}")
    if target not in ALLOWED_TRANSITIONS[current]:
        raise LockViolation(
            f"Illegal lottery transition {current} -> {target}",
        )


def assert_pot_consistent(*, ticket_price: int, ticket_count: int, prize_pot: int) -> None:
    """
    Банк лотереи обязан совпадать с суммой оплат: ticket_price × ticket_count.
    Расхождение означает, что кто-то изменил строку в обход сервисов.
    """
    expected = ticket_price * ticket_count
    if prize_pot != expected:
        raise LockViolation(
            f"Prize pot mismatch: pot={prize_pot}, expected={expected} "
            f"(price={ticket_price}, tickets={ticket_count})",
        )


def assert_positive_amount(amount: int) -> None:
    if amount <= 0:
        raise LockViolation(f"Transfer amount must be positive, got {amount}")


def assert_randomness_canon(settings_obj: Any = None) -> None:
    """
    Часовой источник (clock) предсказуем для того, кто управляет временем
    вызова. В prod он допустим только с ALLOW_INSECURE_RANDOMNESS=true.
    """
    settings = settings_obj or get_settings()
    if settings.RANDOMNESS_SOURCE != "clock":
        return
    if settings.is_prod and not settings.ALLOW_INSECURE_RANDOMNESS:
        raise LockViolation(
            "RANDOMNESS_SOURCE=clock is insecure and refused in prod; "
            "set RANDOMNESS_SOURCE=system or ALLOW_INSECURE_RANDOMNESS=true",
        )
    logger.warning(
        "SystemLocks: insecure clock randomness source is active (env=%s)",
        settings.env_normalized,
    )


def init_system_locks(app: Any = None) -> None:
    """
    Стартовая проверка канона. Вызывать один раз при сборке FastAPI:
        app = FastAPI(...)
        init_system_locks(app)
    """
    assert_randomness_canon()
    logger.info("SystemLocks: lifecycle and randomness canon validated.")


__all__ = [
    "LockViolation",
    "STATE_OPEN",
    "STATE_DRAWN",
    "STATE_SETTLED",
    "LOTTERY_STATES",
    "ALLOWED_TRANSITIONS",
    "assert_transition",
    "assert_pot_consistent",
    "assert_positive_amount",
    "assert_randomness_canon",
    "init_system_locks",
]
