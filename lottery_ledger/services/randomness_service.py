# -*- coding: utf-8 -*-
# lottery_ledger/services/randomness_service.py
# =============================================================================
# Назначение кода:
#   Источники seed для розыгрыша победителя.
#   • ClockSlotRandomness - seed из текущего времени и номера 400-мс слота.
#     НЕБЕЗОПАСНО: тот, кто выбирает момент вызова, может подобрать победителя.
#     Оставлен как совместимый заменитель до подключения оракула.
#   • SystemRandomness - CSPRNG ОС: непредсказуемо, но не проверяемо извне.
#   • VRF-оракул подключается как ещё одна реализация RandomnessSource.
#
# Канон:
#   • seed - неотрицательное целое; выбор победителя делает draw_service.
#   • Какой источник используется по умолчанию, задаёт RANDOMNESS_SOURCE;
#     clock в prod запрещён без ALLOW_INSECURE_RANDOMNESS (system_locks).
# =============================================================================

from __future__ import annotations

import hashlib
import secrets
import time
from typing import Callable, Protocol, runtime_checkable

from lottery_ledger.core.config_core import get_settings
from lottery_ledger.core.logging_core import get_logger

logger = get_logger(__name__)

SLOT_DURATION_MS = 400
U32_MAX = 2**32 - 1
_U64_MOD = 2**64


@runtime_checkable
class RandomnessSource(Protocol):
    def seed_for(self, lottery_id: int) -> int: ...


class ClockSlotRandomness:
    """
    seed = (LE-u64(sha256(ts_be8)[:8]) * slot) mod 2**64 mod (2**32 - 1),
    где ts - unix-время в секундах, slot - номер 400-мс интервала.
    """

    insecure = True

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock

    def seed_for(self, lottery_id: int) -> int:
        now = self._clock()
        timestamp = int(now)
        slot = int(now * 1000) // SLOT_DURATION_MS
        digest = hashlib.sha256(timestamp.to_bytes(8, "big", signed=True)).digest()
        head = int.from_bytes(digest[:8], "little")
        seed = ((head * slot) % _U64_MOD) % U32_MAX
        logger.warning(
            "Insecure clock randomness used for lottery=%s (ts=%s slot=%s)",
            lottery_id,
            timestamp,
            slot,
        )
        return seed


class SystemRandomness:
    insecure = False

    def seed_for(self, lottery_id: int) -> int:
        return secrets.randbits(64)


def get_randomness_source() -> RandomnessSource:
    """Источник по умолчанию согласно RANDOMNESS_SOURCE."""
    if get_settings().RANDOMNESS_SOURCE == "system":
        return SystemRandomness()
    return ClockSlotRandomness()


__all__ = [
    "RandomnessSource",
    "ClockSlotRandomness",
    "SystemRandomness",
    "get_randomness_source",
    "SLOT_DURATION_MS",
    "U32_MAX",
]
