# -*- coding: utf-8 -*-
# lottery_ledger/core/utils_core.py
# =============================================================================
# Назначение:
#   • Базовые утилиты уровня "core" без зависимостей от FastAPI/SQLAlchemy.
#   • Целочисленная арифметика с контролем границ BIGINT.
#   • Проверка формата идентичностей.
#   • Время (UTC).
#
# Канон:
#   • Все суммы и счётчики целые (минимальная единица валюты), без float.
#   • Функции чистые: без сетевых вызовов и побочных эффектов.
# =============================================================================

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Optional

from lottery_ledger.core.config_core import get_settings

# Верхняя граница счётчиков и сумм: знаковый 64-битный BIGINT.
COUNTER_MAX = 2**63 - 1

_IDENTITY_RE = re.compile(r"[A-Za-z0-9_.:\-]+")


class CounterOverflow(ArithmeticError):
    """Результат сложения не помещается в BIGINT."""


def checked_add(value: int, delta: int, *, limit: int = COUNTER_MAX) -> int:
    """
    Сложение с проверкой верхней границы.

    >>> checked_add(1, 2)
    3
    """
    result = value + delta
    if result > limit:
        raise CounterOverflow(f"{value} + {delta} exceeds {limit}")
    return result


def is_storable_key(value: Any) -> bool:
    """id лотереи или индекс билета, который вообще может лежать в BIGINT."""
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= COUNTER_MAX


def is_valid_identity(value: Any, *, max_len: Optional[int] = None) -> bool:
    """
    Идентичность: 1..IDENTITY_MAX_LEN символов [A-Za-z0-9_.:-].
    Публичные ключи в base58 проходят без изменений.
    """
    if not isinstance(value, str):
        return False
    limit = max_len if max_len is not None else get_settings().IDENTITY_MAX_LEN
    if not value or len(value) > limit:
        return False
    return _IDENTITY_RE.fullmatch(value) is not None


# -----------------------------------------------------------------------------
# Время
# -----------------------------------------------------------------------------
def utc_now() -> datetime:
    return datetime.now(timezone.utc)


__all__ = [
    "COUNTER_MAX",
    "CounterOverflow",
    "checked_add",
    "is_storable_key",
    "is_valid_identity",
    "utc_now",
]
