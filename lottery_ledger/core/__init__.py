# -*- coding: utf-8 -*-
# lottery_ledger/core/__init__.py
# =============================================================================
# Назначение кода:
#   Точка входа ядра: настройки, логирование, ошибки, БД, канон-проверки.
#
# Запреты:
#   • Не импортируем здесь тяжёлые слои (CRUD/Services).
# =============================================================================

from __future__ import annotations

from typing import Any, Dict

from .config_core import get_settings
from .logging_core import get_logger
from .system_locks import LockViolation, assert_randomness_canon

logger = get_logger(__name__)


def core_health() -> Dict[str, Any]:
    """
    Отчёт о минимально необходимой конфигурации.
    ok=False, если без исправления конфигурации сервис работать не сможет.
    """
    settings = get_settings()
    errors: list[str] = []
    warnings: list[str] = []

    if not settings.DATABASE_URL:
        errors.append("DATABASE_URL is not set")
    try:
        assert_randomness_canon(settings)
    except LockViolation as exc:
        errors.append(str(exc))
    if settings.RANDOMNESS_SOURCE == "clock":
        warnings.append("insecure clock randomness source is active")

    return {"ok": not errors, "errors": errors, "warnings": warnings, **settings.debug_dump()}


__all__ = ["get_settings", "get_logger", "core_health"]
