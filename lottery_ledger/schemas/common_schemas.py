# -*- coding: utf-8 -*-
# lottery_ledger/schemas/common_schemas.py
# =============================================================================
# Назначение кода:
#   Общие Pydantic-схемы API: курсор, ответ об ошибке, health.
#
# Канон:
#   • Суммы в API - целые числа в минимальных единицах валюты.
#   • Листинги только курсорные: next_cursor.value = null на последней странице.
# =============================================================================

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class CursorOut(BaseModel):
    value: Optional[str] = Field(None, description="Курсор следующей страницы или null")


class ErrorOut(BaseModel):
    error: str = Field(..., description="Стабильный код ошибки")
    category: Optional[str] = None
    message: str
    retryable: bool = False
    details: Dict[str, Any] = Field(default_factory=dict)


class HealthOut(BaseModel):
    status: str
    db: bool
    version: str
    env: str
    warnings: List[str] = Field(default_factory=list)
