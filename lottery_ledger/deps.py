# -*- coding: utf-8 -*-
# lottery_ledger/deps.py
# =============================================================================
# Lottery Ledger: общие зависимости FastAPI: БД-сессия, идентичность
# вызывающего, keyset-пагинация и ETag.
# -----------------------------------------------------------------------------
# Канон/требования:
#   • Идентичность вызывающего приходит в заголовке X-Identity. Подпись и
#     проверка ключей остаются за внешним шлюзом; здесь только формат.
#   • Списки только cursor-based (keyset), OFFSET не используется.
#
# Этот модуль НЕ делает бизнес-логику, только инфраструктуру/валидацию.
# =============================================================================
from __future__ import annotations

import base64
import hashlib
import json
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import Header, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from lottery_ledger.core.config_core import get_settings
from lottery_ledger.core.database_core import get_db as _core_get_db
from lottery_ledger.core.errors_core import InvalidIdentityError
from lottery_ledger.core.logging_core import set_request_context
from lottery_ledger.core.utils_core import is_valid_identity

settings = get_settings()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    AsyncSession на запрос. Транзакциями управляют сервисы;
    тесты подменяют эту зависимость через app.dependency_overrides.
    """
    async for session in _core_get_db():
        yield session


# -----------------------------------------------------------------------------
# ETag / курсоры
# -----------------------------------------------------------------------------
def make_etag(payload: Dict[str, Any]) -> str:
    """Детерминированный ETag из JSON-представления payload."""
    raw = json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def encode_cursor(row_key: int) -> str:
    """Keyset-курсор b64("k|<последний ключ страницы>")."""
    blob = f"k|{int(row_key)}".encode("utf-8")
    return base64.urlsafe_b64encode(blob).decode("ascii")


def decode_cursor(cursor: str) -> int:
    """Инверсия encode_cursor; HTTP 400 при некорректной строке."""
    try:
        raw = base64.urlsafe_b64decode(cursor.encode("ascii")).decode("utf-8")
        prefix, key = raw.split("|", 1)
        if prefix != "k":
            raise ValueError(prefix)
        return int(key)
    except (ValueError, UnicodeError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Malformed cursor") from exc


# -----------------------------------------------------------------------------
# Идентичность вызывающего
# -----------------------------------------------------------------------------
@dataclass
class IdentityContext:
    identity: str


async def require_identity(
    x_identity: Optional[str] = Header(default=None, convert_underscores=False, alias="X-Identity"),
) -> IdentityContext:
    """Depend для изменяющих ручек: X-Identity обязателен и корректен."""
    value = (x_identity or "").strip()
    if not is_valid_identity(value):
        raise InvalidIdentityError("X-Identity header is missing or malformed.", details={"field": "X-Identity"})
    set_request_context(identity=value)
    return IdentityContext(identity=value)


# -----------------------------------------------------------------------------
# Пагинация (query-параметры)
# -----------------------------------------------------------------------------
@dataclass
class PageParams:
    limit: int
    after: Optional[int]


async def pagination_params(
    cursor: Optional[str] = Query(None, description="Keyset cursor из предыдущего ответа"),
    limit: int = Query(50, ge=1, le=500, description="Page size"),
) -> PageParams:
    after = decode_cursor(cursor) if cursor else None
    return PageParams(limit=min(limit, settings.LIST_PAGE_LIMIT_MAX), after=after)


__all__ = [
    "get_db",
    "make_etag",
    "encode_cursor",
    "decode_cursor",
    "IdentityContext",
    "require_identity",
    "PageParams",
    "pagination_params",
]
