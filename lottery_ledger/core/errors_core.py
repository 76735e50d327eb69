# -*- coding: utf-8 -*-
# lottery_ledger/core/errors_core.py
# =============================================================================
# Назначение кода:
#   • Единый слой доменных ошибок Lottery Ledger.
#   • Стабильные коды ошибок для клиентов и логов.
#   • Унифицированные JSON-ответы для FastAPI.
#
# Канон / инварианты:
#   • Сервисы бросают ТОЛЬКО исключения из этого модуля (или LockViolation
#     из system_locks). Любая ошибка отменяет операцию целиком.
#   • Каждая ошибка несёт category и retryable: клиент отличает
#     «повторить позже» от «не пройдёт никогда».
#   • Клиенту не утекают технические детали (stack trace, DSN).
#
# Запреты:
#   • Никакой бизнес-логики здесь.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, cast

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from lottery_ledger.core.logging_core import get_logger
from lottery_ledger.core.system_locks import LockViolation

logger = get_logger(__name__)

CATEGORY_VALIDATION = "validation"
CATEGORY_AUTHORIZATION = "authorization"
CATEGORY_STATE = "state_violation"
CATEGORY_NOT_FOUND = "not_found"
CATEGORY_EXHAUSTION = "resource_exhaustion"
CATEGORY_EXTERNAL = "external_failure"

HTTP_UNPROCESSABLE = 422


# -----------------------------------------------------------------------------
# Базовая доменная ошибка
# -----------------------------------------------------------------------------
@dataclass(eq=False)
class LedgerError(Exception):
    """
    Базовое доменное исключение.

    Поля:
      • code         - стабильный машинный код (snake_case).
      • message      - короткое безопасное сообщение для клиента.
      • category     - группа ошибки (validation, state_violation, ...).
      • http_status  - HTTP-код для REST-слоя.
      • retryable    - имеет ли смысл повторить тот же запрос.
      • details      - безопасные детали (id лотереи, индекс билета).
    """

    code: str
    message: str
    category: str = CATEGORY_VALIDATION
    http_status: int = status.HTTP_400_BAD_REQUEST
    retryable: bool = False
    details: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "error": self.code,
            "category": self.category,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }
        return payload

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


# -----------------------------------------------------------------------------
# validation
# -----------------------------------------------------------------------------
class InvalidTicketPriceError(LedgerError):
    """Цена билета должна быть > 0."""

    def __init__(self, message: str = "Ticket price must be positive.", *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            code="invalid_ticket_price",
            message=message,
            category=CATEGORY_VALIDATION,
            http_status=HTTP_UNPROCESSABLE,
            details=details or {},
        )


class InvalidPaymentError(LedgerError):
    """Оплата не равна цене билета (и больше, и меньше одинаково плохо)."""

    def __init__(self, message: str = "Payment must equal the ticket price.", *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            code="invalid_payment",
            message=message,
            category=CATEGORY_VALIDATION,
            http_status=HTTP_UNPROCESSABLE,
            details=details or {},
        )


class InvalidIdentityError(LedgerError):
    def __init__(self, message: str = "Malformed identity.", *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            code="invalid_identity",
            message=message,
            category=CATEGORY_VALIDATION,
            http_status=HTTP_UNPROCESSABLE,
            details=details or {},
        )


class InvalidSeedError(LedgerError):
    def __init__(self, message: str = "Randomness seed must be a non-negative integer.", *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            code="invalid_seed",
            message=message,
            category=CATEGORY_VALIDATION,
            http_status=HTTP_UNPROCESSABLE,
            details=details or {},
        )


# -----------------------------------------------------------------------------
# authorization
# -----------------------------------------------------------------------------
class UnauthorizedError(LedgerError):
    """Вызвавший не authority лотереи либо не покупатель билета."""

    def __init__(self, message: str = "Caller is not allowed to perform this action.", *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            code="unauthorized",
            message=message,
            category=CATEGORY_AUTHORIZATION,
            http_status=status.HTTP_403_FORBIDDEN,
            details=details or {},
        )


# -----------------------------------------------------------------------------
# state_violation
# -----------------------------------------------------------------------------
class LotteryNotOpenError(LedgerError):
    def __init__(self, message: str = "Lottery is not open.", *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            code="lottery_not_open",
            message=message,
            category=CATEGORY_STATE,
            http_status=status.HTTP_409_CONFLICT,
            details=details or {},
        )


class LotteryNotDrawnError(LedgerError):
    def __init__(self, message: str = "Lottery winner has not been drawn.", *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            code="lottery_not_drawn",
            message=message,
            category=CATEGORY_STATE,
            http_status=status.HTTP_409_CONFLICT,
            details=details or {},
        )


class AlreadyClaimedError(LedgerError):
    """Приз уже выплачен. Повтор не пройдёт никогда."""

    def __init__(self, message: str = "Prize has already been claimed.", *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            code="already_claimed",
            message=message,
            category=CATEGORY_STATE,
            http_status=status.HTTP_409_CONFLICT,
            details=details or {},
        )


class NotWinningTicketError(LedgerError):
    def __init__(self, message: str = "Ticket is not the winning ticket.", *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            code="not_winning_ticket",
            message=message,
            category=CATEGORY_STATE,
            http_status=status.HTTP_409_CONFLICT,
            details=details or {},
        )


class AlreadyInitializedError(LedgerError):
    def __init__(self, message: str = "Registry is already initialized.", *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            code="already_initialized",
            message=message,
            category=CATEGORY_STATE,
            http_status=status.HTTP_409_CONFLICT,
            details=details or {},
        )


class RegistryNotInitializedError(LedgerError):
    def __init__(self, message: str = "Registry has not been initialized.", *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            code="registry_not_initialized",
            message=message,
            category=CATEGORY_STATE,
            http_status=status.HTTP_409_CONFLICT,
            details=details or {},
        )


# -----------------------------------------------------------------------------
# not_found
# -----------------------------------------------------------------------------
class LotteryNotFoundError(LedgerError):
    def __init__(self, message: str = "Lottery not found.", *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            code="lottery_not_found",
            message=message,
            category=CATEGORY_NOT_FOUND,
            http_status=status.HTTP_404_NOT_FOUND,
            details=details or {},
        )


class TicketNotFoundError(LedgerError):
    def __init__(self, message: str = "Ticket not found.", *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            code="ticket_not_found",
            message=message,
            category=CATEGORY_NOT_FOUND,
            http_status=status.HTTP_404_NOT_FOUND,
            details=details or {},
        )


# -----------------------------------------------------------------------------
# resource_exhaustion
# -----------------------------------------------------------------------------
class LedgerOverflowError(LedgerError):
    """
    Счётчик или сумма вышли за BIGINT. Для лотереи это конец продаж,
    уже проданные билеты остаются действительными.
    """

    def __init__(self, message: str = "Counter or amount overflow.", *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            code="overflow",
            message=message,
            category=CATEGORY_EXHAUSTION,
            http_status=status.HTTP_409_CONFLICT,
            details=details or {},
        )


class NoTicketsError(LedgerError):
    def __init__(self, message: str = "Lottery has no tickets to draw from.", *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            code="no_tickets",
            message=message,
            category=CATEGORY_EXHAUSTION,
            http_status=status.HTTP_409_CONFLICT,
            details=details or {},
        )


# -----------------------------------------------------------------------------
# external_failure
# -----------------------------------------------------------------------------
class StoreConflictError(LedgerError):
    """Хранилище отклонило транзакцию (UNIQUE, сериализация, блокировка)."""

    def __init__(self, message: str = "Concurrent update conflict, retry the request.", *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            code="store_conflict",
            message=message,
            category=CATEGORY_EXTERNAL,
            http_status=status.HTTP_409_CONFLICT,
            retryable=True,
            details=details or {},
        )


class InsufficientFundsError(LedgerError):
    def __init__(self, message: str = "Source account has insufficient funds.", *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            code="insufficient_funds",
            message=message,
            category=CATEGORY_EXTERNAL,
            http_status=status.HTTP_502_BAD_GATEWAY,
            retryable=True,
            details=details or {},
        )


class InvalidDestinationError(LedgerError):
    def __init__(self, message: str = "Transfer destination is invalid.", *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            code="invalid_destination",
            message=message,
            category=CATEGORY_EXTERNAL,
            http_status=status.HTTP_502_BAD_GATEWAY,
            retryable=True,
            details=details or {},
        )


# -----------------------------------------------------------------------------
# Нормализация исключений → (status_code, payload)
# -----------------------------------------------------------------------------
def normalize_exception(exc: BaseException) -> Tuple[int, Dict[str, Any]]:
    """
    Правила:
      • LedgerError    → свой http_status + to_payload().
      • LockViolation  → 500 + {"error": "lock_violation"}.
      • HTTPException  → status_code + {"error": "http_error", ...}.
      • Любая другая   → 500 + {"error": "internal_error"} без деталей.
    """
    if isinstance(exc, LedgerError):
        return exc.http_status, exc.to_payload()

    if isinstance(exc, LockViolation):
        return (
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            {"error": "lock_violation", "message": str(exc), "retryable": False},
        )

    if isinstance(exc, HTTPException):
        details: Dict[str, Any] = {}
        if isinstance(exc.detail, str):
            msg = exc.detail
        elif isinstance(exc.detail, dict):
            details = cast(Dict[str, Any], exc.detail)
            msg = details.get("message") or details.get("detail") or "HTTP error."
        else:
            msg = "HTTP error."
        payload: Dict[str, Any] = {"error": "http_error", "message": msg}
        if details:
            payload["details"] = details
        return exc.status_code, payload

    logger.exception("Unhandled exception", exc_info=exc, extra={"error_type": type(exc).__name__})
    return (
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        {"error": "internal_error", "message": "Internal server error."},
    )


# -----------------------------------------------------------------------------
# FastAPI-хендлеры
# -----------------------------------------------------------------------------
async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    status_code, payload = normalize_exception(exc)
    logger.warning(
        "LedgerError handled: %s",
        exc.code,
        extra={"path": request.url.path, "status": status_code},
    )
    return JSONResponse(status_code=status_code, content=payload)


async def lock_violation_handler(request: Request, exc: LockViolation) -> JSONResponse:
    status_code, payload = normalize_exception(exc)
    logger.error(
        "LockViolation handled: %s",
        str(exc),
        extra={"path": request.url.path, "status": status_code},
    )
    return JSONResponse(status_code=status_code, content=payload)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Ошибки схемы запроса приводим к тому же формату, что и доменные."""
    payload = {
        "error": "request_validation_error",
        "category": CATEGORY_VALIDATION,
        "message": "Request body or parameters are invalid.",
        "retryable": False,
        "details": {"errors": [dict(loc=list(e.get("loc", ())), msg=e.get("msg")) for e in exc.errors()]},
    }
    return JSONResponse(status_code=HTTP_UNPROCESSABLE, content=payload)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    status_code, payload = normalize_exception(exc)
    logger.error(
        "Unhandled exception handled by generic handler",
        extra={"path": request.url.path, "status": status_code, "exc_type": type(exc).__name__},
    )
    return JSONResponse(status_code=status_code, content=payload)


def setup_exception_handlers(app: FastAPI) -> None:
    """Подключает обработчики. Вызывать один раз при создании приложения."""
    app.add_exception_handler(LedgerError, ledger_error_handler)
    app.add_exception_handler(LockViolation, lock_violation_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
    logger.info("Exception handlers registered for LedgerError/LockViolation/Exception")


__all__ = [
    "LedgerError",
    "InvalidTicketPriceError",
    "InvalidPaymentError",
    "InvalidIdentityError",
    "InvalidSeedError",
    "UnauthorizedError",
    "LotteryNotOpenError",
    "LotteryNotDrawnError",
    "AlreadyClaimedError",
    "NotWinningTicketError",
    "AlreadyInitializedError",
    "RegistryNotInitializedError",
    "LotteryNotFoundError",
    "TicketNotFoundError",
    "LedgerOverflowError",
    "NoTicketsError",
    "StoreConflictError",
    "InsufficientFundsError",
    "InvalidDestinationError",
    "normalize_exception",
    "setup_exception_handlers",
]
