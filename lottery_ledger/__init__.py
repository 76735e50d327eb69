# ==============================================================================
# Lottery Ledger: FastAPI application factory
# ------------------------------------------------------------------------------
# Назначение: создаёт и конфигурирует FastAPI-приложение, подключает
# middleware корреляции, обработчики ошибок и роутер лотерей.
#
# Канон/инварианты:
#   • Перед сборкой приложения выполняется проверка канона (init_system_locks):
#     небезопасный источник случайности не стартует в prod без явного флага.
#   • Фабрика не трогает БД и не двигает деньги, только конфигурирует API.
#   • create_app() можно вызывать многократно (тесты).
# ==============================================================================
from __future__ import annotations

from fastapi import FastAPI

from .core import core_health
from .core.config_core import get_settings
from .core.database_core import db_ping
from .core.errors_core import setup_exception_handlers
from .core.logging_core import CorrelationIdMiddleware, get_logger
from .core.system_locks import init_system_locks
from .routes import lotteries_routes
from .schemas import HealthOut

logger = get_logger(__name__)


def create_app() -> FastAPI:
    """Создать FastAPI-приложение с middleware, обработчиками ошибок и роутерами."""

    settings = get_settings()
    app = FastAPI(title=settings.PROJECT_NAME, version=settings.APP_VERSION)
    init_system_locks(app)

    app.add_middleware(CorrelationIdMiddleware)
    setup_exception_handlers(app)
    app.include_router(lotteries_routes.router, prefix=settings.API_PREFIX)

    @app.get("/health", response_model=HealthOut, tags=["health"])
    async def health() -> HealthOut:
        """Живость процесса и доступность БД."""
        report = core_health()
        db_ok = await db_ping(getattr(app.state, "engine", None))
        return HealthOut(
            status="ok" if db_ok and report["ok"] else "degraded",
            db=db_ok,
            version=settings.APP_VERSION,
            env=settings.env_normalized,
            warnings=report["warnings"] + report["errors"],
        )

    logger.info("FastAPI app initialised (prefix=%s)", settings.API_PREFIX)
    return app


__all__ = ["create_app"]
