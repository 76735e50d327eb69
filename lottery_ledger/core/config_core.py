# -*- coding: utf-8 -*-
# lottery_ledger/core/config_core.py
# =============================================================================
# Назначение:
#   • Единый конфигурационный модуль Lottery Ledger (FastAPI + SQLAlchemy async).
#   • Канонический источник всех настроек: приложение, БД, источник случайности,
#     ограничения идентификаторов и листингов.
#
# Канон / инварианты:
#   1) Хранилище одно: PostgreSQL (asyncpg). Для тестов допускается
#      sqlite+aiosqlite, DSN передаётся без изменений.
#   2) Источник случайности для розыгрыша выбирается ТОЛЬКО через
#      RANDOMNESS_SOURCE (clock | system). Часовой источник небезопасен,
#      в prod он разрешён лишь явным ALLOW_INSECURE_RANDOMNESS=true
#      (проверяется в system_locks.init_system_locks).
#   3) Идентичности (authority/buyer/claimant) ограничены по длине
#      IDENTITY_MAX_LEN; формат проверяет utils_core.is_valid_identity().
#
# Запреты:
#   • Никаких секретов в коде, только ENV/.env.
#   • Никакой бизнес-логики лотерей здесь.
# =============================================================================

from __future__ import annotations

from functools import lru_cache
from typing import Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

RANDOMNESS_SOURCES = ("clock", "system")


# =============================================================================
# Док-описания полей (используются в Swagger и как подсказки)
# =============================================================================


class _Doc:
    # Приложение
    PROJECT_NAME = "Имя проекта (отображается в Swagger/health)."
    ENV = "Окружение: production/dev/local (нормализуется в prod/dev/local)."
    DEBUG = "Расширенные логи и SQL-echo (только для dev/local)."
    APP_VERSION = "Версия приложения (попадает в /health)."

    APP_HOST = "Адрес для uvicorn (обычно 0.0.0.0)."
    APP_PORT = "Порт для uvicorn (например, 8000)."
    API_PREFIX = "Префикс REST API, например /api."

    # БД
    DATABASE_URL = (
        "DSN PostgreSQL. Будет автоматически приведён к async "
        "(postgresql+asyncpg://); sqlite+aiosqlite:// передаётся как есть."
    )
    DB_POOL_SIZE = "Размер пула соединений SQLAlchemy."
    DB_MAX_OVERFLOW = "Дополнительные соединения в пике."
    DB_SCHEMA_CORE = "Схема с таблицами реестра, лотерей, билетов и журнала переводов."

    # Розыгрыш
    RANDOMNESS_SOURCE = "Источник seed для розыгрыша: clock (небезопасный) | system."
    ALLOW_INSECURE_RANDOMNESS = "Разрешить clock-источник в prod (только осознанно)."

    # Идентичности и листинги
    IDENTITY_MAX_LEN = "Максимальная длина строки идентичности (authority/buyer)."
    LIST_PAGE_LIMIT_MAX = "Максимальный размер страницы курсорных листингов."


# =============================================================================
# Настройки приложения (единственный источник истины)
# =============================================================================


class Settings(BaseSettings):
    """
    Контейнер переменных окружения Lottery Ledger.

    Важное:
      • Секреты берём только из ENV, в код не шьём.
      • Нет фоновых задач и планировщиков: все переходы по запросу.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # --------------------------- БАЗОВЫЕ НАСТРОЙКИ ---------------------------
    PROJECT_NAME: str = Field("Lottery Ledger", description=_Doc.PROJECT_NAME)
    ENV: str = Field("production", description=_Doc.ENV)
    DEBUG: bool = Field(False, description=_Doc.DEBUG)
    APP_VERSION: str = Field("1.0.0", description=_Doc.APP_VERSION)

    APP_HOST: str = Field("0.0.0.0", description=_Doc.APP_HOST)
    APP_PORT: int = Field(8000, description=_Doc.APP_PORT)
    API_PREFIX: str = Field("/api", description=_Doc.API_PREFIX)

    # --------------------------------- БАЗА ----------------------------------
    DATABASE_URL: Optional[str] = Field(None, description=_Doc.DATABASE_URL)
    DB_POOL_SIZE: int = Field(10, description=_Doc.DB_POOL_SIZE)
    DB_MAX_OVERFLOW: int = Field(10, description=_Doc.DB_MAX_OVERFLOW)
    DB_SCHEMA_CORE: str = Field("lottery_core", description=_Doc.DB_SCHEMA_CORE)

    # -------------------------------- РОЗЫГРЫШ -------------------------------
    RANDOMNESS_SOURCE: str = Field("clock", description=_Doc.RANDOMNESS_SOURCE)
    ALLOW_INSECURE_RANDOMNESS: bool = Field(
        False,
        description=_Doc.ALLOW_INSECURE_RANDOMNESS,
    )

    # ------------------------- ИДЕНТИЧНОСТИ / ЛИСТИНГИ -----------------------
    IDENTITY_MAX_LEN: int = Field(64, description=_Doc.IDENTITY_MAX_LEN)
    LIST_PAGE_LIMIT_MAX: int = Field(500, description=_Doc.LIST_PAGE_LIMIT_MAX)

    # =============================== ВАЛИДАТОРЫ ==============================

    @field_validator("RANDOMNESS_SOURCE", mode="before")
    @classmethod
    def _v_randomness_source(cls, value: object) -> str:
        text_value = str(value or "").strip().lower()
        if text_value not in RANDOMNESS_SOURCES:
            raise ValueError(
                f"RANDOMNESS_SOURCE должен быть одним из {RANDOMNESS_SOURCES}",
            )
        return text_value

    @field_validator("IDENTITY_MAX_LEN")
    @classmethod
    def _v_identity_max_len(cls, value: int) -> int:
        if value < 1 or value > 256:
            raise ValueError("IDENTITY_MAX_LEN должен быть в диапазоне 1..256")
        return value

    @field_validator("LIST_PAGE_LIMIT_MAX")
    @classmethod
    def _v_page_limit(cls, value: int) -> int:
        if value < 1:
            raise ValueError("LIST_PAGE_LIMIT_MAX должен быть > 0")
        return value

    # =========================== Удобные свойства/методы =====================

    @property
    def env_normalized(self) -> str:
        """Нормализует ENV к одному из: prod/dev/local."""
        value = (self.ENV or "").strip().lower()
        if value.startswith("prod") or value == "production":
            return "prod"
        if value.startswith("dev"):
            return "dev"
        if value.startswith("loc") or value == "local":
            return "local"
        return "prod"

    @property
    def is_prod(self) -> bool:
        return self.env_normalized == "prod"

    # ---- База данных / DSN ----
    def database_url_asyncpg(self) -> str:
        """
        Возвращает DSN для SQLAlchemy async:
          postgres://   → postgresql+asyncpg://
          postgresql:// → postgresql+asyncpg:// при отсутствии драйвера.
        sqlite+aiosqlite:// и прочие async-DSN не трогаем.
        """
        if not self.DATABASE_URL:
            raise RuntimeError("DATABASE_URL не задан (нужен DSN Postgres).")
        url = self.DATABASE_URL
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql+asyncpg://", 1)
        elif url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return url

    @property
    def is_sqlite(self) -> bool:
        return bool(self.DATABASE_URL) and str(self.DATABASE_URL).startswith("sqlite")

    # ---- Health/диагностика ----
    def debug_dump(self) -> Dict[str, str]:
        """Безопасный дамп ключевых настроек (без секретов) для /health и логов."""
        return {
            "env": self.env_normalized,
            "projectName": self.PROJECT_NAME,
            "version": self.APP_VERSION,
            "apiPrefix": self.API_PREFIX,
            "dbUrlSet": "yes" if bool(self.DATABASE_URL) else "no",
            "dbSchema": self.DB_SCHEMA_CORE,
            "randomnessSource": self.RANDOMNESS_SOURCE,
        }

    def initialize_runtime(self) -> None:
        """Проверка DSN при старте."""
        if self.DATABASE_URL:
            self.database_url_asyncpg()


# =============================================================================
# Синглтон настроек для всего приложения
# =============================================================================


@lru_cache()
def get_settings() -> Settings:
    """Создаёт и кэширует объект Settings, выполняя initialize_runtime()."""
    settings_obj = Settings()
    settings_obj.initialize_runtime()
    return settings_obj


settings: Settings = get_settings()

__all__ = ["Settings", "get_settings", "settings", "RANDOMNESS_SOURCES"]
