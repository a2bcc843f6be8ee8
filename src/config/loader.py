# src/config/loader.py
"""
Загрузчик конфигурации проекта.

Источник: плоский config/config.json (ключи вида DB_HOST). Каждая секция
берёт из него свои поля; хосты, порты и секреты переопределяются окружением.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, ClassVar, TypeVar

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

COMPONENT_MODES = ("users", "ratings", "all")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

S = TypeVar("S", bound="ConfigSection")


# =============================================================================
# ОПРЕДЕЛЕНИЕ ПУТЕЙ
# =============================================================================

def get_project_root() -> Path:
    """Возвращает корневую директорию проекта."""
    return Path(__file__).parent.parent.parent


def get_config_path() -> Path:
    return get_project_root() / "config" / "config.json"


def load_config_json() -> dict[str, Any]:
    """Читает config.json; ключи _comment_* отбрасываются."""
    config_path = get_config_path()
    if not config_path.exists():
        raise FileNotFoundError(f"Файл конфигурации не найден: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    return {key: value for key, value in raw.items() if not key.startswith("_comment_")}


# =============================================================================
# СЕКЦИИ
# =============================================================================

class ConfigSection(BaseModel):
    """Секция настроек: имена полей совпадают с ключами config.json."""

    # Ключи, которые окружение может переопределить
    ENV_OVERRIDES: ClassVar[tuple[str, ...]] = ()

    @classmethod
    def from_flat(cls: type[S], data: dict[str, Any]) -> S:
        values = {name: data[name] for name in cls.model_fields if name in data}
        for name in cls.ENV_OVERRIDES:
            env_value = os.getenv(name)
            if env_value:
                values[name] = env_value
        return cls(**values)


class SystemSettings(ConfigSection):
    ENV_OVERRIDES = ("ENVIRONMENT", "COMPONENT_MODE")

    PROJECT_NAME: str = "fitness_services"
    VERSION: str = "1.0.0"
    DEBUG: bool = True
    ENVIRONMENT: str = "development"
    # users | ratings | all
    COMPONENT_MODE: str = "all"

    @field_validator("COMPONENT_MODE")
    @classmethod
    def check_mode(cls, v: str) -> str:
        if v not in COMPONENT_MODES:
            raise ValueError(f"Неизвестный режим запуска: {v}")
        return v


class DeploymentSettings(ConfigSection):
    """HTTP-порты сервисов (/health)."""
    ENV_OVERRIDES = ("SERVICE_HOST", "USERS_SERVICE_PORT", "RATING_SERVICE_PORT")

    SERVICE_HOST: str = "0.0.0.0"
    USERS_SERVICE_PORT: int = 8084
    RATING_SERVICE_PORT: int = 8092


class LoggingSettings(ConfigSection):
    ENV_OVERRIDES = ("LOG_LEVEL",)

    LOG_LEVEL: str = "DEBUG"
    LOG_TO_FILE: bool = False
    LOG_FILE_PATH: str = "logs/app.log"
    LOG_FORMAT: str = "colored"
    LOG_MAX_BYTES: int = 10485760

    @field_validator("LOG_LEVEL")
    @classmethod
    def check_level(cls, v: str) -> str:
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Неизвестный уровень логов: {v}")
        return level

    @field_validator("LOG_FORMAT")
    @classmethod
    def check_format(cls, v: str) -> str:
        """Допустимы только json и colored."""
        if v not in ("json", "colored"):
            raise ValueError(f"Неизвестный формат логов: {v}")
        return v


class DatabaseSettings(ConfigSection):
    """PostgreSQL. DB_TRANSACTION_TIMEOUT ограничивает транзакцию записи оценки."""
    ENV_OVERRIDES = ("DB_HOST", "DB_PORT", "DB_NAME", "DB_USER", "DB_PASSWORD")

    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "fitness"
    DB_USER: str = "postgres"
    DB_PASSWORD: str = ""
    DB_MIN_POOL_SIZE: int = 5
    DB_MAX_POOL_SIZE: int = 20
    DB_COMMAND_TIMEOUT: int = 60
    DB_TRANSACTION_TIMEOUT: float = Field(default=30.0, gt=0)

    @field_validator("DB_PASSWORD", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Пустой пароль берётся из DB_PASSWORD."""
        return v or os.getenv("DB_PASSWORD", "")

    @property
    def dsn(self) -> str:
        return (
            f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )


class RabbitMQSettings(ConfigSection):
    """RabbitMQ. BROKER_REQUEST_TIMEOUT: ожидание ответа соседнего сервиса."""
    ENV_OVERRIDES = (
        "RABBITMQ_HOST", "RABBITMQ_PORT", "RABBITMQ_USER", "RABBITMQ_PASSWORD", "BROKER_REQUEST_TIMEOUT",
    )

    RABBITMQ_HOST: str = "localhost"
    RABBITMQ_PORT: int = 5672
    RABBITMQ_USER: str = "guest"
    RABBITMQ_PASSWORD: str = "guest"
    RABBITMQ_VHOST: str = "/"
    RABBITMQ_EXCHANGE: str = "fitness.rpc"
    RABBITMQ_QUEUE_PREFIX: str = "fitness"
    RABBITMQ_PREFETCH_COUNT: int = 10
    BROKER_REQUEST_TIMEOUT: float = Field(default=10.0, gt=0)

    @field_validator("RABBITMQ_PASSWORD", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Пароль из окружения важнее файла."""
        return os.getenv("RABBITMQ_PASSWORD", "") or v

    @property
    def url(self) -> str:
        return (
            f"amqp://{self.RABBITMQ_USER}:{self.RABBITMQ_PASSWORD}"
            f"@{self.RABBITMQ_HOST}:{self.RABBITMQ_PORT}{self.RABBITMQ_VHOST}"
        )


class SecuritySettings(ConfigSection):
    """Стоимость bcrypt для паролей пользователей."""
    BCRYPT_ROUNDS: int = Field(default=12, ge=4, le=31)


# =============================================================================
# ГЛАВНЫЙ КЛАСС НАСТРОЕК
# =============================================================================

class Settings(BaseSettings):
    """Все секции конфигурации."""
    system: SystemSettings = Field(default_factory=SystemSettings)
    deployment: DeploymentSettings = Field(default_factory=DeploymentSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    rabbitmq: RabbitMQSettings = Field(default_factory=RabbitMQSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def from_config_json(cls, config_data: dict[str, Any] | None = None) -> "Settings":
        """
        Собирает настройки из config.json (или переданного словаря того же вида).
        Окружение переопределяет ключи из ENV_OVERRIDES каждой секции.
        """
        if config_data is None:
            config_data = load_config_json()
        data = {key: value for key, value in config_data.items() if not key.startswith("_comment_")}

        return cls(**{
            name: field.annotation.from_flat(data)
            for name, field in cls.model_fields.items()
        })


@lru_cache()
def get_settings() -> Settings:
    """Настройки процесса; .env из корня проекта подгружается в окружение."""
    from dotenv import load_dotenv

    env_path = get_project_root() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    return Settings.from_config_json()


settings = get_settings()
