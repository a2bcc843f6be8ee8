# tests/conftest.py
"""
Общие фикстуры и настройки для тестов.
"""

from __future__ import annotations

import json
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

# Устанавливаем переменные окружения перед импортом модулей
os.environ.setdefault("DB_PASSWORD", "test_password")
os.environ.setdefault("RABBITMQ_PASSWORD", "guest")


# =============================================================================
# ФИКСТУРЫ КОНФИГУРАЦИИ
# =============================================================================

@pytest.fixture(scope="session")
def project_root() -> Path:
    """Корневая директория проекта."""
    return Path(__file__).parent.parent


@pytest.fixture(scope="session")
def config_path(project_root: Path) -> Path:
    """Путь к файлу конфигурации."""
    return project_root / "config" / "config.json"


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """Мок конфигурации для тестов."""
    return {
        "_comment_system": "Системные настройки",
        "PROJECT_NAME": "fitness_test",
        "VERSION": "1.0.0-test",
        "DEBUG": True,
        "ENVIRONMENT": "test",
        "COMPONENT_MODE": "users",
        "SERVICE_HOST": "127.0.0.1",
        "USERS_SERVICE_PORT": 9084,
        "RATING_SERVICE_PORT": 9092,
        "LOG_LEVEL": "DEBUG",
        "LOG_TO_FILE": False,
        "LOG_FILE_PATH": "logs/test.log",
        "LOG_FORMAT": "json",
        "LOG_MAX_BYTES": 1024,
        "DB_HOST": "db.local",
        "DB_PORT": 5433,
        "DB_NAME": "fitness_test",
        "DB_USER": "tester",
        "DB_PASSWORD": "test_password",
        "DB_MIN_POOL_SIZE": 2,
        "DB_MAX_POOL_SIZE": 5,
        "DB_COMMAND_TIMEOUT": 30,
        "DB_TRANSACTION_TIMEOUT": 15.0,
        "RABBITMQ_HOST": "mq.local",
        "RABBITMQ_PORT": 5673,
        "RABBITMQ_USER": "guest",
        "RABBITMQ_PASSWORD": "guest",
        "RABBITMQ_VHOST": "/",
        "RABBITMQ_EXCHANGE": "fitness.test",
        "RABBITMQ_QUEUE_PREFIX": "fitness-test",
        "RABBITMQ_PREFETCH_COUNT": 5,
        "BROKER_REQUEST_TIMEOUT": 3.0,
        "BCRYPT_ROUNDS": 4,
    }


@pytest.fixture
def temp_config_file(tmp_path: Path, mock_config: dict[str, Any]) -> Path:
    """Создаёт временный файл конфигурации."""
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps(mock_config, ensure_ascii=False, indent=2))
    return config_file


# =============================================================================
# ФИКСТУРЫ ИНФРАСТРУКТУРЫ (МОКИ)
# =============================================================================

@pytest.fixture
def mock_connection() -> AsyncMock:
    """Мок соединения asyncpg."""
    conn = AsyncMock()
    conn.fetchrow = AsyncMock(return_value=None)
    conn.fetch = AsyncMock(return_value=[])
    conn.fetchval = AsyncMock(return_value=None)
    conn.execute = AsyncMock(return_value="UPDATE 1")
    return conn


@pytest.fixture
def mock_db(mock_connection: AsyncMock) -> MagicMock:
    """Мок DatabaseManager: acquire() и transaction() отдают mock_connection."""
    db = MagicMock()

    @asynccontextmanager
    async def acquire():
        yield mock_connection

    db.acquire = MagicMock(side_effect=acquire)
    db.transaction = MagicMock(side_effect=acquire)
    db.health_check = AsyncMock(return_value=True)
    return db


@pytest.fixture
def mock_broker() -> AsyncMock:
    """Мок брокера сообщений."""
    broker = AsyncMock()
    broker.request = AsyncMock(return_value=[])
    broker.serve = AsyncMock(return_value=None)
    broker.health_check = AsyncMock(return_value=True)
    broker.is_connected = True
    return broker


# =============================================================================
# ФИКСТУРЫ МОДЕЛЕЙ
# =============================================================================

@pytest.fixture
def sample_user_record() -> dict[str, Any]:
    """Строка users_schema.users (без пароля), как её отдаёт asyncpg."""
    now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    return {
        "id": "6f1c2d4e-8a7b-4c3d-9e0f-112233445566",
        "name": "Anna",
        "email": "anna@example.com",
        "avatar_url": None,
        "is_active": True,
        "last_login": None,
        "user_type": "USER",
        "age": 29,
        "gender": "FEMALE",
        "weight": 61.5,
        "height": 168.0,
        "fitness_level": "INTERMEDIATE",
        "goal": "ENDURANCE",
        "injury": None,
        "workout_ids": [],
        "training_plan_ids": [],
        "nutrition_ids": [],
        "created_at": now,
        "updated_at": now,
    }


@pytest.fixture
def sample_rating_record() -> dict[str, Any]:
    """Строка ratings_schema.ratings."""
    now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    return {
        "id": 1,
        "user_id": "6f1c2d4e-8a7b-4c3d-9e0f-112233445566",
        "target_id": 42,
        "target_type": "WORKOUT",
        "score": 4.0,
        "created_at": now,
        "updated_at": now,
    }
