# src/infra/database.py
"""
PostgreSQL для сервисов пользователей и оценок.

Один пул asyncpg на процесс. Каждый сервис работает в своей схеме
(users_schema, ratings_schema); обе создаются из migrations/init.sql.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from functools import wraps
from typing import Any, AsyncGenerator, Awaitable, Callable, TypeVar

import asyncpg
from asyncpg import Connection, Pool

from src.common.logger import log_error, log_info, log_warning
from src.common.constants import TypeMsg

T = TypeVar("T")

SERVICE_SCHEMAS = ("users_schema", "ratings_schema")

# Ключ pg_advisory_xact_lock для применения схемы
SCHEMA_LOCK_ID = 424242

# Обрыв соединения, а не ошибка запроса
_CONNECTION_ERRORS = (
    asyncpg.PostgresConnectionError,
    asyncpg.InterfaceError,
    OSError,
)


def retry_on_connection_error(
    max_attempts: int = 3,
    delay: float = 1.0,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Повторяет корутину при обрыве соединения с линейной задержкой.
    Ошибки запросов (constraint, синтаксис) пробрасываются сразу.

    Args:
        max_attempts: Сколько всего попыток
        delay: Задержка перед второй попыткой; дальше растёт линейно
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            attempt = 1
            while True:
                try:
                    return await func(*args, **kwargs)
                except _CONNECTION_ERRORS as e:
                    if attempt >= max_attempts:
                        await log_error(f"PostgreSQL недоступен после {max_attempts} попыток: {e}")
                        raise
                    await log_warning(f"PostgreSQL: ошибка подключения (попытка {attempt}/{max_attempts}): {e}")
                    await asyncio.sleep(delay * attempt)
                    attempt += 1

        return wrapper

    return decorator


async def _init_connection(conn: Connection) -> None:
    # Границы диапазонов статистики сравниваются в UTC
    await conn.execute("SET TIME ZONE 'UTC'")


class DatabaseManager:
    """Пул соединений PostgreSQL (Singleton)."""

    _instance: DatabaseManager | None = None
    _pool: Pool | None = None

    def __new__(cls) -> DatabaseManager:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        if hasattr(self, "_initialized"):
            return
        self._initialized = True
        self._pool = None

    @property
    def pool(self) -> Pool:
        if self._pool is None:
            raise RuntimeError("Пул соединений не инициализирован. Вызовите connect() сначала.")
        return self._pool

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    @retry_on_connection_error(max_attempts=3, delay=1.0)
    async def connect(
        self,
        dsn: str | None = None,
        *,
        min_size: int = 5,
        max_size: int = 20,
        command_timeout: float = 60,
    ) -> None:
        """
        Создаёт пул. Без dsn все параметры берутся из settings.database.

        Args:
            dsn: Строка подключения
            min_size: Минимальный размер пула
            max_size: Максимальный размер пула
            command_timeout: Таймаут одной команды (секунды)
        """
        if self._pool is not None:
            return

        if dsn is None:
            from src.config import settings

            section = settings.database
            dsn = section.dsn
            min_size, max_size = section.DB_MIN_POOL_SIZE, section.DB_MAX_POOL_SIZE
            command_timeout = section.DB_COMMAND_TIMEOUT

        self._pool = await asyncpg.create_pool(
            dsn=dsn,
            min_size=min_size,
            max_size=max_size,
            command_timeout=command_timeout,
            init=_init_connection,
        )
        await log_info(f"Пул PostgreSQL создан ({min_size}..{max_size})", type_msg=TypeMsg.INFO)

    async def disconnect(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            await log_info("Пул PostgreSQL закрыт", type_msg=TypeMsg.INFO)

    @asynccontextmanager
    async def acquire(self) -> AsyncGenerator[Connection, None]:
        """
        Соединение из пула на время блока.

        Example:
            async with db.acquire() as conn:
                count = await conn.fetchval("SELECT COUNT(*) FROM users_schema.users")
        """
        async with self.pool.acquire() as connection:
            yield connection

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[Connection, None]:
        """
        Соединение с открытой транзакцией: commit при выходе, rollback при исключении.

        Example:
            async with db.transaction() as conn:
                await conn.fetchval("SELECT id FROM ratings_schema.ratings ... FOR UPDATE")
        """
        async with self.pool.acquire() as connection:
            async with connection.transaction():
                yield connection

    async def health_check(self) -> bool:
        """База отвечает и обе схемы сервисов на месте."""
        if self._pool is None:
            return False
        try:
            async with self.acquire() as conn:
                found = await conn.fetchval(
                    "SELECT COUNT(*) FROM information_schema.schemata WHERE schema_name = ANY($1::text[])",
                    list(SERVICE_SCHEMAS),
                )
            return found == len(SERVICE_SCHEMAS)
        except Exception as e:
            await log_error(f"Health check PostgreSQL failed: {e}")
            return False


_db_manager: DatabaseManager | None = None


def get_db() -> DatabaseManager:
    """Возвращает глобальный экземпляр DatabaseManager."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


async def init_db(apply_schema: bool = True) -> DatabaseManager:
    """
    Подключается по settings.database и, при необходимости, применяет схему.

    Args:
        apply_schema: Применять ли migrations/init.sql
    """
    db = get_db()
    await db.connect()
    if apply_schema:
        await _init_schema(db)
    return db


async def _init_schema(db: DatabaseManager) -> None:
    """Применяет migrations/init.sql под advisory-локом."""
    from src.config.loader import get_project_root

    schema_path = get_project_root() / "migrations" / "init.sql"
    if not schema_path.exists():
        await log_error(f"Файл схемы БД не найден: {schema_path}")
        return

    # Сервисы стартуют одновременно: лок исключает гонку DDL
    async with db.transaction() as conn:
        await conn.execute(f"SELECT pg_advisory_xact_lock({SCHEMA_LOCK_ID})")
        await conn.execute(schema_path.read_text(encoding="utf-8"))

    await log_info(f"Схема БД применена: {', '.join(SERVICE_SCHEMAS)}", type_msg=TypeMsg.INFO)


async def close_db() -> None:
    await get_db().disconnect()
