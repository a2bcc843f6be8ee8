# src/common/logger.py
"""
Структурированное логирование сервисов.

Каждая запись несёт имя сервиса, а внутри обработчика сообщения ещё и
паттерн с correlation_id (см. rpc_context). Форматы: JSON для продакшена,
цветной текст для разработки. Файлы ротируются, ошибки дублируются в error.log.
"""

from __future__ import annotations

import inspect
import json
import logging
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterator, NamedTuple

from src.common.constants import TypeMsg


DEFAULT_LOGGER_NAME = "fitness"

_LEVELS = {
    TypeMsg.DEBUG: logging.DEBUG,
    TypeMsg.INFO: logging.INFO,
    TypeMsg.WARNING: logging.WARNING,
    TypeMsg.ERROR: logging.ERROR,
    TypeMsg.CRITICAL: logging.CRITICAL,
}

# Один файловый хендлер и один хендлер ошибок на процесс
_GLOBAL_FILE_HANDLER: logging.Handler | None = None
_GLOBAL_ERROR_HANDLER: logging.Handler | None = None

_LOGGING_INITIALIZED: bool = False

_loggers: dict[str, logging.Logger] = {}

# Сообщение брокера, которое сейчас обрабатывается в этой задаче
_rpc_context: ContextVar[dict[str, str] | None] = ContextVar("fitness_rpc_context", default=None)


def service_name() -> str:
    """Имя сервиса из окружения (SERVICE_NAME) или общее имя проекта."""
    return os.getenv("SERVICE_NAME") or DEFAULT_LOGGER_NAME


@contextmanager
def rpc_context(pattern: str, correlation_id: str | None = None) -> Iterator[None]:
    """
    Привязывает паттерн и correlation_id ко всем логам внутри блока.

    Example:
        with rpc_context("create.rating", message.correlation_id):
            reply = await router.dispatch(...)
    """
    token = _rpc_context.set({"pattern": pattern, "correlation_id": correlation_id or "-"})
    try:
        yield
    finally:
        _rpc_context.reset(token)


def current_rpc_context() -> dict[str, str]:
    return dict(_rpc_context.get() or {})


# =============================================================================
# ФОРМАТТЕРЫ
# =============================================================================

class JsonFormatter(logging.Formatter):
    """Одна запись: одна JSON-строка."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "service": service_name(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        extra = dict(getattr(record, "extra_data", None) or {})
        for key in ("pattern", "correlation_id"):
            if key in extra:
                payload[key] = extra.pop(key)
        if extra:
            payload["extra"] = extra

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


class ColoredFormatter(logging.Formatter):
    """Цветной вывод для консоли разработчика."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"
    GRAY = "\033[90m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.GRAY)
        extra = getattr(record, "extra_data", None) or {}

        parts = [
            datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            f"{color}[{record.levelname}]{self.RESET}",
        ]
        if extra.get("pattern"):
            parts.append(f"<{extra['pattern']}>")
        if extra.get("caller_function"):
            parts.append(
                f"{self.GRAY}[{extra.get('caller_module')}.{extra['caller_function']}() "
                f"{extra.get('caller_file')}:{extra.get('caller_line')}]{self.RESET}"
            )
        parts.append(record.getMessage())

        text = " ".join(parts)
        if record.exc_info:
            text += "\n" + self.formatException(record.exc_info)
        return text


class ServiceRotatingFileHandler(RotatingFileHandler):
    """
    Пишет в <log_dir>/<logger_name>.log. При переполнении файл
    переименовывается в <logger_name>_<дата-время>.log и начинается новый.
    """

    def __init__(self, log_dir: str, max_bytes: int, logger_name: str = "app", encoding: str = "utf-8"):
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.logger_name = logger_name
        super().__init__(
            filename=str(self.log_dir / f"{logger_name}.log"),
            maxBytes=max_bytes,
            backupCount=0,
            encoding=encoding,
        )

    def doRollover(self) -> None:
        if self.stream:
            self.stream.close()
            self.stream = None

        current = Path(self.baseFilename)
        archive = self.log_dir / f"{self.logger_name}_{datetime.now():%Y-%m-%d_%H-%M-%S}.log"
        if current.exists():
            try:
                current.rename(archive)
            except OSError:
                # Файл держит другой процесс: продолжаем писать в текущий
                pass

        self.stream = self._open()


# =============================================================================
# ЛОГГЕРЫ
# =============================================================================

class _LogConfig(NamedTuple):
    level: str = "DEBUG"
    format: str = "colored"
    to_file: bool = False
    file_path: str = "logs/app.log"
    max_bytes: int = 10485760


def _read_logging_settings() -> _LogConfig:
    """Секция logging из настроек; значения неверного типа заменяются умолчаниями."""
    defaults = _LogConfig()
    try:
        from src.config import settings

        section = settings.logging
        raw = _LogConfig(
            level=section.LOG_LEVEL,
            format=section.LOG_FORMAT,
            to_file=section.LOG_TO_FILE,
            file_path=section.LOG_FILE_PATH,
            max_bytes=section.LOG_MAX_BYTES,
        )
    except Exception:
        return defaults

    # В тестах settings может оказаться MagicMock
    return _LogConfig(*(
        value if isinstance(value, type(default)) else default
        for value, default in zip(raw, defaults)
    ))


def _file_handlers(config: _LogConfig, formatter: logging.Formatter) -> list[logging.Handler]:
    """Общие на процесс хендлеры: файл сервиса и error.log."""
    global _GLOBAL_FILE_HANDLER, _GLOBAL_ERROR_HANDLER

    log_path = Path(config.file_path)
    if _GLOBAL_FILE_HANDLER is None:
        log_name = log_path.stem
        if os.getenv("SERVICE_NAME"):
            log_name = f"{log_name}_{os.environ['SERVICE_NAME']}"
        _GLOBAL_FILE_HANDLER = ServiceRotatingFileHandler(
            log_dir=str(log_path.parent),
            max_bytes=config.max_bytes,
            logger_name=log_name,
        )
        _GLOBAL_FILE_HANDLER.setFormatter(formatter)

    if _GLOBAL_ERROR_HANDLER is None:
        _GLOBAL_ERROR_HANDLER = ServiceRotatingFileHandler(
            log_dir=str(log_path.parent),
            max_bytes=config.max_bytes,
            logger_name="error",
        )
        _GLOBAL_ERROR_HANDLER.setLevel(logging.ERROR)
        _GLOBAL_ERROR_HANDLER.setFormatter(formatter)

    return [_GLOBAL_FILE_HANDLER, _GLOBAL_ERROR_HANDLER]


def get_logger(name: str = DEFAULT_LOGGER_NAME) -> logging.Logger:
    """
    Возвращает настроенный логгер (кэшируется по имени).

    Args:
        name: Имя логгера

    Returns:
        Логгер с консольным и, если включено, файловыми хендлерами
    """
    if name in _loggers:
        return _loggers[name]

    config = _read_logging_settings()
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, config.level.upper(), logging.DEBUG))

    if not logger.handlers:
        formatter = JsonFormatter() if config.format == "json" else ColoredFormatter()
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(formatter)
        logger.addHandler(console)

        if config.to_file:
            for handler in _file_handlers(config, formatter):
                logger.addHandler(handler)

        logger.propagate = False

    _loggers[name] = logger
    return logger


def setup_logging() -> None:
    """Инициализирует логирование один раз на процесс и приглушает шумные библиотеки."""
    global _LOGGING_INITIALIZED

    if _LOGGING_INITIALIZED:
        return
    _LOGGING_INITIALIZED = True

    get_logger(DEFAULT_LOGGER_NAME)

    for noisy in ("asyncpg", "aio_pika", "aiormq"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.INFO)


# =============================================================================
# ФУНКЦИИ ЛОГИРОВАНИЯ
# =============================================================================

def _get_caller_info(depth: int = 2) -> dict[str, Any]:
    """
    Описывает кадр, который вызвал функцию логирования.

    Args:
        depth: Сколько кадров пропустить (0: сама _get_caller_info)
    """
    frame = inspect.currentframe()
    try:
        for _ in range(depth):
            if frame is None:
                return {}
            frame = frame.f_back
        if frame is None:
            return {}

        module = inspect.getmodule(frame)
        return {
            "caller_function": frame.f_code.co_name,
            "caller_module": module.__name__ if module else "unknown",
            "caller_file": Path(frame.f_code.co_filename).name or "unknown",
            "caller_line": frame.f_lineno,
        }
    except Exception:
        return {}
    finally:
        del frame


def _emit(
    level: int,
    message: str,
    logger_name: str,
    extra: dict[str, Any] | None,
    exc_info: bool = False,
) -> None:
    # [0] _get_caller_info, [1] _emit, [2] log_*, [3] вызывающий код
    extra_data = {**_get_caller_info(depth=3), **current_rpc_context(), **(extra or {})}
    get_logger(logger_name).log(level, message, extra={"extra_data": extra_data}, exc_info=exc_info)


async def log_info(
    message: str,
    *,
    type_msg: TypeMsg = TypeMsg.INFO,
    logger_name: str = DEFAULT_LOGGER_NAME,
    extra: dict[str, Any] | None = None,
) -> None:
    """
    Логирует сообщение с уровнем type_msg.

    Args:
        message: Текст сообщения
        type_msg: Уровень сообщения
        logger_name: Имя логгера
        extra: Дополнительные поля записи
    """
    _emit(_LEVELS.get(type_msg, logging.INFO), message, logger_name, extra)


async def log_debug(
    message: str,
    logger_name: str = DEFAULT_LOGGER_NAME,
    extra: dict[str, Any] | None = None,
) -> None:
    _emit(logging.DEBUG, message, logger_name, extra)


async def log_warning(
    message: str,
    logger_name: str = DEFAULT_LOGGER_NAME,
    extra: dict[str, Any] | None = None,
) -> None:
    _emit(logging.WARNING, message, logger_name, extra)


async def log_error(
    message: str,
    logger_name: str = DEFAULT_LOGGER_NAME,
    extra: dict[str, Any] | None = None,
    exc_info: bool = False,
) -> None:
    """Логирует ошибку; exc_info=True добавляет трейсбек текущего исключения."""
    _emit(logging.ERROR, message, logger_name, extra, exc_info=exc_info)
