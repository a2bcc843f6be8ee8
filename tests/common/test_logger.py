# tests/common/test_logger.py
"""
Unit тесты для модуля логирования (src/common/logger.py).
"""

import asyncio
import json
import logging
import sys
from pathlib import Path
from unittest.mock import MagicMock, Mock, patch

import pytest

import src.common.logger as logger_module
from src.common.logger import (
    DEFAULT_LOGGER_NAME,
    ColoredFormatter,
    JsonFormatter,
    ServiceRotatingFileHandler,
    _get_caller_info,
    _loggers,
    current_rpc_context,
    get_logger,
    log_debug,
    log_error,
    log_info,
    log_warning,
    rpc_context,
    service_name,
    setup_logging,
)
from src.common.constants import TypeMsg


def _make_record(level: int = logging.INFO, msg: str = "Test message") -> logging.LogRecord:
    record = logging.LogRecord(
        name="test_logger",
        level=level,
        pathname="test.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )
    record.module = "test_module"
    record.funcName = "test_function"
    return record


class TestRpcContext:
    """Контекст обрабатываемого сообщения."""

    def test_empty_outside_handler(self) -> None:
        assert current_rpc_context() == {}

    def test_binds_pattern_and_correlation_id(self) -> None:
        with rpc_context("create.rating", "corr-1"):
            assert current_rpc_context() == {"pattern": "create.rating", "correlation_id": "corr-1"}
        assert current_rpc_context() == {}

    def test_missing_correlation_id(self) -> None:
        with rpc_context("find.user.by.id"):
            assert current_rpc_context()["correlation_id"] == "-"

    @pytest.mark.asyncio
    async def test_isolated_between_tasks(self) -> None:
        """Параллельные обработчики не видят контекст друг друга."""
        async def handle(pattern: str) -> str:
            with rpc_context(pattern):
                await asyncio.sleep(0.01)
                return current_rpc_context()["pattern"]

        results = await asyncio.gather(handle("create.user"), handle("create.rating"))

        assert results == ["create.user", "create.rating"]

    def test_service_name_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SERVICE_NAME", "rating_service")
        assert service_name() == "rating_service"
        monkeypatch.delenv("SERVICE_NAME")
        assert service_name() == DEFAULT_LOGGER_NAME


class TestJsonFormatter:
    """Тесты для JsonFormatter."""

    def test_format_basic_record(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Запись сериализуется в валидный JSON с основными полями."""
        monkeypatch.setenv("SERVICE_NAME", "users_service")

        result = json.loads(JsonFormatter().format(_make_record()))

        assert result["service"] == "users_service"
        assert result["level"] == "INFO"
        assert result["message"] == "Test message"
        assert result["module"] == "test_module"
        assert result["function"] == "test_function"
        assert result["line"] == 10
        assert result["timestamp"].endswith("Z")
        assert "extra" not in result

    def test_rpc_fields_on_top_level(self) -> None:
        """pattern и correlation_id выносятся из extra на верхний уровень."""
        record = _make_record(logging.WARNING)
        record.extra_data = {"pattern": "create.rating", "correlation_id": "corr-1", "user_id": "u-1"}

        result = json.loads(JsonFormatter().format(record))

        assert result["pattern"] == "create.rating"
        assert result["correlation_id"] == "corr-1"
        assert result["extra"] == {"user_id": "u-1"}

    def test_format_with_exception(self) -> None:
        """Трейсбек исключения попадает в поле exception."""
        try:
            raise ValueError("Test exception")
        except ValueError:
            exc_info = sys.exc_info()

        record = _make_record(logging.ERROR, "Error occurred")
        record.exc_info = exc_info

        result = json.loads(JsonFormatter().format(record))

        assert "ValueError" in result["exception"]
        assert "Test exception" in result["exception"]


class TestColoredFormatter:
    """Тесты для ColoredFormatter."""

    def test_format_basic_record(self) -> None:
        result = ColoredFormatter().format(_make_record())

        assert "INFO" in result
        assert "Test message" in result
        assert "\033[" in result  # ANSI код присутствует

    def test_format_with_caller_and_pattern(self) -> None:
        record = _make_record(logging.DEBUG, "Debug message")
        record.extra_data = {
            "pattern": "create.rating",
            "caller_function": "create_rating",
            "caller_module": "src.services.rating_service.service",
            "caller_file": "service.py",
            "caller_line": 42,
        }

        result = ColoredFormatter().format(record)

        assert "<create.rating>" in result
        assert "src.services.rating_service.service.create_rating()" in result
        assert "service.py:42" in result


class TestServiceRotatingFileHandler:
    """Тесты для ServiceRotatingFileHandler."""

    def test_creates_named_file(self, tmp_path: Path) -> None:
        """Файл лога называется по имени сервиса."""
        handler = ServiceRotatingFileHandler(str(tmp_path / "logs"), max_bytes=1024, logger_name="users_service")
        try:
            assert Path(handler.baseFilename) == tmp_path / "logs" / "users_service.log"
        finally:
            handler.close()

    def test_rollover_archives_file(self, tmp_path: Path) -> None:
        """При ротации текущий файл архивируется с меткой времени."""
        handler = ServiceRotatingFileHandler(str(tmp_path), max_bytes=1024, logger_name="rating_service")
        try:
            handler.doRollover()
            assert len(list(tmp_path.glob("rating_service_*.log"))) == 1
            assert (tmp_path / "rating_service.log").exists()
        finally:
            handler.close()


class TestGetLogger:
    """Тесты для get_logger."""

    def setup_method(self) -> None:
        """Очистка кэша логгеров перед каждым тестом."""
        _loggers.clear()
        for logger in logging.Logger.manager.loggerDict.values():
            if isinstance(logger, logging.Logger):
                logger.handlers.clear()

    def test_get_logger_creates_new_logger(self) -> None:
        logger = get_logger("test_logger")

        assert logger.name == "test_logger"
        assert len(logger.handlers) >= 1
        assert logger.propagate is False

    def test_get_logger_returns_cached_logger(self) -> None:
        assert get_logger("test_logger") is get_logger("test_logger")

    @patch("src.config.settings")
    def test_get_logger_uses_settings(self, mock_settings: Mock) -> None:
        """Уровень и формат берутся из settings.logging."""
        mock_settings.logging.LOG_LEVEL = "WARNING"
        mock_settings.logging.LOG_FORMAT = "json"
        mock_settings.logging.LOG_TO_FILE = False
        mock_settings.logging.LOG_FILE_PATH = "logs/test.log"
        mock_settings.logging.LOG_MAX_BYTES = 10485760

        logger = get_logger("test_with_settings")

        assert logger.level == logging.WARNING
        assert isinstance(logger.handlers[0].formatter, JsonFormatter)

    @patch("src.config.settings")
    def test_get_logger_ignores_mock_values(self, mock_settings: Mock) -> None:
        """Значения неверного типа заменяются значениями по умолчанию."""
        mock_settings.logging = MagicMock()

        logger = get_logger("test_mock_settings")

        assert logger.level == logging.DEBUG
        assert isinstance(logger.handlers[0].formatter, ColoredFormatter)

    def test_get_logger_handles_missing_settings(self) -> None:
        # settings импортируется внутри функции, поэтому патчим модуль src.config
        with patch.dict("sys.modules", {"src.config": None}):
            assert get_logger("test_no_settings").level == logging.DEBUG

    def test_get_logger_writes_to_files(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """При LOG_TO_FILE создаются файл сервиса и error.log."""
        monkeypatch.setattr(logger_module, "_GLOBAL_FILE_HANDLER", None)
        monkeypatch.setattr(logger_module, "_GLOBAL_ERROR_HANDLER", None)
        monkeypatch.setenv("SERVICE_NAME", "users_service")

        with patch("src.config.settings") as mock_settings:
            mock_settings.logging.LOG_LEVEL = "INFO"
            mock_settings.logging.LOG_FORMAT = "colored"
            mock_settings.logging.LOG_TO_FILE = True
            mock_settings.logging.LOG_FILE_PATH = str(tmp_path / "app.log")
            mock_settings.logging.LOG_MAX_BYTES = 4096

            logger = get_logger("test_file_logger")

        try:
            assert (tmp_path / "app_users_service.log").exists()
            assert (tmp_path / "error.log").exists()
            assert len(logger.handlers) == 3
        finally:
            for handler in logger.handlers:
                handler.close()
            logger.handlers.clear()


class TestSetupLogging:
    """Тесты для setup_logging."""

    def setup_method(self) -> None:
        _loggers.clear()

    def test_setup_logging_initializes_system(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(logger_module, "_LOGGING_INITIALIZED", False)

        setup_logging()

        assert DEFAULT_LOGGER_NAME in _loggers

    def test_setup_logging_sets_third_party_levels(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(logger_module, "_LOGGING_INITIALIZED", False)

        setup_logging()

        assert logging.getLogger("asyncpg").level == logging.WARNING
        assert logging.getLogger("aio_pika").level == logging.WARNING
        assert logging.getLogger("uvicorn").level == logging.INFO


class TestGetCallerInfo:
    """Тесты для _get_caller_info."""

    def test_reports_outer_frame(self) -> None:
        """По умолчанию описывается код, вызвавший функцию-обёртку."""
        def log_helper():
            return _get_caller_info()

        def business_code():
            return log_helper()

        info = business_code()

        assert info["caller_function"] == "business_code"
        assert info["caller_file"] == "test_logger.py"

    def test_too_deep_returns_empty(self) -> None:
        assert _get_caller_info(depth=10_000) == {}


class TestLogFunctions:
    """Тесты для асинхронных функций логирования."""

    def setup_method(self) -> None:
        _loggers.clear()

    @pytest.mark.asyncio
    async def test_log_info_basic(self) -> None:
        with patch.object(logging.Logger, "log") as mock_log:
            await log_info("Test message")

        level, message = mock_log.call_args.args
        assert level == logging.INFO
        assert message == "Test message"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "type_msg,level",
        [
            (TypeMsg.DEBUG, logging.DEBUG),
            (TypeMsg.WARNING, logging.WARNING),
            (TypeMsg.ERROR, logging.ERROR),
            (TypeMsg.CRITICAL, logging.CRITICAL),
        ],
    )
    async def test_log_info_with_type_msg(self, type_msg: TypeMsg, level: int) -> None:
        with patch.object(logging.Logger, "log") as mock_log:
            await log_info("message", type_msg=type_msg)

        assert mock_log.call_args.args[0] == level

    @pytest.mark.asyncio
    async def test_caller_is_business_code(self) -> None:
        """Обёртки log_* не попадают в caller_function."""
        async def create_rating():
            await log_warning("Warning message")

        with patch.object(logging.Logger, "log") as mock_log:
            await create_rating()

        extra_data = mock_log.call_args.kwargs["extra"]["extra_data"]
        assert extra_data["caller_function"] == "create_rating"

    @pytest.mark.asyncio
    async def test_rpc_context_and_extra_are_merged(self) -> None:
        with patch.object(logging.Logger, "log") as mock_log:
            with rpc_context("find.user.by.id", "corr-7"):
                await log_debug("Debug message", extra={"user_id": "u-1"})

        extra_data = mock_log.call_args.kwargs["extra"]["extra_data"]
        assert mock_log.call_args.args[0] == logging.DEBUG
        assert extra_data["pattern"] == "find.user.by.id"
        assert extra_data["correlation_id"] == "corr-7"
        assert extra_data["user_id"] == "u-1"

    @pytest.mark.asyncio
    async def test_log_error_with_exc_info(self) -> None:
        with patch.object(logging.Logger, "log") as mock_log:
            await log_error("Error message", exc_info=True)

        assert mock_log.call_args.args[0] == logging.ERROR
        assert mock_log.call_args.kwargs["exc_info"] is True

    @pytest.mark.asyncio
    async def test_log_info_with_custom_logger_name(self) -> None:
        with patch("src.common.logger.get_logger") as mock_get_logger:
            mock_logger = MagicMock()
            mock_get_logger.return_value = mock_logger

            await log_info("Test message", logger_name="rating_service")

            mock_get_logger.assert_called_once_with("rating_service")
            mock_logger.log.assert_called_once()
