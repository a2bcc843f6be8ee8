#!/usr/bin/env python3
# main.py
"""
Точка входа сервисов фитнес-платформы.

    python main.py [users|ratings|all]

Без аргумента режим берётся из COMPONENT_MODE. В режиме all оба сервиса
работают в одном процессе и делят пул PostgreSQL и соединение RabbitMQ.
"""

from __future__ import annotations

import asyncio
import signal
import sys
from typing import NamedTuple

from src.config import settings
from src.config.loader import COMPONENT_MODES
from src.common.logger import setup_logging, log_info, log_error
from src.common.constants import TypeMsg
from src.infra.database import init_db, close_db
from src.infra.message_broker import init_message_broker, close_message_broker


class ServiceEntry(NamedTuple):
    name: str
    app_path: str
    port_setting: str


USERS_SERVICE = ServiceEntry("Users Service", "src.services.users_service.app:app", "USERS_SERVICE_PORT")
RATING_SERVICE = ServiceEntry("Rating Service", "src.services.rating_service.app:app", "RATING_SERVICE_PORT")

SERVICES_BY_MODE: dict[str, tuple[ServiceEntry, ...]] = {
    "users": (USERS_SERVICE,),
    "ratings": (RATING_SERVICE,),
    "all": (USERS_SERVICE, RATING_SERVICE),
}

_running_tasks: list[asyncio.Task] = []


def setup_signal_handlers() -> None:
    """SIGINT/SIGTERM отменяют задачи сервисов."""

    def stop(sig: int) -> None:
        print(f"\nПолучен сигнал {signal.Signals(sig).name}, останавливаем сервисы...")
        for task in _running_tasks:
            if not task.done():
                task.cancel()

    try:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop, sig)
    except NotImplementedError:
        # Windows: add_signal_handler недоступен
        signal.signal(signal.SIGINT, lambda s, f: stop(s))
        signal.signal(signal.SIGTERM, lambda s, f: stop(s))


async def init_infrastructure() -> None:
    """PostgreSQL (со схемами) и RabbitMQ; lifespan приложений переиспользует их."""
    await init_db()
    await init_message_broker()
    await log_info("Инфраструктура готова", type_msg=TypeMsg.INFO)


async def close_infrastructure() -> None:
    await close_message_broker()
    await close_db()
    await log_info("Подключения закрыты", type_msg=TypeMsg.INFO)


async def serve_app(service: ServiceEntry) -> None:
    """Запускает FastAPI-приложение сервиса через uvicorn до отмены задачи."""
    import uvicorn

    port = getattr(settings.deployment, service.port_setting)
    await log_info(f"Запуск {service.name} на порту {port}", type_msg=TypeMsg.INFO)

    server = uvicorn.Server(uvicorn.Config(
        service.app_path,
        host=settings.deployment.SERVICE_HOST,
        port=port,
        log_level="debug" if settings.system.DEBUG else "info",
    ))
    try:
        await server.serve()
    except asyncio.CancelledError:
        await server.shutdown()
        await log_info(f"{service.name} остановлен", type_msg=TypeMsg.DEBUG)


async def main(mode: str | None = None) -> None:
    """
    Запускает сервисы выбранного режима.

    Args:
        mode: users, ratings или all; None: COMPONENT_MODE из настроек
    """
    global _running_tasks

    setup_logging()
    setup_signal_handlers()

    mode = mode or settings.system.COMPONENT_MODE
    if mode not in SERVICES_BY_MODE:
        await log_error(f"Неизвестный режим запуска: {mode}. Допустимо: {', '.join(COMPONENT_MODES)}")
        sys.exit(2)

    await log_info(
        f"{settings.system.PROJECT_NAME} v{settings.system.VERSION}: режим '{mode}'",
        type_msg=TypeMsg.INFO,
    )

    _running_tasks = []
    try:
        await init_infrastructure()
        _running_tasks = [asyncio.create_task(serve_app(service)) for service in SERVICES_BY_MODE[mode]]
        await asyncio.gather(*_running_tasks)
    except asyncio.CancelledError:
        await log_info("Получен сигнал остановки", type_msg=TypeMsg.INFO)
    except Exception as e:
        await log_error(f"Критическая ошибка: {e}", exc_info=True)
        raise
    finally:
        for task in _running_tasks:
            task.cancel()
        await asyncio.gather(*_running_tasks, return_exceptions=True)
        await close_infrastructure()


USAGE = f"""
Использование: python main.py [режим]

Режимы:
    users      Users Service (:{settings.deployment.USERS_SERVICE_PORT})
    ratings    Rating Service (:{settings.deployment.RATING_SERVICE_PORT})
    all        оба сервиса в одном процессе

Без аргумента режим берётся из COMPONENT_MODE (config.json или окружение).
"""


if __name__ == "__main__":
    cli_mode = None
    if len(sys.argv) > 1:
        arg = sys.argv[1].lower()
        if arg in ("--help", "-h"):
            print(USAGE)
            sys.exit(0)
        if arg not in COMPONENT_MODES:
            print(f"Неизвестный режим: {arg}")
            print(USAGE)
            sys.exit(1)
        cli_mode = arg

    try:
        asyncio.run(main(cli_mode))
    except KeyboardInterrupt:
        pass
