# src/services/app_factory.py
"""
Сборка FastAPI-приложения сервиса.

HTTP у сервисов служебный: /health и жизненный цикл. Вся бизнес-логика
приходит через паттерны RabbitMQ, которые регистрирует роутер сервиса.
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from src.common.logger import log_info, TypeMsg
from src.config import settings
from src.infra.database import init_db, close_db, get_db
from src.infra.message_broker import (
    MessageRouter,
    close_message_broker,
    get_message_broker,
    init_message_broker,
)
from src.shared.models.common import HealthStatus


def _state(ok: bool) -> str:
    return "healthy" if ok else "unhealthy"


def create_service_app(service_name: str, title: str, description: str, router: MessageRouter) -> FastAPI:
    """
    Приложение сервиса: при старте подключает БД и брокер и начинает
    обслуживать паттерны router, при остановке закрывает подключения.

    Args:
        service_name: Имя в ответе /health
        title: Заголовок OpenAPI
        description: Описание OpenAPI
        router: Обработчики паттернов сервиса
    """
    started_at = time.monotonic()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await log_info(f"Starting {title}...", type_msg=TypeMsg.INFO)
        await init_db()
        broker = await init_message_broker()
        await broker.serve(router)

        yield

        await log_info(f"Shutting down {title}...", type_msg=TypeMsg.INFO)
        await close_message_broker()
        await close_db()

    app = FastAPI(
        title=title,
        description=description,
        version=settings.system.VERSION,
        lifespan=lifespan,
    )

    @app.get("/health", response_model=HealthStatus)
    async def health_check() -> HealthStatus:
        db_ok = await get_db().health_check()
        broker_ok = await get_message_broker().health_check()
        return HealthStatus(
            service=service_name,
            status="healthy" if db_ok and broker_ok else "degraded",
            version=settings.system.VERSION,
            uptime_seconds=round(time.monotonic() - started_at, 2),
            dependencies={"postgres": _state(db_ok), "rabbitmq": _state(broker_ok)},
        )

    return app
