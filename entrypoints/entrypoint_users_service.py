#!/usr/bin/env python3
# entrypoint_users_service.py
"""
Отдельный процесс Users Service (контейнер users).
БД и брокер поднимает lifespan приложения.
"""

import asyncio
import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

# Имя сервиса в логах и в имени лог-файла
os.environ.setdefault("SERVICE_NAME", "users_service")

from main import USERS_SERVICE, serve_app
from src.common.logger import setup_logging


async def main() -> None:
    setup_logging()
    await serve_app(USERS_SERVICE)


if __name__ == "__main__":
    asyncio.run(main())
