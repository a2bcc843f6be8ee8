#!/usr/bin/env python3
# entrypoint_rating_service.py
"""
Отдельный процесс Rating Service (контейнер ratings).
"""

import asyncio
import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

os.environ.setdefault("SERVICE_NAME", "rating_service")

from main import RATING_SERVICE, serve_app
from src.common.logger import setup_logging


async def main() -> None:
    setup_logging()
    await serve_app(RATING_SERVICE)


if __name__ == "__main__":
    asyncio.run(main())
