# src/infra/__init__.py
"""
Инфраструктурный слой.
Работа с внешними сервисами: PostgreSQL и брокер сообщений (RabbitMQ).
"""

from src.infra.database import DatabaseManager, get_db
from src.infra.message_broker import MessageBroker, MessageRouter, get_message_broker

__all__ = [
    "DatabaseManager",
    "get_db",
    "MessageBroker",
    "MessageRouter",
    "get_message_broker",
]
