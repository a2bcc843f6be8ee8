# src/services/__init__.py
"""
Сервисы платформы.

Архитектура:
- Каждый сервис обрабатывает паттерны сообщений RabbitMQ (request/response)
- FastAPI-приложение сервиса отдаёт /health и управляет жизненным циклом
- Общая PostgreSQL: у каждого сервиса своя схема

Сервисы:
- users_service: профили, ссылки на тренировки/планы/питание, статистика
- rating_service: оценки пользователей и средний балл целей
"""

__all__: list[str] = []
