# src/infra/message_broker.py
"""
Брокер сообщений на базе RabbitMQ.
Реализует паттерн request/response (RPC) поверх topic exchange:
  - клиент публикует запрос с routing_key = паттерн сообщения и ждёт
    ровно один ответ в эксклюзивной callback-очереди;
  - сервис объявляет очередь на каждый паттерн своего MessageRouter
    и отвечает в reply_to с тем же correlation_id.

Формат ответа: {"response": ...} при успехе, {"err": {"status", "message"}} при ошибке.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable
from uuid import uuid4

import aio_pika
from aio_pika import ExchangeType, Message
from aio_pika.abc import (
    AbstractChannel,
    AbstractConnection,
    AbstractExchange,
    AbstractIncomingMessage,
    AbstractQueue,
)
from aio_pika.exceptions import AMQPError, DeliveryError
from pydantic import BaseModel, ValidationError
from pydantic_core import to_jsonable_python

from src.common.constants import TypeMsg
from src.common.exceptions import (
    BrokerDeliveryError,
    BrokerTimeoutError,
    RpcError,
)
from src.common.logger import log_debug, log_error, log_info, log_warning, rpc_context


MessageHandler = Callable[[Any], Awaitable[Any]]


def encode_body(data: Any) -> bytes:
    """Сериализует данные в JSON (pydantic-модели: по алиасам camelCase)."""
    return json.dumps(to_jsonable_python(data, by_alias=True), ensure_ascii=False).encode()


def format_validation_error(error: ValidationError) -> str:
    """Собирает ошибки pydantic в одну строку для конверта."""
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        message = item.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "Validation failed"


# =============================================================================
# РЕГИСТРАЦИЯ ОБРАБОТЧИКОВ
# =============================================================================

@dataclass
class PatternHandler:
    """Обработчик одного паттерна сообщения."""
    pattern: str
    handler: MessageHandler
    request_model: type[BaseModel] | None = None


class MessageRouter:
    """
    Реестр обработчиков паттернов сообщений сервиса.

    Example:
        router = MessageRouter("users")

        @router.message_pattern("find.user.by.id", UserIdRequest)
        async def find_user_by_id(request: UserIdRequest) -> UserDTO:
            ...
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._handlers: dict[str, PatternHandler] = {}

    @property
    def patterns(self) -> list[str]:
        """Зарегистрированные паттерны."""
        return list(self._handlers)

    def message_pattern(
        self,
        pattern: str,
        request_model: type[BaseModel] | None = None,
    ) -> Callable[[MessageHandler], MessageHandler]:
        """
        Декоратор регистрации обработчика.

        Args:
            pattern: Паттерн сообщения (routing key)
            request_model: Модель для валидации payload; None: payload передаётся как есть
        """
        def decorator(func: MessageHandler) -> MessageHandler:
            if pattern in self._handlers:
                raise ValueError(f"Паттерн {pattern} уже зарегистрирован в {self.name}")
            self._handlers[pattern] = PatternHandler(pattern, func, request_model)
            return func

        return decorator

    async def dispatch(self, pattern: str, payload: Any) -> dict[str, Any]:
        """
        Вызывает обработчик и упаковывает результат или ошибку в конверт ответа.

        Args:
            pattern: Паттерн сообщения
            payload: Десериализованное тело запроса

        Returns:
            {"response": ...} или {"err": {...}}
        """
        entry = self._handlers.get(pattern)
        if entry is None:
            return {"err": RpcError(f"There is no matching message handler for {pattern}", 404).to_envelope()}

        try:
            data = payload
            if entry.request_model is not None:
                data = entry.request_model.model_validate(payload if payload is not None else {})
            result = await entry.handler(data)
            return {"response": to_jsonable_python(result, by_alias=True)}
        except ValidationError as e:
            await log_warning(f"[{self.name}] {pattern}: невалидный payload: {e.error_count()} ошибок")
            return {"err": RpcError(format_validation_error(e), 400).to_envelope()}
        except RpcError as e:
            await log_warning(f"[{self.name}] {pattern}: {e.status.value} {e.message}")
            return {"err": e.to_envelope()}
        except Exception as e:
            await log_error(f"[{self.name}] {pattern}: необработанная ошибка: {e}", exc_info=True)
            return {"err": RpcError(str(e) or "Internal server error").to_envelope()}


# =============================================================================
# КЛИЕНТ / СЕРВЕР RPC
# =============================================================================

class MessageBroker:
    """
    Брокер сообщений на базе RabbitMQ.

    Реализует:
    - Запрос с ожиданием одного ответа (request)
    - Обслуживание паттернов MessageRouter (serve)
    - Автоматическое переподключение (connect_robust)
    """

    _instance: MessageBroker | None = None

    def __new__(cls) -> MessageBroker:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        """Инициализация (вызывается только один раз благодаря Singleton)."""
        if hasattr(self, "_initialized"):
            return
        self._initialized = True
        self._connection: AbstractConnection | None = None
        self._channel: AbstractChannel | None = None
        self._exchange: AbstractExchange | None = None
        self._callback_queue: AbstractQueue | None = None
        self._futures: dict[str, asyncio.Future] = {}
        self._consumers: dict[str, tuple[AbstractQueue, str]] = {}
        self._exchange_name = "fitness.rpc"
        self._queue_prefix = "fitness"
        self._request_timeout = 10.0

    @property
    def is_connected(self) -> bool:
        """Проверяет, активно ли соединение."""
        return self._connection is not None and not self._connection.is_closed

    @property
    def request_timeout(self) -> float:
        """Таймаут ожидания ответа по умолчанию (секунды)."""
        return self._request_timeout

    async def connect(
        self,
        url: str | None = None,
        exchange_name: str | None = None,
        prefetch_count: int = 10,
        queue_prefix: str | None = None,
        request_timeout: float | None = None,
    ) -> None:
        """
        Подключается к RabbitMQ.

        Args:
            url: URL RabbitMQ (если None, берётся из конфига)
            exchange_name: Имя exchange
            prefetch_count: Количество сообщений для prefetch
            queue_prefix: Префикс имён очередей паттернов
            request_timeout: Таймаут ожидания ответа по умолчанию
        """
        if self.is_connected:
            return

        if url is None:
            from src.config import settings
            url = settings.rabbitmq.url
            exchange_name = settings.rabbitmq.RABBITMQ_EXCHANGE
            prefetch_count = settings.rabbitmq.RABBITMQ_PREFETCH_COUNT
            queue_prefix = settings.rabbitmq.RABBITMQ_QUEUE_PREFIX
            request_timeout = settings.rabbitmq.BROKER_REQUEST_TIMEOUT

        if exchange_name:
            self._exchange_name = exchange_name
        if queue_prefix:
            self._queue_prefix = queue_prefix
        if request_timeout:
            self._request_timeout = request_timeout

        await log_info("Подключение к RabbitMQ...", type_msg=TypeMsg.INFO)

        self._connection = await aio_pika.connect_robust(url)
        # publisher confirms включены: непринятое mandatory-сообщение даёт DeliveryError
        self._channel = await self._connection.channel(publisher_confirms=True)
        await self._channel.set_qos(prefetch_count=prefetch_count)

        self._exchange = await self._channel.declare_exchange(
            self._exchange_name,
            ExchangeType.TOPIC,
            durable=True,
        )

        self._callback_queue = await self._channel.declare_queue(exclusive=True, auto_delete=True)
        await self._callback_queue.consume(self._on_response, no_ack=True)

        await log_info("Подключение к RabbitMQ установлено", type_msg=TypeMsg.INFO)

    async def disconnect(self) -> None:
        """Закрывает соединение с RabbitMQ и отменяет ожидающие запросы."""
        for future in self._futures.values():
            if not future.done():
                future.set_exception(BrokerDeliveryError("Соединение с брокером закрыто"))
        self._futures.clear()

        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            self._channel = None
            self._exchange = None
            self._callback_queue = None
            self._consumers = {}
            await log_info("Соединение с RabbitMQ закрыто", type_msg=TypeMsg.INFO)

    async def request(
        self,
        pattern: str,
        payload: Any,
        timeout: float | None = None,
    ) -> Any:
        """
        Отправляет запрос и ждёт один ответ.

        Args:
            pattern: Паттерн сообщения (routing key)
            payload: Тело запроса (dict или pydantic-модель)
            timeout: Таймаут ожидания (секунды), по умолчанию из конфига

        Returns:
            Содержимое поля response ответа

        Raises:
            BrokerDeliveryError: нет соединения или нет получателя
            BrokerTimeoutError: ответ не пришёл вовремя
            RpcError: удалённый сервис вернул конверт ошибки
        """
        if not self.is_connected or self._exchange is None or self._callback_queue is None:
            raise BrokerDeliveryError(f"No connection to message broker for {pattern}")

        correlation_id = str(uuid4())
        future = asyncio.get_running_loop().create_future()
        self._futures[correlation_id] = future

        try:
            message = Message(
                body=encode_body(payload),
                content_type="application/json",
                correlation_id=correlation_id,
                reply_to=self._callback_queue.name,
                message_id=correlation_id,
                timestamp=datetime.now(timezone.utc),
            )
            try:
                await self._exchange.publish(message, routing_key=pattern, mandatory=True)
            except DeliveryError as e:
                raise BrokerDeliveryError(f"No service is listening for {pattern}") from e
            except (AMQPError, ConnectionError) as e:
                raise BrokerDeliveryError(f"Failed to deliver {pattern}: {e}") from e

            await log_debug(f"Запрос отправлен: {pattern} ({correlation_id})")

            try:
                reply = await asyncio.wait_for(future, timeout or self._request_timeout)
            except asyncio.TimeoutError:
                await log_warning(f"Таймаут ожидания ответа на {pattern}")
                raise BrokerTimeoutError(f"Timed out waiting for {pattern}") from None
        finally:
            self._futures.pop(correlation_id, None)

        if not isinstance(reply, dict):
            raise BrokerDeliveryError(f"Malformed reply for {pattern}")
        if reply.get("err") is not None:
            raise RpcError.from_envelope(reply["err"])
        return reply.get("response")

    async def _on_response(self, message: AbstractIncomingMessage) -> None:
        """Сопоставляет ответ с ожидающим запросом по correlation_id."""
        future = self._futures.get(message.correlation_id or "")
        if future is None or future.done():
            await log_debug(f"Ответ без ожидающего запроса: {message.correlation_id}")
            return

        try:
            future.set_result(json.loads(message.body.decode()))
        except ValueError:
            future.set_exception(BrokerDeliveryError("Reply is not valid JSON"))

    async def serve(self, router: MessageRouter) -> None:
        """
        Начинает обслуживать все паттерны роутера.

        Args:
            router: Реестр обработчиков сервиса
        """
        if not self.is_connected or self._channel is None or self._exchange is None:
            raise BrokerDeliveryError("No connection to message broker")

        for pattern in router.patterns:
            queue_name = f"{self._queue_prefix}.{pattern}"
            if queue_name in self._consumers:
                continue

            queue = await self._channel.declare_queue(queue_name, durable=True)
            await queue.bind(self._exchange, routing_key=pattern)
            consumer_tag = await queue.consume(self._make_consumer(router, pattern))
            self._consumers[queue_name] = (queue, consumer_tag)

            await log_debug(f"[{router.name}] подписка на {pattern}")

        await log_info(
            f"[{router.name}] обслуживается паттернов: {len(router.patterns)}",
            type_msg=TypeMsg.INFO,
        )

    async def stop_serving(self) -> None:
        """Отменяет всех consumer-ов паттернов."""
        for queue, consumer_tag in self._consumers.values():
            try:
                await queue.cancel(consumer_tag)
            except AMQPError as e:
                await log_warning(f"Не удалось отменить consumer {queue.name}: {e}")
        self._consumers = {}

    def _make_consumer(
        self,
        router: MessageRouter,
        pattern: str,
    ) -> Callable[[AbstractIncomingMessage], Awaitable[None]]:
        """Создаёт consumer: разбор запроса, вызов роутера, отправка ответа."""
        async def consumer(message: AbstractIncomingMessage) -> None:
            async with message.process(requeue=False):
                with rpc_context(pattern, message.correlation_id):
                    try:
                        payload = json.loads(message.body.decode()) if message.body else None
                    except ValueError:
                        reply: dict[str, Any] = {"err": RpcError("Payload is not valid JSON", 400).to_envelope()}
                    else:
                        reply = await router.dispatch(pattern, payload)

                if not message.reply_to or self._channel is None:
                    return

                try:
                    await self._channel.default_exchange.publish(
                        Message(
                            body=encode_body(reply),
                            content_type="application/json",
                            correlation_id=message.correlation_id,
                        ),
                        routing_key=message.reply_to,
                    )
                except (AMQPError, ConnectionError) as e:
                    await log_error(f"Не удалось отправить ответ на {pattern}: {e}")

        return consumer

    async def health_check(self) -> bool:
        """Проверяет здоровье подключения к RabbitMQ."""
        return self.is_connected


# Глобальный экземпляр
_message_broker: MessageBroker | None = None


def get_message_broker() -> MessageBroker:
    """Возвращает глобальный экземпляр MessageBroker."""
    global _message_broker
    if _message_broker is None:
        _message_broker = MessageBroker()
    return _message_broker


async def init_message_broker() -> MessageBroker:
    """Инициализирует подключение к RabbitMQ из настроек конфигурации."""
    from src.config import settings

    broker = get_message_broker()
    await broker.connect(
        url=settings.rabbitmq.url,
        exchange_name=settings.rabbitmq.RABBITMQ_EXCHANGE,
        prefetch_count=settings.rabbitmq.RABBITMQ_PREFETCH_COUNT,
        queue_prefix=settings.rabbitmq.RABBITMQ_QUEUE_PREFIX,
        request_timeout=settings.rabbitmq.BROKER_REQUEST_TIMEOUT,
    )
    await log_info(
        f"RabbitMQ подключён: {settings.rabbitmq.RABBITMQ_HOST}:{settings.rabbitmq.RABBITMQ_PORT}",
        type_msg=TypeMsg.INFO,
    )
    return broker


async def close_message_broker() -> None:
    """Останавливает обслуживание паттернов и закрывает подключение."""
    broker = get_message_broker()
    await broker.stop_serving()
    await broker.disconnect()
    await log_info("RabbitMQ отключён", type_msg=TypeMsg.INFO)
