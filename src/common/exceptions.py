# src/common/exceptions.py
"""
Единый конверт ошибок для обработчиков сообщений.

Любая ошибка на границе сервиса превращается в RpcError со статусом
и сообщением. Ошибки БД и брокера наружу в сыром виде не уходят.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, NoReturn


class RpcError(Exception):
    """Ошибка, возвращаемая вызывающей стороне (status + message)."""

    def __init__(
        self,
        message: str,
        status: HTTPStatus | int = HTTPStatus.INTERNAL_SERVER_ERROR,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = HTTPStatus(status)

    def to_envelope(self) -> dict[str, Any]:
        """Сериализует ошибку в конверт ответа."""
        return {"status": self.status.value, "message": self.message}

    @classmethod
    def from_envelope(cls, data: dict[str, Any]) -> RpcError:
        """Восстанавливает ошибку из конверта, полученного от другого сервиса."""
        status = data.get("status", HTTPStatus.INTERNAL_SERVER_ERROR)
        try:
            status = HTTPStatus(int(status))
        except (TypeError, ValueError):
            status = HTTPStatus.INTERNAL_SERVER_ERROR
        return cls(str(data.get("message") or "Unknown error"), status)

    def __repr__(self) -> str:
        return f"RpcError(status={self.status.value}, message={self.message!r})"


class NotFoundError(RpcError):
    """Запись не найдена."""

    def __init__(self, message: str) -> None:
        super().__init__(message, HTTPStatus.NOT_FOUND)


class ConflictError(RpcError):
    """Конфликт уникальности."""

    def __init__(self, message: str) -> None:
        super().__init__(message, HTTPStatus.CONFLICT)


class BadRequestError(RpcError):
    """Некорректные входные данные."""

    def __init__(self, message: str) -> None:
        super().__init__(message, HTTPStatus.BAD_REQUEST)


class BrokerTimeoutError(Exception):
    """Соседний сервис не ответил за отведённое время."""


class BrokerDeliveryError(Exception):
    """Сообщение не удалось доставить (нет соединения или нет получателя)."""


GATEWAY_TIMEOUT_MESSAGE = "Operation timed out"


def handle_error(error: BaseException, default_message: str) -> NoReturn:
    """
    Приводит любую ошибку к RpcError и выбрасывает её.

    Args:
        error: Перехваченное исключение
        default_message: Сообщение, если у исключения нет своего
    """
    if isinstance(error, RpcError):
        raise error
    # 504 только для вызовов соседних сервисов; таймаут запроса к БД: 500
    if isinstance(error, BrokerTimeoutError):
        raise RpcError(GATEWAY_TIMEOUT_MESSAGE, HTTPStatus.GATEWAY_TIMEOUT) from error
    if isinstance(error, BrokerDeliveryError):
        raise RpcError(str(error) or GATEWAY_TIMEOUT_MESSAGE, HTTPStatus.GATEWAY_TIMEOUT) from error
    raise RpcError(str(error) or default_message, HTTPStatus.INTERNAL_SERVER_ERROR) from error
