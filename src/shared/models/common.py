# src/shared/models/common.py
"""
Общие модели для всех сервисов.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Annotated, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


T = TypeVar("T")

# Колонки INTEGER в PostgreSQL
PG_INT_MAX = 2**31 - 1

# Идентификатор сущности другого сервиса (INTEGER, > 0)
EntityId = Annotated[int, Field(gt=0, le=PG_INT_MAX)]


class CamelModel(BaseModel):
    """
    База для моделей сообщений: на проводе ключи в camelCase,
    на входе принимаются и camelCase, и snake_case.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class PaginationParams(CamelModel):
    """Параметры пагинации."""

    page: int = Field(default=1, ge=1, description="Номер страницы")
    limit: int = Field(default=10, ge=1, le=100, description="Размер страницы")

    @property
    def offset(self) -> int:
        """Смещение для SQL-запроса."""
        return (self.page - 1) * self.limit


class PaginationMeta(CamelModel):
    """Метаданные страницы."""

    total_users: int
    page: int
    last_page: int


class PaginatedResponse(CamelModel, Generic[T]):
    """Пагинированный ответ."""

    data: list[T]
    meta: PaginationMeta

    @classmethod
    def create(
        cls,
        items: list[T],
        total: int,
        pagination: PaginationParams,
    ) -> "PaginatedResponse[T]":
        """Создаёт пагинированный ответ; last_page = ceil(total / limit)."""
        return cls(
            data=items,
            meta=PaginationMeta(
                total_users=total,
                page=pagination.page,
                last_page=math.ceil(total / pagination.limit),
            ),
        )


class DateRangeRequest(CamelModel):
    """Необязательный диапазон дат (границы включительно)."""

    start_date: datetime | None = None
    end_date: datetime | None = None

    @field_validator("start_date", "end_date")
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        """Дата без часового пояса считается UTC (соединения с БД работают в UTC)."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @model_validator(mode="after")
    def check_order(self) -> "DateRangeRequest":
        """Начало диапазона не позже конца."""
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("startDate must not be later than endDate")
        return self


class OperationResult(CamelModel):
    """Результат операции без возвращаемой сущности."""

    success: bool = True
    message: str


class HealthStatus(BaseModel):
    """Статус здоровья сервиса."""

    service: str
    status: str = "healthy"  # healthy, degraded
    version: str | None = None
    uptime_seconds: float | None = None
    dependencies: dict[str, str] = Field(default_factory=dict)
