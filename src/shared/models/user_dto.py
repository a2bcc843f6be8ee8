import re
from datetime import datetime
from typing import Any, Optional

from pydantic import EmailStr, Field, field_validator, model_validator

from src.shared.models.common import CamelModel, EntityId
from src.shared.models.enums import FitnessLevel, Gender, Goal, UserType

# Колонки, которые не могут быть NULL: null в запросе означает «не менять»
_NON_NULLABLE_FIELDS = (
    "name", "email", "password", "is_active", "workout_ids", "training_plan_ids", "nutrition_ids",
)


# bcrypt учитывает не больше 72 байт пароля
PASSWORD_MAX_BYTES = 72


def validate_strong_password(value: str) -> str:
    """Минимум 8 символов: строчная, заглавная буква, цифра и спецсимвол; не длиннее 72 байт UTF-8."""
    if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"password must not be longer than {PASSWORD_MAX_BYTES} bytes")
    if (
        len(value) < 8
        or not re.search(r"[a-z]", value)
        or not re.search(r"[A-Z]", value)
        or not re.search(r"\d", value)
        or not re.search(r"[^A-Za-z0-9]", value)
    ):
        raise ValueError(
            "password is not strong enough: at least 8 characters with lowercase, "
            "uppercase, number and symbol"
        )
    return value


def ensure_unique(values: Optional[list]) -> Optional[list]:
    """Элементы массива ссылок не должны повторяться."""
    if values is not None and len(set(values)) != len(values):
        raise ValueError("all elements must be unique")
    return values


class UserDTO(CamelModel):
    """Пользователь в ответах сервиса (без хеша пароля)."""
    id: str
    name: str
    email: str
    avatar_url: Optional[str] = None
    is_active: bool = True
    last_login: Optional[datetime] = None
    user_type: Optional[UserType] = None
    age: Optional[int] = None
    gender: Optional[Gender] = None
    weight: Optional[float] = None
    height: Optional[float] = None
    fitness_level: Optional[FitnessLevel] = None
    goal: Optional[Goal] = None
    injury: Optional[str] = None
    workout_ids: list[int] = Field(default_factory=list)
    training_plan_ids: list[int] = Field(default_factory=list)
    nutrition_ids: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @field_validator("workout_ids", "training_plan_ids", "nutrition_ids", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return [] if v is None else list(v)


class CreateUserRequest(CamelModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str
    avatar_url: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("password")
    @classmethod
    def strong_password(cls, v: str) -> str:
        return validate_strong_password(v)


class UpdateUserRequest(CamelModel):
    """Частичное обновление: учитываются только переданные поля."""
    id: str = Field(min_length=1)
    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    avatar_url: Optional[str] = None
    is_active: Optional[bool] = None
    last_login: Optional[datetime] = None
    user_type: Optional[UserType] = None
    age: Optional[int] = Field(default=None, ge=0, le=120)
    gender: Optional[Gender] = None
    weight: Optional[float] = Field(default=None, gt=0)
    height: Optional[float] = Field(default=None, gt=0)
    fitness_level: Optional[FitnessLevel] = None
    goal: Optional[Goal] = None
    injury: Optional[str] = None
    # Ссылки на сущности других сервисов
    nutrition_ids: Optional[list[str]] = None
    workout_ids: Optional[list[EntityId]] = None
    training_plan_ids: Optional[list[EntityId]] = None

    @field_validator("password")
    @classmethod
    def strong_password(cls, v: Optional[str]) -> Optional[str]:
        return validate_strong_password(v) if v is not None else v

    @field_validator("nutrition_ids", "workout_ids", "training_plan_ids")
    @classmethod
    def unique_ids(cls, v: Optional[list]) -> Optional[list]:
        return ensure_unique(v)

    def changes(self) -> dict[str, Any]:
        """Переданные поля (snake_case), кроме id и null для NOT NULL колонок."""
        data = self.model_dump(exclude_unset=True, exclude={"id"})
        return {
            key: value
            for key, value in data.items()
            if not (value is None and key in _NON_NULLABLE_FIELDS)
        }


class UserIdRequest(CamelModel):
    """Принимает {"id": ...} или голую строку."""
    id: str = Field(min_length=1)

    @model_validator(mode="before")
    @classmethod
    def from_bare_value(cls, data: Any) -> Any:
        return {"id": data} if isinstance(data, str) else data


class UserEmailRequest(CamelModel):
    """Принимает {"email": ...} или голую строку."""
    email: EmailStr

    @model_validator(mode="before")
    @classmethod
    def from_bare_value(cls, data: Any) -> Any:
        return {"email": data} if isinstance(data, str) else data


class UpdateUserResponse(CamelModel):
    success: bool = True
    user: UserDTO
