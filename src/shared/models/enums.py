from enum import Enum

class TargetType(str, Enum):
    """Типы оцениваемых сущностей (принадлежат соседним сервисам)."""
    EXERCISE = "EXERCISE"
    WORKOUT = "WORKOUT"
    TRAINING_PLAN = "TRAINING_PLAN"
    EQUIPMENT = "EQUIPMENT"
    NUTRITION = "NUTRITION"

    def __str__(self) -> str:
        return self.value

class UserType(str, Enum):
    """Тип учётной записи."""
    USER = "USER"
    TRAINER = "TRAINER"
    ADMIN = "ADMIN"

    def __str__(self) -> str:
        return self.value

class Gender(str, Enum):
    """Пол пользователя."""
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"

    def __str__(self) -> str:
        return self.value

class Goal(str, Enum):
    """Цель тренировок."""
    WEIGHT_LOSS = "WEIGHT_LOSS"
    MUSCLE_GAIN = "MUSCLE_GAIN"
    ENDURANCE = "ENDURANCE"
    FLEXIBILITY = "FLEXIBILITY"
    MAINTENANCE = "MAINTENANCE"

    def __str__(self) -> str:
        return self.value

class FitnessLevel(str, Enum):
    """Уровень физической подготовки."""
    BEGINNER = "BEGINNER"
    INTERMEDIATE = "INTERMEDIATE"
    ADVANCED = "ADVANCED"

    def __str__(self) -> str:
        return self.value
