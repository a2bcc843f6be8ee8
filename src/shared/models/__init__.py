# src/shared/models/__init__.py
"""
Общие DTO и Pydantic-модели для межсервисного взаимодействия.
"""

from src.shared.models.enums import (
    TargetType,
    UserType,
    Gender,
    Goal,
    FitnessLevel,
)
from src.shared.models.common import (
    CamelModel,
    PaginationParams,
    PaginationMeta,
    PaginatedResponse,
    DateRangeRequest,
    OperationResult,
    HealthStatus,
)
from src.shared.models.user_dto import (
    UserDTO,
    CreateUserRequest,
    UpdateUserRequest,
    UpdateUserResponse,
    UserIdRequest,
    UserEmailRequest,
)
from src.shared.models.rating_dto import (
    CreateRatingRequest,
    RatingDTO,
    TargetScoreDTO,
)
from src.shared.models.stats_dto import (
    UserActivityStats,
    AgeStat,
    GoalStat,
    GenderStat,
    GenderStatsByTargetRequest,
    UserStatistics,
)

__all__ = [
    # Enums
    "TargetType",
    "UserType",
    "Gender",
    "Goal",
    "FitnessLevel",
    # Common
    "CamelModel",
    "PaginationParams",
    "PaginationMeta",
    "PaginatedResponse",
    "DateRangeRequest",
    "OperationResult",
    "HealthStatus",
    # User
    "UserDTO",
    "CreateUserRequest",
    "UpdateUserRequest",
    "UpdateUserResponse",
    "UserIdRequest",
    "UserEmailRequest",
    # Rating
    "CreateRatingRequest",
    "RatingDTO",
    "TargetScoreDTO",
    # Stats
    "UserActivityStats",
    "AgeStat",
    "GoalStat",
    "GenderStat",
    "GenderStatsByTargetRequest",
    "UserStatistics",
]
