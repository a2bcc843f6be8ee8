from datetime import datetime

from pydantic import Field

from src.shared.models.common import PG_INT_MAX, CamelModel
from src.shared.models.enums import TargetType

MIN_SCORE = 0
MAX_SCORE = 5


class CreateRatingRequest(CamelModel):
    score: float = Field(ge=MIN_SCORE, le=MAX_SCORE)
    user_id: str = Field(min_length=1)
    target_id: int = Field(gt=0, le=PG_INT_MAX)
    target_type: TargetType


class RatingDTO(CamelModel):
    id: int
    user_id: str
    target_id: int
    target_type: TargetType
    score: float
    created_at: datetime
    updated_at: datetime


class TargetScoreDTO(CamelModel):
    """Агрегированная оценка, отправляемая сервису-владельцу цели."""
    target_id: int
    score: float
    total_ratings: int
