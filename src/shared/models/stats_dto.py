from pydantic import Field

from src.shared.models.common import PG_INT_MAX, CamelModel
from src.shared.models.enums import Gender, Goal, TargetType


class UserActivityStats(CamelModel):
    active_users: int
    inactive_users: int


class AgeStat(CamelModel):
    age: int


class GoalStat(CamelModel):
    goal: Goal
    count: int


class GenderStat(CamelModel):
    gender: Gender
    count: int


class GenderStatsByTargetRequest(CamelModel):
    target_type: TargetType
    target_id: int = Field(gt=0, le=PG_INT_MAX, strict=True)


class UserStatistics(CamelModel):
    """Сводная статистика для calculate.user.stats."""
    total_users: int
    new_users: int
    user_activity: UserActivityStats
    age_stats: list[AgeStat]
    goal_stats: list[GoalStat]
    gender_stats: list[GenderStat]
