# src/common/constants.py
"""
Общие константы и перечисления.
"""

from enum import Enum


class TypeMsg(str, Enum):
    """Типы сообщений для логирования."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class MessagePatterns:
    """Паттерны сообщений (routing keys) брокера."""
    # Users Service
    CREATE_USER = "create.user"
    FIND_ALL_USERS = "find.all.users"
    FIND_USER_BY_ID = "find.user.by.id"
    FIND_USER_BY_EMAIL = "find.user.by.email"
    UPDATE_USER = "update.user"
    REMOVE_USER = "remove.user"
    GET_USER_WORKOUTS = "get.user.workouts"
    GET_USER_TRAINING_PLANS = "get.user.training.plans"
    GET_USER_NUTRITIONS = "get.user.nutritions"

    # Статистика пользователей
    CALCULATE_TOTAL_USERS = "calculate.total.users"
    CALCULATE_NEW_USERS = "calculate.new.users"
    CALCULATE_USER_ACTIVITY = "calculate.user.activity"
    GET_ACTIVE_USERS_WITH_AGE = "get.active.users.with.age"
    CALCULATE_GOAL_STATS = "calculate.goal.stats"
    CALCULATE_GENDER_STATS = "calculate.gender.stats"
    CALCULATE_GENDER_STATS_BY_TARGET = "calculate.gender.stats.by.target"
    CALCULATE_USER_STATS = "calculate.user.stats"

    # Rating Service
    CREATE_RATING = "create.rating"

    # Внешние сервисы: поиск по списку ID
    FIND_WORKOUTS_BY_IDS = "find.workout.by.ids"
    FIND_TRAINING_PLANS_BY_IDS = "find.training.plan.by.ids"
    FIND_NUTRITIONS_BY_IDS = "find.nutrition.plan.by.ids"

    # Внешние сервисы: приём агрегированной оценки
    RATE_EXERCISE = "rate.exercise"
    RATE_WORKOUT = "rate.workout"
    RATE_TRAINING_PLAN = "rate.training.plan"
    RATE_EQUIPMENT = "rate.equipment"
    RATE_NUTRITION = "rate.nutrition"
