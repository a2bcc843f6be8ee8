from typing import Any

from src.infra.message_broker import MessageRouter
from src.services.users_service.dependencies import get_user_service
from src.shared.models.common import DateRangeRequest, PaginationParams
from src.shared.models.user_dto import (
    CreateUserRequest,
    UpdateUserRequest,
    UserEmailRequest,
    UserIdRequest,
)
from src.shared.models.stats_dto import GenderStatsByTargetRequest
from src.common.constants import MessagePatterns

router = MessageRouter("users_service")


@router.message_pattern(MessagePatterns.CREATE_USER, CreateUserRequest)
async def create_user(request: CreateUserRequest):
    return await get_user_service().create_user(request)


@router.message_pattern(MessagePatterns.FIND_ALL_USERS, PaginationParams)
async def find_all_users(request: PaginationParams):
    return await get_user_service().find_all_users(request)


@router.message_pattern(MessagePatterns.FIND_USER_BY_ID, UserIdRequest)
async def find_user_by_id(request: UserIdRequest):
    return await get_user_service().find_user_by_id(request.id)


@router.message_pattern(MessagePatterns.FIND_USER_BY_EMAIL, UserEmailRequest)
async def find_user_by_email(request: UserEmailRequest):
    return await get_user_service().find_user_by_email(request.email)


@router.message_pattern(MessagePatterns.UPDATE_USER, UpdateUserRequest)
async def update_user(request: UpdateUserRequest):
    return await get_user_service().update_user(request)


@router.message_pattern(MessagePatterns.REMOVE_USER, UserIdRequest)
async def remove_user(request: UserIdRequest):
    return await get_user_service().remove_user(request.id)


@router.message_pattern(MessagePatterns.GET_USER_WORKOUTS, UserIdRequest)
async def get_user_workouts(request: UserIdRequest):
    return await get_user_service().get_user_workouts(request.id)


@router.message_pattern(MessagePatterns.GET_USER_TRAINING_PLANS, UserIdRequest)
async def get_user_training_plans(request: UserIdRequest):
    return await get_user_service().get_user_training_plans(request.id)


@router.message_pattern(MessagePatterns.GET_USER_NUTRITIONS, UserIdRequest)
async def get_user_nutritions(request: UserIdRequest):
    return await get_user_service().get_user_nutritions(request.id)


# Статистика

@router.message_pattern(MessagePatterns.CALCULATE_TOTAL_USERS)
async def calculate_total_users(payload: Any):
    return await get_user_service().calculate_total_users()


@router.message_pattern(MessagePatterns.CALCULATE_NEW_USERS, DateRangeRequest)
async def calculate_new_users(request: DateRangeRequest):
    return await get_user_service().calculate_new_users(request)


@router.message_pattern(MessagePatterns.CALCULATE_USER_ACTIVITY, DateRangeRequest)
async def calculate_user_activity(request: DateRangeRequest):
    return await get_user_service().calculate_user_activity(request)


@router.message_pattern(MessagePatterns.GET_ACTIVE_USERS_WITH_AGE)
async def get_active_users_with_age(payload: Any):
    return await get_user_service().get_active_users_with_age()


@router.message_pattern(MessagePatterns.CALCULATE_GOAL_STATS)
async def calculate_goal_stats(payload: Any):
    return await get_user_service().calculate_goal_stats()


@router.message_pattern(MessagePatterns.CALCULATE_GENDER_STATS)
async def calculate_gender_stats(payload: Any):
    return await get_user_service().calculate_gender_stats()


@router.message_pattern(MessagePatterns.CALCULATE_GENDER_STATS_BY_TARGET, GenderStatsByTargetRequest)
async def calculate_gender_stats_by_target(request: GenderStatsByTargetRequest):
    return await get_user_service().calculate_gender_stats_by_target(request)


@router.message_pattern(MessagePatterns.CALCULATE_USER_STATS, DateRangeRequest)
async def calculate_user_stats(request: DateRangeRequest):
    return await get_user_service().calculate_user_stats(request)
