import asyncio
from typing import Any, Optional
from uuid import uuid4

import asyncpg

from src.services.users_service.repository import UserRepository
from src.services.users_service.utils import hash_password
from src.shared.models.common import (
    DateRangeRequest,
    OperationResult,
    PaginatedResponse,
    PaginationParams,
)
from src.shared.models.user_dto import (
    CreateUserRequest,
    UpdateUserRequest,
    UpdateUserResponse,
    UserDTO,
)
from src.shared.models.stats_dto import (
    AgeStat,
    GenderStat,
    GenderStatsByTargetRequest,
    GoalStat,
    UserActivityStats,
    UserStatistics,
)
from src.infra.message_broker import MessageBroker
from src.common.constants import MessagePatterns, TypeMsg
from src.common.exceptions import ConflictError, NotFoundError, handle_error
from src.common.logger import log_info
from src.config import settings

# Массив ссылок пользователя -> паттерн сервиса-владельца
REFERENCE_PATTERNS = {
    "training_plan_ids": MessagePatterns.FIND_TRAINING_PLANS_BY_IDS,
    "workout_ids": MessagePatterns.FIND_WORKOUTS_BY_IDS,
    "nutrition_ids": MessagePatterns.FIND_NUTRITIONS_BY_IDS,
}


class UserService:
    def __init__(self, repository: UserRepository, broker: MessageBroker):
        self.repository = repository
        self.broker = broker

    async def _hash_password(self, password: str) -> str:
        # bcrypt занимает CPU: уводим из event loop
        return await asyncio.to_thread(hash_password, password, settings.security.BCRYPT_ROUNDS)

    async def create_user(self, request: CreateUserRequest) -> UserDTO:
        """Регистрирует пользователя. Email уникален среди активных."""
        await log_info(f"Создание пользователя {request.email}", type_msg=TypeMsg.INFO)
        try:
            if await self.repository.email_in_use(request.email):
                raise ConflictError("User already exists")

            password_hash = await self._hash_password(request.password)
            return await self.repository.create_user(str(uuid4()), request, password_hash)
        except asyncpg.UniqueViolationError:
            # Параллельная регистрация успела раньше
            raise ConflictError("User already exists") from None
        except Exception as e:
            handle_error(e, "Internal server error creating user")

    async def find_all_users(self, pagination: PaginationParams) -> PaginatedResponse[UserDTO]:
        try:
            total = await self.repository.count_active_users()
            users = await self.repository.get_active_users(limit=pagination.limit, offset=pagination.offset)
            return PaginatedResponse[UserDTO].create(users, total, pagination)
        except Exception as e:
            handle_error(e, "Internal server error listing users")

    async def find_user_by_id(self, user_id: str) -> UserDTO:
        try:
            user = await self.repository.get_active_user_by_id(user_id)
            if user is None:
                raise NotFoundError(f"User with id {user_id} not found")
            return user
        except Exception as e:
            handle_error(e, "Internal server error finding user")

    async def find_user_by_email(self, email: str) -> UserDTO:
        try:
            user = await self.repository.get_active_user_by_email(email)
            if user is None:
                raise NotFoundError("User not found")
            return user
        except Exception as e:
            handle_error(e, "Internal server error when searching for user by email")

    async def update_user(self, request: UpdateUserRequest) -> UpdateUserResponse:
        """
        Частично обновляет пользователя.
        Новые массивы ссылок сначала проверяются у сервисов-владельцев:
        любая ошибка проверки отменяет запись.
        """
        await log_info(f"Обновление пользователя {request.id}", type_msg=TypeMsg.INFO)
        try:
            user = await self.find_user_by_id(request.id)
            changes = request.changes()

            new_email = changes.get("email")
            if new_email and new_email != user.email:
                if await self.repository.email_in_use(new_email, exclude_id=user.id):
                    raise ConflictError(f"Email {new_email} is already in use")

            for column, pattern in REFERENCE_PATTERNS.items():
                ids = changes.get(column)
                if ids:
                    await self.broker.request(pattern, {"ids": ids})

            if "password" in changes:
                changes["password"] = await self._hash_password(changes["password"])

            updated = await self.repository.update_user(request.id, changes)
            if updated is None:
                raise NotFoundError(f"User with id {request.id} not found")
            return UpdateUserResponse(success=True, user=updated)
        except asyncpg.UniqueViolationError:
            raise ConflictError("Email is already in use") from None
        except Exception as e:
            handle_error(e, "Internal server error updating user")

    async def remove_user(self, user_id: str) -> OperationResult:
        """Мягкое удаление пользователя."""
        await log_info(f"Деактивация пользователя {user_id}", type_msg=TypeMsg.INFO)
        try:
            if not await self.repository.deactivate_user(user_id):
                raise NotFoundError(f"User with id {user_id} not found or already inactive")
            return OperationResult(success=True, message=f"User with id {user_id} has been deactivated")
        except Exception as e:
            handle_error(e, "Internal server error deleting user")

    async def _get_user_resources(self, user_id: str, column: str, default_message: str) -> Any:
        """Запрашивает у сервиса-владельца сущности по массиву ID пользователя."""
        try:
            ids = await self.repository.get_reference_ids(user_id, column)
            if ids is None:
                raise NotFoundError(f"User with id {user_id} not found")
            if not ids:
                return []
            return await self.broker.request(REFERENCE_PATTERNS[column], {"ids": ids})
        except Exception as e:
            handle_error(e, default_message)

    async def get_user_workouts(self, user_id: str) -> Any:
        return await self._get_user_resources(
            user_id, "workout_ids", "Internal server error while fetching workouts"
        )

    async def get_user_training_plans(self, user_id: str) -> Any:
        return await self._get_user_resources(
            user_id, "training_plan_ids", "Internal server error while fetching training plans"
        )

    async def get_user_nutritions(self, user_id: str) -> Any:
        return await self._get_user_resources(
            user_id, "nutrition_ids", "Internal server error while fetching nutritions"
        )

    # =========================================================================
    # СТАТИСТИКА
    # =========================================================================

    async def calculate_total_users(self) -> int:
        try:
            return await self.repository.count_active_users()
        except Exception as e:
            handle_error(e, "Error calculating total users")

    async def calculate_new_users(self, date_range: DateRangeRequest) -> int:
        try:
            return await self.repository.count_created_between(date_range.start_date, date_range.end_date)
        except Exception as e:
            handle_error(e, "Error calculating new users statistics")

    async def calculate_user_activity(self, date_range: DateRangeRequest) -> UserActivityStats:
        """Активные: last_login в диапазоне; неактивные: остальные активные пользователи."""
        try:
            active_users = await self.repository.count_logged_in_between(
                date_range.start_date, date_range.end_date
            )
            total_users = await self.repository.count_active_users()
            return UserActivityStats(active_users=active_users, inactive_users=total_users - active_users)
        except Exception as e:
            handle_error(e, "Error calculating user activity statistics")

    async def get_active_users_with_age(self) -> list[AgeStat]:
        try:
            return await self.repository.get_active_ages()
        except Exception as e:
            handle_error(e, "An error occurred while retrieving active users with age.")

    async def calculate_goal_stats(self) -> list[GoalStat]:
        try:
            return await self.repository.count_by_goal()
        except Exception as e:
            handle_error(e, "Error calculating goal statistics")

    async def calculate_gender_stats(self) -> list[GenderStat]:
        try:
            return await self.repository.count_by_gender()
        except Exception as e:
            handle_error(e, "Error calculating gender statistics")

    async def calculate_gender_stats_by_target(self, request: GenderStatsByTargetRequest) -> list[GenderStat]:
        try:
            return await self.repository.count_by_gender_for_target(request.target_type, request.target_id)
        except Exception as e:
            handle_error(e, "Error calculating gender statistics by target")

    async def calculate_user_stats(self, date_range: Optional[DateRangeRequest] = None) -> UserStatistics:
        """Сводная статистика: независимые запросы выполняются параллельно."""
        date_range = date_range or DateRangeRequest()
        await log_info("Расчёт статистики пользователей", type_msg=TypeMsg.INFO)

        (
            total_users,
            new_users,
            user_activity,
            age_stats,
            goal_stats,
            gender_stats,
        ) = await asyncio.gather(
            self.calculate_total_users(),
            self.calculate_new_users(date_range),
            self.calculate_user_activity(date_range),
            self.get_active_users_with_age(),
            self.calculate_goal_stats(),
            self.calculate_gender_stats(),
        )

        return UserStatistics(
            total_users=total_users,
            new_users=new_users,
            user_activity=user_activity,
            age_stats=age_stats,
            goal_stats=goal_stats,
            gender_stats=gender_stats,
        )
