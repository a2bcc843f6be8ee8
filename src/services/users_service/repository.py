from datetime import datetime
from enum import Enum
from typing import Any, Optional, List

from src.infra.database import DatabaseManager
from src.shared.models.user_dto import UserDTO, CreateUserRequest
from src.shared.models.stats_dto import AgeStat, GoalStat, GenderStat
from src.shared.models.enums import TargetType

# Пароль не выбирается: хеш не покидает сервис
USER_COLUMNS = """
    id, name, email, avatar_url, is_active, last_login, user_type,
    age, gender, weight, height, fitness_level, goal, injury,
    workout_ids, training_plan_ids, nutrition_ids, created_at, updated_at
"""

# Колонки, которые можно менять через update.user
UPDATABLE_COLUMNS = frozenset({
    "name", "email", "password", "avatar_url", "is_active", "last_login", "user_type",
    "age", "gender", "weight", "height", "fitness_level", "goal", "injury",
    "workout_ids", "training_plan_ids", "nutrition_ids",
})

REFERENCE_COLUMNS = frozenset({"workout_ids", "training_plan_ids", "nutrition_ids"})

# Необязательные границы диапазона, обе включительно
_RANGE_FILTER = "($1::timestamptz IS NULL OR {column} >= $1) AND ($2::timestamptz IS NULL OR {column} <= $2)"


def _db_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class UserRepository:
    def __init__(self, db: DatabaseManager):
        self.db = db

    async def get_active_user_by_id(self, user_id: str) -> Optional[UserDTO]:
        """Получает активного пользователя по ID."""
        query = f"""
            SELECT {USER_COLUMNS}
            FROM users_schema.users
            WHERE id = $1 AND is_active
        """
        async with self.db.acquire() as conn:
            record = await conn.fetchrow(query, user_id)
            if record:
                return UserDTO(**dict(record))
            return None

    async def get_active_user_by_email(self, email: str) -> Optional[UserDTO]:
        """Получает активного пользователя по email."""
        query = f"""
            SELECT {USER_COLUMNS}
            FROM users_schema.users
            WHERE email = $1 AND is_active
        """
        async with self.db.acquire() as conn:
            record = await conn.fetchrow(query, email)
            if record:
                return UserDTO(**dict(record))
            return None

    async def email_in_use(self, email: str, exclude_id: Optional[str] = None) -> bool:
        """Занят ли email другим активным пользователем."""
        query = """
            SELECT EXISTS(
                SELECT 1 FROM users_schema.users
                WHERE email = $1 AND is_active AND ($2::text IS NULL OR id <> $2)
            )
        """
        async with self.db.acquire() as conn:
            return await conn.fetchval(query, email, exclude_id)

    async def create_user(self, user_id: str, user: CreateUserRequest, password_hash: str) -> UserDTO:
        """Создает пользователя."""
        query = f"""
            INSERT INTO users_schema.users (id, name, email, password, avatar_url, is_active)
            VALUES ($1, $2, $3, $4, $5, COALESCE($6, TRUE))
            RETURNING {USER_COLUMNS}
        """
        async with self.db.acquire() as conn:
            record = await conn.fetchrow(
                query,
                user_id,
                user.name,
                user.email,
                password_hash,
                user.avatar_url,
                user.is_active,
            )
            return UserDTO(**dict(record))

    async def get_active_users(self, limit: int, offset: int) -> List[UserDTO]:
        """Получает страницу активных пользователей."""
        query = f"""
            SELECT {USER_COLUMNS}
            FROM users_schema.users
            WHERE is_active
            ORDER BY created_at DESC
            LIMIT $1 OFFSET $2
        """
        async with self.db.acquire() as conn:
            records = await conn.fetch(query, limit, offset)
            return [UserDTO(**dict(record)) for record in records]

    async def count_active_users(self) -> int:
        """Возвращает количество активных пользователей."""
        query = "SELECT COUNT(*) FROM users_schema.users WHERE is_active"
        async with self.db.acquire() as conn:
            return await conn.fetchval(query)

    async def update_user(self, user_id: str, changes: dict[str, Any]) -> Optional[UserDTO]:
        """
        Частично обновляет активного пользователя.
        Возвращает None, если активного пользователя с таким ID нет.
        """
        unknown = set(changes) - UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Unknown user fields: {', '.join(sorted(unknown))}")

        assignments = []
        args: list[Any] = [user_id]
        for column, value in changes.items():
            args.append(_db_value(value))
            assignments.append(f"{column} = ${len(args)}")
        assignments.append("updated_at = NOW()")

        query = f"""
            UPDATE users_schema.users
            SET {", ".join(assignments)}
            WHERE id = $1 AND is_active
            RETURNING {USER_COLUMNS}
        """
        async with self.db.acquire() as conn:
            record = await conn.fetchrow(query, *args)
            if record:
                return UserDTO(**dict(record))
            return None

    async def deactivate_user(self, user_id: str) -> bool:
        """Мягкое удаление: is_active = FALSE. Строка остаётся в таблице."""
        query = """
            UPDATE users_schema.users
            SET is_active = FALSE, updated_at = NOW()
            WHERE id = $1 AND is_active
            RETURNING id
        """
        async with self.db.acquire() as conn:
            return await conn.fetchval(query, user_id) is not None

    async def get_reference_ids(self, user_id: str, column: str) -> Optional[list]:
        """Массив ссылок активного пользователя или None, если пользователя нет."""
        if column not in REFERENCE_COLUMNS:
            raise ValueError(f"Unknown reference column: {column}")

        query = f"SELECT {column} FROM users_schema.users WHERE id = $1 AND is_active"
        async with self.db.acquire() as conn:
            record = await conn.fetchrow(query, user_id)
            if record is None:
                return None
            return list(record[column] or [])

    # =========================================================================
    # СТАТИСТИКА
    # =========================================================================

    async def count_created_between(self, start: Optional[datetime], end: Optional[datetime]) -> int:
        """Активные пользователи, созданные в диапазоне."""
        query = f"""
            SELECT COUNT(*) FROM users_schema.users
            WHERE is_active AND {_RANGE_FILTER.format(column="created_at")}
        """
        async with self.db.acquire() as conn:
            return await conn.fetchval(query, start, end)

    async def count_logged_in_between(self, start: Optional[datetime], end: Optional[datetime]) -> int:
        """Активные пользователи с last_login в диапазоне."""
        query = f"""
            SELECT COUNT(*) FROM users_schema.users
            WHERE is_active AND last_login IS NOT NULL
              AND {_RANGE_FILTER.format(column="last_login")}
        """
        async with self.db.acquire() as conn:
            return await conn.fetchval(query, start, end)

    async def get_active_ages(self) -> List[AgeStat]:
        query = "SELECT age FROM users_schema.users WHERE is_active AND age IS NOT NULL"
        async with self.db.acquire() as conn:
            records = await conn.fetch(query)
            return [AgeStat(age=record["age"]) for record in records]

    async def count_by_goal(self) -> List[GoalStat]:
        query = """
            SELECT goal, COUNT(*) AS count
            FROM users_schema.users
            WHERE is_active AND goal IS NOT NULL
            GROUP BY goal
            ORDER BY goal
        """
        async with self.db.acquire() as conn:
            records = await conn.fetch(query)
            return [GoalStat(goal=record["goal"], count=record["count"]) for record in records]

    async def count_by_gender(self) -> List[GenderStat]:
        query = """
            SELECT gender, COUNT(*) AS count
            FROM users_schema.users
            WHERE is_active AND gender IS NOT NULL
            GROUP BY gender
            ORDER BY gender
        """
        async with self.db.acquire() as conn:
            records = await conn.fetch(query)
            return [GenderStat(gender=record["gender"], count=record["count"]) for record in records]

    async def count_by_gender_for_target(self, target_type: TargetType, target_id: int) -> List[GenderStat]:
        """Распределение по полу среди активных пользователей, оценивших цель."""
        query = """
            SELECT u.gender, COUNT(DISTINCT u.id) AS count
            FROM users_schema.users u
            JOIN ratings_schema.ratings r ON r.user_id = u.id
            WHERE u.is_active AND u.gender IS NOT NULL
              AND r.target_type = $1 AND r.target_id = $2
            GROUP BY u.gender
            ORDER BY u.gender
        """
        async with self.db.acquire() as conn:
            records = await conn.fetch(query, _db_value(target_type), target_id)
            return [GenderStat(gender=record["gender"], count=record["count"]) for record in records]
