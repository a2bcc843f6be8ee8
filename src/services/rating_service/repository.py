from typing import List, Optional

from asyncpg import Connection

from src.infra.database import DatabaseManager
from src.shared.models.rating_dto import CreateRatingRequest, RatingDTO
from src.shared.models.enums import TargetType

RATING_COLUMNS = "id, user_id, target_id, target_type, score, created_at, updated_at"


class RatingRepository:
    def __init__(self, db: DatabaseManager):
        self.db = db

    async def _find_for_update(self, conn: Connection, request: CreateRatingRequest) -> Optional[int]:
        """ID оценки по тройке (user, target, type) с блокировкой строки."""
        query = """
            SELECT id FROM ratings_schema.ratings
            WHERE user_id = $1 AND target_id = $2 AND target_type = $3
            FOR UPDATE
        """
        return await conn.fetchval(query, request.user_id, request.target_id, request.target_type.value)

    async def upsert_rating(self, request: CreateRatingRequest) -> RatingDTO:
        """
        Одна оценка на тройку: существующая обновляется, иначе вставляется новая.
        Выполняется в одной транзакции.
        """
        async with self.db.transaction() as conn:
            rating_id = await self._find_for_update(conn, request)

            if rating_id is not None:
                query = f"""
                    UPDATE ratings_schema.ratings
                    SET score = $2, updated_at = NOW()
                    WHERE id = $1
                    RETURNING {RATING_COLUMNS}
                """
                record = await conn.fetchrow(query, rating_id, request.score)
            else:
                # Параллельная вставка той же тройки сводится к обновлению
                query = f"""
                    INSERT INTO ratings_schema.ratings (user_id, target_id, target_type, score)
                    VALUES ($1, $2, $3, $4)
                    ON CONFLICT (user_id, target_id, target_type) DO UPDATE SET
                        score = EXCLUDED.score,
                        updated_at = NOW()
                    RETURNING {RATING_COLUMNS}
                """
                record = await conn.fetchrow(
                    query,
                    request.user_id,
                    request.target_id,
                    request.target_type.value,
                    request.score,
                )
            return RatingDTO(**dict(record))

    async def get_scores(self, target_type: TargetType, target_id: int) -> List[float]:
        """Все оценки цели."""
        query = """
            SELECT score FROM ratings_schema.ratings
            WHERE target_type = $1 AND target_id = $2
        """
        async with self.db.acquire() as conn:
            records = await conn.fetch(query, target_type.value, target_id)
            return [record["score"] for record in records]
