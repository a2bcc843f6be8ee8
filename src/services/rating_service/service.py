import asyncio
from typing import Sequence

from src.services.rating_service.repository import RatingRepository
from src.shared.models.rating_dto import (
    MAX_SCORE,
    MIN_SCORE,
    CreateRatingRequest,
    RatingDTO,
    TargetScoreDTO,
)
from src.shared.models.enums import TargetType
from src.infra.message_broker import MessageBroker
from src.common.constants import MessagePatterns, TypeMsg
from src.common.exceptions import BadRequestError, RpcError, handle_error
from src.common.logger import log_info
from src.config import settings

# Тип цели -> паттерн сервиса-владельца
TARGET_PATTERNS = {
    TargetType.EXERCISE: MessagePatterns.RATE_EXERCISE,
    TargetType.WORKOUT: MessagePatterns.RATE_WORKOUT,
    TargetType.TRAINING_PLAN: MessagePatterns.RATE_TRAINING_PLAN,
    TargetType.EQUIPMENT: MessagePatterns.RATE_EQUIPMENT,
    TargetType.NUTRITION: MessagePatterns.RATE_NUTRITION,
}


def calculate_average_score(scores: Sequence[float], target_id: int) -> TargetScoreDTO:
    """Средняя оценка (2 знака) и количество; без оценок: 0 и 0."""
    if not scores:
        return TargetScoreDTO(target_id=target_id, score=0, total_ratings=0)

    return TargetScoreDTO(
        target_id=target_id,
        score=round(sum(scores) / len(scores), 2),
        total_ratings=len(scores),
    )


class RatingService:
    def __init__(self, repository: RatingRepository, broker: MessageBroker):
        self.repository = repository
        self.broker = broker

    async def create_rating(self, request: CreateRatingRequest) -> RatingDTO:
        """
        Сохраняет оценку пользователя и рассылает новую среднюю оценку цели.

        Пересчёт читает данные только после коммита транзакции.
        """
        await log_info(
            f"Оценка {request.score} для {request.target_type}:{request.target_id} от {request.user_id}",
            type_msg=TypeMsg.INFO,
        )
        try:
            if not MIN_SCORE <= request.score <= MAX_SCORE:
                raise BadRequestError(f"Rating must be between {MIN_SCORE} and {MAX_SCORE}")

            try:
                rating = await asyncio.wait_for(
                    self.repository.upsert_rating(request),
                    timeout=settings.database.DB_TRANSACTION_TIMEOUT,
                )
            except asyncio.TimeoutError:
                raise RpcError("Rating transaction timed out") from None

            await self.update_target_score(request.target_type, request.target_id)
            return rating
        except Exception as e:
            handle_error(e, "Internal server error rating")

    async def update_target_score(self, target_type: TargetType, target_id: int) -> TargetScoreDTO:
        """Пересчитывает среднюю оценку цели и отправляет её сервису-владельцу."""
        try:
            pattern = TARGET_PATTERNS.get(target_type)
            if pattern is None:
                raise RpcError(f"Unsupported target type: {target_type}")

            scores = await self.repository.get_scores(target_type, target_id)
            aggregate = calculate_average_score(scores, target_id)
            await self.broker.request(pattern, aggregate)

            await log_info(
                f"Средняя оценка {target_type}:{target_id} = {aggregate.score} ({aggregate.total_ratings})",
                type_msg=TypeMsg.INFO,
            )
            return aggregate
        except Exception as e:
            handle_error(e, f"Error updating score for target type {target_type} and ID {target_id}")
