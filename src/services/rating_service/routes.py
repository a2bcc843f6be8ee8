from src.infra.message_broker import MessageRouter
from src.services.rating_service.dependencies import get_rating_service
from src.shared.models.rating_dto import CreateRatingRequest
from src.common.constants import MessagePatterns

router = MessageRouter("rating_service")


@router.message_pattern(MessagePatterns.CREATE_RATING, CreateRatingRequest)
async def create_rating(request: CreateRatingRequest):
    return await get_rating_service().create_rating(request)
