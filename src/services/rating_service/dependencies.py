from src.infra.database import DatabaseManager
from src.infra.message_broker import get_message_broker
from src.services.rating_service.repository import RatingRepository
from src.services.rating_service.service import RatingService

def get_database() -> DatabaseManager:
    return DatabaseManager()

def get_rating_repository() -> RatingRepository:
    return RatingRepository(get_database())

def get_rating_service() -> RatingService:
    return RatingService(get_rating_repository(), get_message_broker())
