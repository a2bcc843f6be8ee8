# src/services/rating_service/app.py
from src.services.app_factory import create_service_app
from src.services.rating_service.routes import router

SERVICE_NAME = "rating_service"

app = create_service_app(
    SERVICE_NAME,
    title="Rating Service",
    description="Message-driven service for ratings and target score aggregation",
    router=router,
)
