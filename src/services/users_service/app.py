# src/services/users_service/app.py
from src.services.app_factory import create_service_app
from src.services.users_service.routes import router

SERVICE_NAME = "users_service"

app = create_service_app(
    SERVICE_NAME,
    title="Users Service",
    description="Message-driven service for user profiles and user statistics",
    router=router,
)
