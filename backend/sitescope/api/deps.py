from functools import partial

from fastapi import Request

from sitescope.core.config import Settings, get_settings
from sitescope.db.session import get_engine
from sitescope.repositories.health_repository import HealthRepository
from sitescope.services.health_service import HealthService


def settings_for(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def get_app_settings(request: Request) -> Settings:
    return settings_for(request)


def get_health_service(request: Request) -> HealthService:
    return HealthService(HealthRepository(partial(get_engine, settings_for(request).database_url)))
