from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from sitescope.api.deps import get_app_settings, get_health_service
from sitescope.api.response import success, utc_timestamp
from sitescope.core.config import Settings
from sitescope.core.errors import ApiError
from sitescope.schemas.common import ERROR_RESPONSES, ErrorOut, SuccessEnvelope
from sitescope.schemas.health import LivenessOut
from sitescope.services.health_service import HealthService

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=LivenessOut)
def liveness(settings: Settings = Depends(get_app_settings)) -> LivenessOut:
    return LivenessOut(
        status="OK",
        message=f"{settings.app_name} is running",
        timestamp=utc_timestamp(),
        version=settings.app_version,
    )


@router.get(
    "/health/detailed",
    responses={**ERROR_RESPONSES, 503: {"model": ErrorOut, "description": "Application is unhealthy"}},
)
def health_check(service: HealthService = Depends(get_health_service)) -> JSONResponse:
    result = service.perform_health_check()
    if result.status != "ok":
        raise ApiError("Application is unhealthy", status_code=503)
    return success(result.model_dump(mode="json", by_alias=True), "Application is healthy")


@router.get("/health/simple", responses={200: {"model": SuccessEnvelope}})
def simple_health_check(service: HealthService = Depends(get_health_service)) -> JSONResponse:
    return success(service.simple_health_check().model_dump(mode="json"))


@router.get("/", responses={200: {"model": SuccessEnvelope}})
def welcome(settings: Settings = Depends(get_app_settings)) -> JSONResponse:
    return success({"message": f"Welcome to {settings.app_name}", "version": settings.app_version})
