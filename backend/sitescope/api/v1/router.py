from fastapi import APIRouter

from sitescope.api.v1 import demo, health


def build_api_router() -> APIRouter:
    api_router = APIRouter()
    api_router.include_router(health.router)
    api_router.include_router(demo.router)
    return api_router
