from fastapi import APIRouter

from image_inspector.api.v1 import health, images

v1_router = APIRouter(prefix="/api/v1")

v1_router.include_router(images.router, prefix="/images", tags=["images"])
v1_router.include_router(health.router, prefix="/health", tags=["health"])
