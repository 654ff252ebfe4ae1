from fastapi import APIRouter

from image_inspector.config import settings

router = APIRouter()


@router.get(
    "/",
    summary="系统健康检查",
    description="服务存活探针，同时返回当前的解析超时配置。",
)
async def health_check():
    return {
        "status": "ok",
        "image_load_timeout": settings.IMAGE_LOAD_TIMEOUT,
        "fetch_timeout": settings.FETCH_TIMEOUT,
        "resolve_concurrency": settings.RESOLVE_CONCURRENCY,
    }
