import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from image_inspector.api.v1.router import v1_router
from image_inspector.config import settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

TAG_METADATA = [
    {
        "name": "images",
        "description": "图片解析 — 对页面中的每个图片资源解析像素尺寸、编码格式、字节大小和预览缩略图。"
        "任何单张图片的失败只会降级为占位值，不会中断整个解析。",
    },
    {
        "name": "health",
        "description": "系统健康 — 存活探针与当前超时配置。",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Release the shared browser on shutdown."""
    logger.info(
        "Image inspector starting (load timeout %.1fs, fetch timeout %s, concurrency %d)",
        settings.IMAGE_LOAD_TIMEOUT,
        settings.FETCH_TIMEOUT if settings.FETCH_TIMEOUT is not None else "transport default",
        settings.RESOLVE_CONCURRENCY,
    )

    yield

    try:
        from image_inspector.documents.playwright_pool import browser_pool

        await browser_pool.close()
    except Exception as e:
        logger.warning("Failed to close Playwright: %s", e)

    logger.info("Application shutdown complete")


app = FastAPI(
    title="Page Image Inspector API",
    summary="页面图片详情解析服务",
    version="0.1.0",
    openapi_tags=TAG_METADATA,
    lifespan=lifespan,
)

app.include_router(v1_router)


if __name__ == "__main__":
    # Local dev server: uvicorn image_inspector.main:app --reload
    import uvicorn

    uvicorn.run("image_inspector.main:app", host="0.0.0.0", port=8000, reload=True)
