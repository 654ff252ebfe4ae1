from fastapi import APIRouter, HTTPException, Query

from image_inspector.errors import DocumentUnavailableError, UnsupportedDocumentError
from image_inspector.schemas.common import ErrorResponse
from image_inspector.schemas.image import HtmlInspectRequest, ImageReport
from image_inspector.services import inspect_service

router = APIRouter()

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "页面类型不支持解析"},
    502: {"model": ErrorResponse, "description": "页面无法打开或读取"},
}


@router.get(
    "/",
    response_model=ImageReport,
    response_model_by_alias=True,
    summary="页面图片详情",
    description="在浏览器中打开页面，解析所有图片的尺寸、格式、字节大小与缩略图，按像素面积降序返回。",
    responses=_ERROR_RESPONSES,
)
async def inspect_page(
    url: str = Query(description="待解析页面的地址"),
    wait_for: str | None = Query(default=None, description="等待的 CSS 选择器或 networkidle"),
):
    try:
        return await inspect_service.inspect_url(url, wait_for=wait_for)
    except UnsupportedDocumentError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DocumentUnavailableError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.post(
    "/html",
    response_model=ImageReport,
    response_model_by_alias=True,
    summary="HTML 图片详情",
    description="解析提交的 HTML 文本中的图片（无浏览器，尺寸取自标签属性或按需下载）。",
    responses=_ERROR_RESPONSES,
)
async def inspect_html(body: HtmlInspectRequest):
    try:
        return await inspect_service.inspect_html(body.html, body.base_url)
    except DocumentUnavailableError as e:
        raise HTTPException(status_code=502, detail=str(e))
