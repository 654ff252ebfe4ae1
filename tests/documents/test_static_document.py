# tests/documents/test_static_document.py
import base64
from unittest.mock import patch

import httpx
import pytest

from image_inspector.documents.static_document import StaticDocument, StaticImageElement, _parse_dimension
from image_inspector.services import inspect_service
from tests.fakes import make_png

HTML = """
<html><body>
  <img src="/img/hero.jpg" width="640px" height="480">
  <p><img src="https://cdn.example/logo.png"></p>
  <img src="data:image/gif;base64,R0lGODlhAQABAAAAACw=" width="1" height="1">
  <img alt="no source">
</body></html>
"""


def test_parse_dimension_variants():
    """解析 width/height 属性"""
    assert _parse_dimension("640") == 640
    assert _parse_dimension("640px") == 640
    assert _parse_dimension(" 12.7 ") == 12
    assert _parse_dimension("50%") == 0
    assert _parse_dimension(None) == 0
    assert _parse_dimension("-3") == 0


@pytest.mark.asyncio
async def test_from_html_keeps_document_order_and_resolves_relative_src():
    """相对地址按页面地址补全，内嵌地址保持原样"""
    document = StaticDocument.from_html(HTML, "https://site.example/post/1")
    elements = await document.image_elements()

    assert [e.locator for e in elements] == [
        "https://site.example/img/hero.jpg",
        "https://cdn.example/logo.png",
        "data:image/gif;base64,R0lGODlhAQABAAAAACw=",
        "",
    ]
    assert await elements[0].intrinsic_size() == (640, 480)
    assert await elements[1].intrinsic_size() == (0, 0)
    assert document.url == "https://site.example/post/1"


@pytest.mark.asyncio
async def test_unloaded_element_is_incomplete_and_cannot_export():
    """未加载的元素不能导出"""
    element = StaticImageElement("https://cdn.example/a.png", 10, 10)

    assert not await element.is_complete()
    with pytest.raises(ValueError):
        await element.export_png(5, 5)


@pytest.mark.asyncio
async def test_load_embedded_image_and_export():
    """加载内嵌图片并导出"""
    png = make_png(40, 20)
    locator = "data:image/png;base64," + base64.b64encode(png).decode()
    document = StaticDocument("about:blank", [])

    element = await document.load_image(locator)

    assert await element.is_complete()
    assert await element.intrinsic_size() == (40, 20)
    exported = await element.export_png(20, 10)
    assert exported.startswith(b"\x89PNG")


@pytest.mark.asyncio
async def test_load_network_image_through_client():
    """通过 httpx 客户端加载网络图片"""
    png = make_png(30, 30)
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200, content=png)))
    document = StaticDocument("https://site.example/", [], client=client)

    element = await document.load_image("https://cdn.example/a.png", anonymous=True)

    assert await element.intrinsic_size() == (30, 30)
    await client.aclose()


@pytest.mark.asyncio
async def test_load_unsupported_locator_raises():
    """不支持的地址加载失败"""
    document = StaticDocument("https://site.example/", [])

    with pytest.raises(ValueError):
        await document.load_image("ftp://files.example/a.png")


@pytest.mark.asyncio
async def test_read_missing_ephemeral_raises_lookup_error():
    """缺失的 blob 内容抛出 LookupError"""
    document = StaticDocument("https://site.example/", [], ephemeral={"blob:x/1": (b"abc", "image/png")})

    assert await document.read_ephemeral("blob:x/1") == (b"abc", "image/png")
    with pytest.raises(LookupError):
        await document.read_ephemeral("blob:x/2")


@pytest.mark.asyncio
async def test_inspect_html_end_to_end():
    """静态 HTML 全流程：下载成功的图片得到精确大小与缩略图"""
    png = make_png(300, 150)

    def handler(request):
        if request.url.path == "/ok.png":
            return httpx.Response(200, content=png, headers={"content-type": "image/png"})
        return httpx.Response(404)

    html = '<img src="/missing.jpg" width="800" height="600"><img src="/ok.png" width="300" height="150">'
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))

    with patch.object(inspect_service, "build_client", return_value=client):
        report = await inspect_service.inspect_html(html, "https://site.example/")

    assert report.page_url == "https://site.example/"
    missing, ok = report.images
    assert missing.locator == "https://site.example/missing.jpg"
    assert missing.byte_size == 192000
    assert missing.preview_data is None
    assert ok.byte_size == len(png)
    assert ok.format == "PNG"
    assert ok.preview_data.startswith("data:image/png;base64,")
