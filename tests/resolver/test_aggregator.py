# tests/resolver/test_aggregator.py
import pytest
from unittest.mock import AsyncMock

from image_inspector.errors import DocumentUnavailableError
from image_inspector.resolver.aggregator import ImageCollector
from image_inspector.resolver.image_resolver import ImageResolver
from image_inspector.resolver.thumbnail import ThumbnailRenderer
from image_inspector.schemas.image import ResolvedImageRecord
from tests.fakes import FakeDocument, FakeElement, make_fetcher, unreachable


def _collector(**kwargs) -> ImageCollector:
    resolver = ImageResolver(make_fetcher(unreachable), ThumbnailRenderer(max_dimension=100))
    return ImageCollector(resolver, **kwargs)


@pytest.mark.asyncio
async def test_duplicate_locators_resolved_once_first_wins():
    """重复地址只解析一次，保留第一次出现的元素"""
    first = FakeElement("https://a.example/x.png", 100, 50, tainted=True)
    second = FakeElement("https://a.example/x.png", 10, 10, tainted=True)
    other = FakeElement("https://a.example/y.png", 200, 200, tainted=True)
    document = FakeDocument([first, second, other])

    report = await _collector().collect(document)

    assert [r.locator for r in report.images] == ["https://a.example/y.png", "https://a.example/x.png"]
    x = report.images[1]
    assert (x.width, x.height) == (100, 50)
    assert second.exports == []


@pytest.mark.asyncio
async def test_blank_locators_skipped():
    """空地址的元素不产生记录"""
    document = FakeDocument([
        FakeElement("", 10, 10),
        FakeElement("   ", 10, 10),
        FakeElement("https://a.example/z.gif", 10, 10, tainted=True),
    ])

    report = await _collector().collect(document)

    assert [r.locator for r in report.images] == ["https://a.example/z.gif"]


@pytest.mark.asyncio
async def test_equal_areas_keep_document_order():
    """面积相同时保持文档顺序"""
    document = FakeDocument([
        FakeElement("https://a.example/small.png", 10, 10, tainted=True),
        FakeElement("https://a.example/wide.png", 200, 50, tainted=True),
        FakeElement("https://a.example/tall.png", 50, 200, tainted=True),
        FakeElement("https://a.example/square.png", 100, 100, tainted=True),
    ])

    report = await _collector().collect(document)

    assert [r.locator.rsplit("/", 1)[-1] for r in report.images] == [
        "wide.png", "tall.png", "square.png", "small.png",
    ]


@pytest.mark.asyncio
async def test_bounded_concurrency_gives_same_report():
    """并发解析与顺序解析结果一致"""
    document = FakeDocument([
        FakeElement(f"https://a.example/{i}.jpg", 10 * (i % 3 + 1), 10, tainted=True)
        for i in range(6)
    ])

    sequential = await _collector().collect(document)
    concurrent = await _collector(concurrency=4).collect(document)

    assert [r.locator for r in concurrent.images] == [r.locator for r in sequential.images]
    assert [r.locator for r in concurrent.images] == [
        "https://a.example/2.jpg", "https://a.example/5.jpg",
        "https://a.example/1.jpg", "https://a.example/4.jpg",
        "https://a.example/0.jpg", "https://a.example/3.jpg",
    ]


@pytest.mark.asyncio
async def test_single_image_failure_only_drops_that_image():
    """单张图片出错不影响其他图片"""
    good = ResolvedImageRecord(locator="https://a.example/ok.png", width=5, height=5, format="PNG", byte_size=30)
    resolver = AsyncMock(spec=ImageResolver)
    resolver.resolve.side_effect = [RuntimeError("boom"), good]
    document = FakeDocument([
        FakeElement("https://a.example/bad.png", 10, 10),
        FakeElement("https://a.example/ok.png", 5, 5),
    ])

    report = await ImageCollector(resolver).collect(document)

    assert report.images == [good]
    assert resolver.resolve.await_count == 2


@pytest.mark.asyncio
async def test_missing_document_raises():
    """没有文档时抛出异常"""
    with pytest.raises(DocumentUnavailableError):
        await _collector().collect(None)


@pytest.mark.asyncio
async def test_enumeration_failure_raises_document_unavailable():
    """枚举图片失败时整体失败"""
    document = FakeDocument()
    document.image_elements = AsyncMock(side_effect=RuntimeError("Target closed"))

    with pytest.raises(DocumentUnavailableError, match="Target closed"):
        await _collector().collect(document)


@pytest.mark.asyncio
async def test_page_without_images():
    """没有图片的页面返回空列表"""
    report = await _collector().collect(FakeDocument(url="https://page.example/empty"))

    assert report.images == []
    assert report.page_url == "https://page.example/empty"


@pytest.mark.asyncio
async def test_mixed_page_end_to_end():
    """内嵌、网络、无法访问的图片混合页面"""
    embedded = "data:image/gif;base64," + "R" * 40
    document = FakeDocument([
        FakeElement("https://cdn.example/hero.jpg", 800, 600, tainted=True),
        FakeElement(embedded, 0, 0),
        FakeElement("https://cdn.example/icon.svg", 24, 24, tainted=True),
    ])

    report = await _collector().collect(document)

    hero, icon, inline = report.images
    assert hero.byte_size == 192000
    assert hero.preview_data is None
    assert icon.format == "SVG"
    assert inline.locator == embedded
    assert inline.byte_size == 30
    assert inline.preview_data == embedded
    assert inline.format == "GIF"


@pytest.mark.asyncio
async def test_report_serialises_with_camel_case_keys():
    """序列化使用 camelCase 字段"""
    document = FakeDocument([FakeElement("https://a.example/p.webp", 40, 30, tainted=True)])

    report = await _collector().collect(document)
    payload = report.model_dump(by_alias=True)

    assert payload["pageUrl"] == "https://page.example/article"
    record = payload["images"][0]
    assert set(record) == {"locator", "previewData", "width", "height", "format", "byteSize"}
    assert record["byteSize"] == 384
