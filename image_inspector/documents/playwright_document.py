"""Live page documents backed by Playwright element handles.

All pixel work happens inside the page, so the browser's own cross-origin
rules apply: exporting a canvas that holds foreign pixels raises a
``SecurityError`` there, which is reported here as ``TaintedSurfaceError``.
"""
from __future__ import annotations

import base64
import logging

from playwright.async_api import ElementHandle, Page

from image_inspector.documents.base import ImageElement, PageDocument
from image_inspector.errors import TaintedSurfaceError

logger = logging.getLogger(__name__)

_LOCATOR_JS = "img => img.src || img.currentSrc || img.getAttribute('src') || ''"

_SIZE_JS = """
img => [img.naturalWidth || img.width || 0, img.naturalHeight || img.height || 0]
"""

_COMPLETE_JS = "img => img.complete && img.naturalWidth > 0"

_WAIT_JS = """
(img, timeoutMs) => new Promise((resolve) => {
    if (img.complete) { resolve(); return; }
    const timer = setTimeout(resolve, timeoutMs);
    const done = () => { clearTimeout(timer); resolve(); };
    img.addEventListener('load', done, { once: true });
    img.addEventListener('error', done, { once: true });
})
"""

# Taint is tagged here, where the SecurityError is thrown
_EXPORT_JS = """
(img, [width, height]) => {
    const canvas = document.createElement('canvas');
    canvas.width = width;
    canvas.height = height;
    try {
        canvas.getContext('2d').drawImage(img, 0, 0, width, height);
        return { dataUrl: canvas.toDataURL('image/png') };
    } catch (e) {
        return { tainted: e && e.name === 'SecurityError', error: String(e) };
    }
}
"""

_LOAD_JS = """
([src, anonymous]) => new Promise((resolve, reject) => {
    const img = new Image();
    if (anonymous) img.crossOrigin = 'anonymous';
    img.onload = () => resolve(img);
    img.onerror = () => reject(new Error('Failed to load image'));
    img.src = src;
})
"""

_READ_BLOB_JS = """
async (src) => {
    const resp = await fetch(src);
    const blob = await resp.blob();
    const bytes = new Uint8Array(await blob.arrayBuffer());
    let binary = '';
    for (let i = 0; i < bytes.length; i += 0x8000) {
        binary += String.fromCharCode.apply(null, bytes.subarray(i, i + 0x8000));
    }
    return { data: btoa(binary), type: blob.type || null };
}
"""


class PlaywrightImageElement(ImageElement):
    def __init__(self, locator: str, handle: ElementHandle) -> None:
        super().__init__(locator)
        self.handle = handle

    async def intrinsic_size(self) -> tuple[int, int]:
        width, height = await self.handle.evaluate(_SIZE_JS)
        return int(width), int(height)

    async def is_complete(self) -> bool:
        return bool(await self.handle.evaluate(_COMPLETE_JS))

    async def wait_until_loaded(self, timeout: float) -> None:
        await self.handle.evaluate(_WAIT_JS, int(timeout * 1000))

    async def export_png(self, width: int, height: int) -> bytes:
        result = await self.handle.evaluate(_EXPORT_JS, [width, height])
        if result.get("tainted"):
            raise TaintedSurfaceError(result.get("error") or "canvas is tainted")
        if "error" in result:
            raise RuntimeError(result["error"])
        data_url: str = result.get("dataUrl") or ""
        _, _, payload = data_url.partition(",")
        return base64.b64decode(payload) if payload else b""


class PlaywrightDocument(PageDocument):
    def __init__(self, page: Page) -> None:
        self.page = page

    @property
    def url(self) -> str:
        return self.page.url

    async def image_elements(self) -> list[ImageElement]:
        elements: list[ImageElement] = []
        for handle in await self.page.query_selector_all("img"):
            locator = await handle.evaluate(_LOCATOR_JS)
            elements.append(PlaywrightImageElement(locator or "", handle))
        return elements

    async def load_image(self, locator: str, *, anonymous: bool = False) -> ImageElement:
        js_handle = await self.page.evaluate_handle(_LOAD_JS, [locator, anonymous])
        element = js_handle.as_element()
        if element is None:
            await js_handle.dispose()
            raise RuntimeError("out-of-band load did not produce an element")
        return PlaywrightImageElement(locator, element)

    async def read_ephemeral(self, locator: str) -> tuple[bytes, str | None]:
        result = await self.page.evaluate(_READ_BLOB_JS, locator)
        return base64.b64decode(result["data"]), result.get("type")
