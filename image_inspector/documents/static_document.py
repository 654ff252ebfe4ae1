"""Offline stand-in for a live page, built from raw HTML.

Elements report the ``width``/``height`` attributes declared in the markup
until pixels are loaded out of band. Pixels decoded here never carry a
cross-origin restriction, so exports from a static document never taint.
"""
from __future__ import annotations

import asyncio
import io
import logging
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup
from PIL import Image

from image_inspector.documents.base import ImageElement, PageDocument
from image_inspector.resolver.fetcher import build_client
from image_inspector.resolver.locator import LocatorKind, classify_locator, parse_embedded

logger = logging.getLogger(__name__)


def _parse_dimension(value: str | None) -> int:
    """Parse a width/height attribute such as ``"640"`` or ``"640px"``."""
    if not value:
        return 0
    value = str(value).strip().lower()
    if value.endswith("px"):
        value = value[:-2]
    try:
        return max(0, int(float(value)))
    except (ValueError, TypeError):
        return 0


def _decode_image(data: bytes) -> Image.Image:
    with Image.open(io.BytesIO(data)) as im:
        im.load()
        return im.copy()


class StaticImageElement(ImageElement):
    def __init__(
        self,
        locator: str,
        width: int = 0,
        height: int = 0,
        image: Image.Image | None = None,
    ) -> None:
        super().__init__(locator)
        self.declared_width = width
        self.declared_height = height
        self.image = image

    async def intrinsic_size(self) -> tuple[int, int]:
        if self.image is not None:
            return self.image.size
        return self.declared_width, self.declared_height

    async def is_complete(self) -> bool:
        return self.image is not None and self.image.width > 0

    async def wait_until_loaded(self, timeout: float) -> None:
        # Nothing is ever in flight for a static element
        return None

    async def export_png(self, width: int, height: int) -> bytes:
        if self.image is None:
            raise ValueError("image pixels not loaded")

        def _export() -> bytes:
            frame = self.image
            if frame.mode not in ("RGB", "RGBA", "L", "LA"):
                frame = frame.convert("RGBA")
            out = io.BytesIO()
            frame.resize((width, height), Image.LANCZOS).save(out, format="PNG")
            return out.getvalue()

        return await asyncio.to_thread(_export)


class StaticDocument(PageDocument):
    def __init__(
        self,
        url: str,
        elements: list[ImageElement],
        *,
        client: httpx.AsyncClient | None = None,
        ephemeral: dict[str, tuple[bytes, str | None]] | None = None,
    ) -> None:
        self._url = url
        self._elements = elements
        self._client = client
        self._owns_client = False
        self._ephemeral = ephemeral or {}

    @classmethod
    def from_html(
        cls,
        html: str,
        base_url: str = "",
        *,
        client: httpx.AsyncClient | None = None,
        ephemeral: dict[str, tuple[bytes, str | None]] | None = None,
    ) -> StaticDocument:
        """Collect every ``<img>`` in document order, resolving relative ``src`` values."""
        soup = BeautifulSoup(html, "lxml")
        elements: list[ImageElement] = []
        for img in soup.find_all("img"):
            src = (img.get("src") or "").strip()
            if src and base_url and classify_locator(src) is LocatorKind.UNSUPPORTED:
                try:
                    src = urljoin(base_url, src)
                except ValueError:
                    pass  # unparseable, keep as written
            elements.append(StaticImageElement(
                src,
                width=_parse_dimension(img.get("width")),
                height=_parse_dimension(img.get("height")),
            ))
        return cls(base_url, elements, client=client, ephemeral=ephemeral)

    @property
    def url(self) -> str:
        return self._url

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def image_elements(self) -> list[ImageElement]:
        return list(self._elements)

    async def load_image(self, locator: str, *, anonymous: bool = False) -> ImageElement:
        data = await self._load_bytes(locator)
        image = await asyncio.to_thread(_decode_image, data)
        return StaticImageElement(locator, image=image)

    async def read_ephemeral(self, locator: str) -> tuple[bytes, str | None]:
        try:
            return self._ephemeral[locator]
        except KeyError:
            raise LookupError(f"Ephemeral content not available: {locator}") from None

    async def _load_bytes(self, locator: str) -> bytes:
        kind = classify_locator(locator)
        if kind is LocatorKind.EMBEDDED:
            embedded = parse_embedded(locator)
            if embedded is None:
                raise ValueError("embedded locator has no payload")
            return embedded.decode()
        if kind is LocatorKind.EPHEMERAL:
            data, _ = await self.read_ephemeral(locator)
            return data
        if kind is LocatorKind.NETWORK:
            if self._client is None:
                self._client = build_client()
                self._owns_client = True
            response = await self._client.get(locator)
            response.raise_for_status()
            return response.content
        raise ValueError(f"Unsupported locator: {locator[:120]}")
