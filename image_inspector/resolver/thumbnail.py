"""Bounded-size inline previews from raw bytes or a live image handle."""
from __future__ import annotations

import asyncio
import base64
import io
import logging
import math

from PIL import Image, ImageSequence, UnidentifiedImageError

from image_inspector.config import settings
from image_inspector.documents.base import ImageElement
from image_inspector.errors import TaintedSurfaceError
from image_inspector.resolver.locator import is_svg_bytes
from image_inspector.resolver.outcome import Failure, FailureReason, Outcome, Success

logger = logging.getLogger(__name__)

SVG_MEDIA_TYPE = "image/svg+xml"


def to_data_url(data: bytes, media_type: str) -> str:
    return f"data:{media_type};base64,{base64.b64encode(data).decode('ascii')}"


def scaled_size(width: int, height: int, max_dimension: int) -> tuple[int, int]:
    """Fit ``width`` x ``height`` into a ``max_dimension`` box, keeping aspect ratio.

    The ratio is not capped at 1, so images smaller than the box are scaled up.
    """
    ratio = min(max_dimension / width, max_dimension / height)
    return max(1, math.floor(width * ratio)), max(1, math.floor(height * ratio))


def _render_bytes(data: bytes, max_dimension: int) -> bytes:
    with Image.open(io.BytesIO(data)) as im:
        # First frame only for animations
        frame = next(iter(ImageSequence.Iterator(im))).copy()
    if frame.mode not in ("RGB", "RGBA", "L", "LA"):
        frame = frame.convert("RGBA")
    width, height = scaled_size(frame.width, frame.height, max_dimension)
    thumb = frame.resize((width, height), Image.LANCZOS)
    out = io.BytesIO()
    thumb.save(out, format="PNG", optimize=True)
    return out.getvalue()


class ThumbnailRenderer:
    def __init__(self, max_dimension: int | None = None) -> None:
        self.max_dimension = (
            max_dimension if max_dimension is not None else settings.THUMBNAIL_MAX_DIMENSION
        )

    async def render(
        self, source: bytes | ImageElement, max_dimension: int | None = None,
    ) -> Outcome[str]:
        """Render ``source`` into a ``data:`` preview no larger than ``max_dimension``."""
        bound = max_dimension if max_dimension is not None else self.max_dimension
        if isinstance(source, (bytes, bytearray)):
            return await self._render_from_bytes(bytes(source), bound)
        return await self._render_from_handle(source, bound)

    def passthrough(self, data: bytes, media_type: str = SVG_MEDIA_TYPE) -> Outcome[str]:
        """Inline the original bytes unresized (used for vector sources)."""
        if not data:
            return Failure(FailureReason.DECODE_FAILURE, "empty payload")
        return Success(to_data_url(data, media_type))

    async def _render_from_bytes(self, data: bytes, bound: int) -> Outcome[str]:
        try:
            png = await asyncio.to_thread(_render_bytes, data, bound)
        except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
            if is_svg_bytes(data):
                return self.passthrough(data)
            return Failure(FailureReason.DECODE_FAILURE, str(e) or type(e).__name__)
        return Success(to_data_url(png, "image/png"))

    async def _render_from_handle(self, element: ImageElement, bound: int) -> Outcome[str]:
        try:
            width, height = await element.intrinsic_size()
        except Exception as e:
            return Failure(FailureReason.DECODE_FAILURE, f"handle unreadable: {e}")
        if width <= 0 or height <= 0:
            return Failure(FailureReason.DECODE_FAILURE, "invalid image dimensions")
        target_w, target_h = scaled_size(width, height, bound)
        try:
            png = await element.export_png(target_w, target_h)
        except TaintedSurfaceError as e:
            return Failure(FailureReason.TAINT_FAILURE, str(e))
        except Exception as e:
            return Failure(FailureReason.DECODE_FAILURE, f"draw failed: {e}")
        if not png:
            return Failure(FailureReason.DECODE_FAILURE, "surface exported no data")
        return Success(to_data_url(png, "image/png"))
