"""Document boundary consumed by the resolution pipeline.

A ``PageDocument`` is a connected page with a queryable set of ``<img>``
elements. Each ``ImageElement`` is the live handle the browser (or a static
stand-in) already holds for that image.
"""
from __future__ import annotations

from abc import ABC, abstractmethod


class ImageElement(ABC):
    """A live, possibly still-loading image handle inside a document."""

    def __init__(self, locator: str) -> None:
        self.locator = locator

    @abstractmethod
    async def intrinsic_size(self) -> tuple[int, int]:
        """Natural size, falling back to the rendered/declared size, else (0, 0)."""
        ...

    @abstractmethod
    async def is_complete(self) -> bool:
        """True once the handle has finished loading with usable pixels."""
        ...

    @abstractmethod
    async def wait_until_loaded(self, timeout: float) -> None:
        """Return on load, on error, or after ``timeout`` seconds, whichever comes first."""
        ...

    @abstractmethod
    async def export_png(self, width: int, height: int) -> bytes:
        """Draw the image at ``width`` x ``height`` and return PNG bytes.

        Raises ``TaintedSurfaceError`` when the surface refuses export.
        """
        ...


class PageDocument(ABC):
    @property
    @abstractmethod
    def url(self) -> str:
        ...

    @abstractmethod
    async def image_elements(self) -> list[ImageElement]:
        """All image elements in document order."""
        ...

    @abstractmethod
    async def load_image(self, locator: str, *, anonymous: bool = False) -> ImageElement:
        """Load ``locator`` into a fresh out-of-band handle. Raises on load error."""
        ...

    @abstractmethod
    async def read_ephemeral(self, locator: str) -> tuple[bytes, str | None]:
        """Bytes and declared media type behind an ephemeral-handle locator."""
        ...
