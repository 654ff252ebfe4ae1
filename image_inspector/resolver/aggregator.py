from __future__ import annotations

import asyncio
import logging

from image_inspector.config import settings
from image_inspector.documents.base import PageDocument
from image_inspector.errors import DocumentUnavailableError
from image_inspector.resolver.image_resolver import ImageReference, ImageResolver
from image_inspector.schemas.image import ImageReport, ResolvedImageRecord

logger = logging.getLogger(__name__)


class ImageCollector:
    """Runs one resolution pass over every image in a document."""

    def __init__(self, resolver: ImageResolver, *, concurrency: int | None = None) -> None:
        self.resolver = resolver
        if concurrency is None:
            concurrency = settings.RESOLVE_CONCURRENCY
        self.concurrency = max(1, concurrency)

    async def collect(self, document: PageDocument | None) -> ImageReport:
        """Resolve all distinct images, largest pixel area first.

        Raises ``DocumentUnavailableError`` when the document itself cannot be
        read; a failure on any single image only drops that image.
        """
        if document is None:
            raise DocumentUnavailableError("No document to inspect")
        try:
            page_url = document.url
            elements = await document.image_elements()
        except DocumentUnavailableError:
            raise
        except Exception as e:
            raise DocumentUnavailableError(f"Failed to enumerate images: {e}") from e

        references = self._dedup(elements)
        logger.info("Resolving %d distinct images (%d elements) on %s",
                    len(references), len(elements), page_url)

        if self.concurrency == 1:
            results = [await self._resolve_one(ref, document) for ref in references]
        else:
            semaphore = asyncio.Semaphore(self.concurrency)

            async def _bounded(ref: ImageReference) -> ResolvedImageRecord | None:
                async with semaphore:
                    return await self._resolve_one(ref, document)

            # gather keeps input order regardless of completion order
            results = await asyncio.gather(*(_bounded(ref) for ref in references))

        records = [r for r in results if r is not None]
        # sorted() is stable, also with reverse=True
        records = sorted(records, key=lambda r: r.area, reverse=True)
        return ImageReport(images=records, page_url=page_url)

    @staticmethod
    def _dedup(elements: list) -> list[ImageReference]:
        """First occurrence of each locator wins; later duplicates are dropped."""
        seen: set[str] = set()
        references: list[ImageReference] = []
        for element in elements:
            locator = getattr(element, "locator", None) or ""
            if not locator.strip() or locator in seen:
                continue
            seen.add(locator)
            references.append(ImageReference(locator=locator, element=element))
        return references

    async def _resolve_one(
        self, reference: ImageReference, document: PageDocument,
    ) -> ResolvedImageRecord | None:
        try:
            return await self.resolver.resolve(reference, document)
        except Exception as e:
            logger.warning("Error processing image %s: %s", reference.locator[:120], e)
            return None
