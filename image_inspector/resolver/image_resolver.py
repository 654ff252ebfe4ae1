"""Per-image resolution: turn one image reference into a complete record.

Each image walks the stages ``INIT -> DIMENSIONS -> FORMAT -> SIZE ->
PREVIEW -> DONE``. A stage that fails leaves its field at the sentinel
(``0``, ``"Unknown"``, no preview) and the image moves on; nothing raised
while resolving one image reaches the caller.

Size and preview strategies depend on the locator class:

- embedded (``data:``): decode in place, exact size when the payload decodes
  into a renderable image, otherwise ``len(payload) * 0.75`` and the
  original locator as its own preview.
- ephemeral (``blob:``): read the bytes from the page; vectors pass through,
  rasters are thumbnailed.
- network: header probe first, then a full fetch that yields both the exact
  size and the bytes for the thumbnail. When the fetch is refused the
  preview is drawn from the live handle instead, which may be tainted.
"""
from __future__ import annotations

import logging
import math
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import IntEnum

from image_inspector.config import settings
from image_inspector.documents.base import ImageElement, PageDocument
from image_inspector.resolver.fetcher import ProbeResult, ResourceFetcher
from image_inspector.resolver.format_classifier import UNKNOWN_FORMAT, classify, is_ambiguous
from image_inspector.resolver.locator import (
    LocatorKind,
    classify_locator,
    is_svg_bytes,
    is_svg_locator,
    parse_embedded,
)
from image_inspector.resolver.outcome import (
    Failure,
    FailureReason,
    Outcome,
    Success,
    log_failure,
    race_timeout,
)
from image_inspector.resolver.size_estimator import estimate_size
from image_inspector.resolver.thumbnail import SVG_MEDIA_TYPE, ThumbnailRenderer
from image_inspector.schemas.image import ResolvedImageRecord

logger = logging.getLogger(__name__)

# Decoded size of a base64 payload relative to its encoded length
_BASE64_RATIO = 0.75


def _load_failure_reason(locator: str) -> FailureReason:
    """Reason to tag a failed out-of-band load with.

    A load that goes over the network (or reads a page-owned blob) fails
    mostly because it was refused, which is expected on the open web.
    """
    if classify_locator(locator) in (LocatorKind.NETWORK, LocatorKind.EPHEMERAL):
        return FailureReason.NETWORK_DENIED
    return FailureReason.DECODE_FAILURE


class ResolutionStage(IntEnum):
    INIT = 0
    DIMENSIONS_RESOLVED = 1
    FORMAT_RESOLVED = 2
    SIZE_RESOLVED = 3
    PREVIEW_RESOLVED = 4
    DONE = 5


@dataclass
class ImageReference:
    """One distinct image locator plus the live handle it was found on."""

    locator: str
    element: ImageElement


@dataclass
class _ResolutionState:
    reference: ImageReference
    stage: ResolutionStage = ResolutionStage.INIT
    width: int = 0
    height: int = 0
    format: str = UNKNOWN_FORMAT
    byte_size: int = 0
    preview: str | None = None
    probe: Outcome[ProbeResult] | None = None
    ephemeral: Outcome[tuple[bytes, str | None]] | None = None

    @property
    def locator(self) -> str:
        return self.reference.locator

    def advance(self, stage: ResolutionStage) -> None:
        if stage <= self.stage:
            raise RuntimeError(f"Cannot move from {self.stage.name} back to {stage.name}")
        self.stage = stage


class ImageResolver:
    def __init__(
        self,
        fetcher: ResourceFetcher,
        renderer: ThumbnailRenderer | None = None,
        *,
        load_timeout: float | None = None,
        settle_timeout: float | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.renderer = renderer or ThumbnailRenderer()
        self.load_timeout = load_timeout if load_timeout is not None else settings.IMAGE_LOAD_TIMEOUT
        self.settle_timeout = (
            settle_timeout if settle_timeout is not None else settings.HANDLE_SETTLE_TIMEOUT
        )

    async def resolve(self, reference: ImageReference, document: PageDocument) -> ResolvedImageRecord:
        state = _ResolutionState(reference)

        await self._run_stage(state, "dimensions", self._resolve_dimensions, document)
        state.advance(ResolutionStage.DIMENSIONS_RESOLVED)

        await self._run_stage(state, "format", self._resolve_format, document)
        state.advance(ResolutionStage.FORMAT_RESOLVED)

        await self._run_stage(state, "size/preview", self._resolve_content, document)
        self._finalize_size(state)
        state.advance(ResolutionStage.SIZE_RESOLVED)
        state.advance(ResolutionStage.PREVIEW_RESOLVED)

        record = ResolvedImageRecord(
            locator=state.locator,
            preview_data=state.preview,
            width=state.width,
            height=state.height,
            format=state.format,
            byte_size=state.byte_size,
        )
        state.advance(ResolutionStage.DONE)
        return record

    async def _run_stage(
        self,
        state: _ResolutionState,
        name: str,
        stage: Callable[[_ResolutionState, PageDocument], Awaitable[None]],
        document: PageDocument,
    ) -> None:
        try:
            await stage(state, document)
        except Exception as e:
            logger.warning("Unexpected error in %s stage for %s: %s", name, state.locator[:120], e)

    # -- dimensions -----------------------------------------------------

    async def _resolve_dimensions(self, state: _ResolutionState, document: PageDocument) -> None:
        width, height = await state.reference.element.intrinsic_size()
        if width == 0 and height == 0:

            async def _load() -> tuple[int, int]:
                handle = await document.load_image(state.locator, anonymous=True)
                return await handle.intrinsic_size()

            outcome = await race_timeout(
                _load(), self.load_timeout, on_error=_load_failure_reason(state.locator),
            )
            if outcome.ok:
                width, height = outcome.value
            else:
                log_failure(logger, outcome, "Dimension load", state.locator)
        state.width = max(0, int(width))
        state.height = max(0, int(height))

    # -- format ---------------------------------------------------------

    async def _resolve_format(self, state: _ResolutionState, document: PageDocument) -> None:
        content_type = None
        if is_ambiguous(state.locator):
            kind = classify_locator(state.locator)
            if kind is LocatorKind.NETWORK:
                probe = await self._probe(state)
                if probe.ok:
                    content_type = probe.value.content_type
            elif kind is LocatorKind.EPHEMERAL:
                read = await self._read_ephemeral(state, document)
                if read.ok:
                    content_type = read.value[1]
        state.format = classify(state.locator, content_type)

    # -- size and preview -----------------------------------------------

    async def _resolve_content(self, state: _ResolutionState, document: PageDocument) -> None:
        kind = classify_locator(state.locator)
        if kind is LocatorKind.EMBEDDED:
            await self._resolve_embedded(state)
        elif kind is LocatorKind.EPHEMERAL:
            await self._resolve_ephemeral(state, document)
        elif kind is LocatorKind.NETWORK:
            await self._apply_declared_size(state)
            if is_svg_locator(state.locator):
                await self._resolve_network_svg(state, document)
            else:
                await self._resolve_network_raster(state, document)
        else:
            state.preview = await self._preview_from_handle(state, document)

    async def _resolve_embedded(self, state: _ResolutionState) -> None:
        embedded = parse_embedded(state.locator)
        if embedded is None:
            state.preview = state.locator
            return

        try:
            data = embedded.decode()
        except ValueError as e:
            logger.debug("Undecodable embedded payload: %s", e)
            data = b""

        if data:
            outcome = await self.renderer.render(data)
            if outcome.ok:
                state.byte_size = len(data)
                state.preview = outcome.value
                return
            log_failure(logger, outcome, "Embedded re-encode", state.locator)

        state.byte_size = math.floor(len(embedded.payload) * _BASE64_RATIO)
        state.preview = state.locator

    async def _resolve_ephemeral(self, state: _ResolutionState, document: PageDocument) -> None:
        read = await self._read_ephemeral(state, document)
        if not read.ok:
            return
        data, content_type = read.value
        state.byte_size = len(data)
        outcome = await self._preview_from_bytes(data, content_type)
        if outcome.ok:
            state.preview = outcome.value
        else:
            log_failure(logger, outcome, "Ephemeral thumbnail", state.locator)

    async def _resolve_network_svg(self, state: _ResolutionState, document: PageDocument) -> None:
        fetched = await self.fetcher.fetch_bytes(state.locator)
        if fetched.ok and fetched.value.data:
            state.byte_size = fetched.value.size
            outcome = await self._preview_from_bytes(fetched.value.data, fetched.value.content_type)
            if outcome.ok:
                state.preview = outcome.value
                return
            log_failure(logger, outcome, "Inline of fetched bytes", state.locator)
        elif not fetched.ok:
            log_failure(logger, fetched, "SVG fetch", state.locator)
        state.preview = await self._preview_from_handle(state, document)

    async def _resolve_network_raster(self, state: _ResolutionState, document: PageDocument) -> None:
        fetched = await self.fetcher.fetch_bytes(state.locator)
        if fetched.ok:
            if fetched.value.size > 0:
                state.byte_size = fetched.value.size
            outcome = await self._preview_from_bytes(fetched.value.data, fetched.value.content_type)
            if outcome.ok:
                state.preview = outcome.value
                return
            log_failure(logger, outcome, "Thumbnail from fetched bytes", state.locator)
        else:
            log_failure(logger, fetched, "Byte fetch", state.locator)
        state.preview = await self._preview_from_handle(state, document)

    async def _preview_from_bytes(self, data: bytes, content_type: str | None) -> Outcome[str]:
        # The bytes decide, not the locator: "/icons.svg/a.png" is a raster
        if is_svg_bytes(data) or "svg" in (content_type or "").lower():
            return self.renderer.passthrough(data, SVG_MEDIA_TYPE)
        return await self.renderer.render(data)

    async def _preview_from_handle(self, state: _ResolutionState, document: PageDocument) -> str | None:
        """Draw the preview from the page's own handle, loading a fresh one if needed."""
        element = state.reference.element
        if not await element.is_complete():
            await element.wait_until_loaded(self.settle_timeout)
            if not await element.is_complete():
                loaded = await race_timeout(
                    document.load_image(state.locator),
                    self.load_timeout,
                    on_error=_load_failure_reason(state.locator),
                )
                if not loaded.ok:
                    log_failure(logger, loaded, "Preview load", state.locator)
                    return None
                element = loaded.value

        outcome = await self.renderer.render(element)
        if outcome.ok:
            return outcome.value
        log_failure(logger, outcome, "Preview render", state.locator)
        return None

    def _finalize_size(self, state: _ResolutionState) -> None:
        if state.byte_size == 0 and state.width > 0 and state.height > 0:
            state.byte_size = estimate_size(state.width, state.height, state.format)

    # -- memoised probes ------------------------------------------------

    async def _probe(self, state: _ResolutionState) -> Outcome[ProbeResult]:
        if state.probe is None:
            state.probe = await self.fetcher.probe(state.locator)
            if not state.probe.ok:
                log_failure(logger, state.probe, "Header probe", state.locator)
        return state.probe

    async def _apply_declared_size(self, state: _ResolutionState) -> None:
        probe = await self._probe(state)
        if probe.ok and probe.value.content_length:
            state.byte_size = probe.value.content_length

    async def _read_ephemeral(
        self, state: _ResolutionState, document: PageDocument,
    ) -> Outcome[tuple[bytes, str | None]]:
        if state.ephemeral is None:
            try:
                state.ephemeral = Success(await document.read_ephemeral(state.locator))
            except Exception as e:
                state.ephemeral = Failure(FailureReason.NETWORK_DENIED, str(e))
                log_failure(logger, state.ephemeral, "Ephemeral read", state.locator)
        return state.ephemeral
