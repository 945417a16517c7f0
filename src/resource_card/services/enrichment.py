"""One-shot and interactive capture/metadata flows."""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from resource_card.adapters.browser import RenderContext, Renderer
from resource_card.adapters.image_codec import ImageCodec
from resource_card.domain.errors import SessionExpiredOrInvalid
from resource_card.domain.models import CaptureRequest, EnrichmentResult
from resource_card.domain.sessions import SessionKind
from resource_card.services.images import ImagePipeline
from resource_card.services.metadata import MetadataExtractor
from resource_card.services.sessions import SessionRegistry, release_context

_logger = logging.getLogger(__name__)


@dataclass
class EnrichmentService:
    """Runs capture and metadata requests against transient or session pages."""

    renderer: Renderer
    registry: SessionRegistry
    extractor: MetadataExtractor
    pipeline: ImagePipeline
    codec: ImageCodec
    consent_selectors: Sequence[str] = field(default_factory=tuple)
    consent_wait_seconds: float = 2.0

    async def capture(self, request: CaptureRequest) -> bytes:
        """Screenshot a URL at the requested viewport and return PNG bytes."""
        context = await self.renderer.open(
            request.url, request.viewport, interactive=False
        )
        try:
            await self._dismiss_consent(context)
            return await self._capture_png(context, request)
        finally:
            await release_context(context, label=request.url)

    async def metadata(self, request: CaptureRequest) -> EnrichmentResult:
        """Extract metadata and images for a URL in a transient page."""
        context = await self.renderer.open(request.url, None, interactive=False)
        try:
            return await self._enrich(context, request)
        finally:
            await release_context(context, label=request.url)

    async def start_interactive_capture(self, request: CaptureRequest) -> str:
        """Open a headed browser for the operator and return its session id."""
        return await self.registry.create(request, SessionKind.CAPTURE)

    async def start_interactive_metadata(self, request: CaptureRequest) -> str:
        """Open a headed browser for the operator and return its session id."""
        return await self.registry.create(request, SessionKind.METADATA)

    async def continue_capture(self, session_id: str) -> bytes:
        """Screenshot the session page as the operator left it."""
        session = await self.registry.consume(session_id, SessionKind.CAPTURE)
        if session is None:
            raise SessionExpiredOrInvalid
        _logger.info("Continuing capture session: session_id=%s", session_id)
        try:
            return await self._capture_png(session.context, session.request)
        finally:
            await release_context(session.context, label=session_id)

    async def continue_metadata(self, session_id: str) -> EnrichmentResult:
        """Extract metadata and images from the session page."""
        session = await self.registry.consume(session_id, SessionKind.METADATA)
        if session is None:
            raise SessionExpiredOrInvalid
        _logger.info("Continuing metadata session: session_id=%s", session_id)
        try:
            return await self._enrich(session.context, session.request)
        finally:
            await release_context(session.context, label=session_id)

    async def _capture_png(
        self, context: RenderContext, request: CaptureRequest
    ) -> bytes:
        screenshot = await context.screenshot()
        return self.codec.to_png(
            screenshot, size=(request.viewport_width, request.viewport_height)
        )

    async def _enrich(
        self, context: RenderContext, request: CaptureRequest
    ) -> EnrichmentResult:
        metadata = await self.extractor.extract(context)
        # The favicon only needs the network, so it runs alongside the cover,
        # which may drive the page for a fallback screenshot.
        cover, favicon = await asyncio.gather(
            self.pipeline.acquire_cover(metadata, context, referer=request.url),
            self.pipeline.acquire_favicon(metadata),
        )
        screenshot = None
        if request.needs_screenshot:
            screenshot = await self.pipeline.acquire_screenshot(
                context, request.viewport
            )
        return EnrichmentResult(
            metadata=metadata,
            cover_image=cover,
            favicon_image=favicon,
            screenshot_image=screenshot,
        )

    async def _dismiss_consent(self, context: RenderContext) -> None:
        for selector in self.consent_selectors:
            if await context.click_if_present(selector):
                _logger.info("Dismissed consent banner: selector=%s", selector)
                await asyncio.sleep(self.consent_wait_seconds)
                return
