"""Cover image, favicon and screenshot acquisition."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field

from resource_card.adapters.browser import RenderContext
from resource_card.adapters.image_codec import ImageCodec
from resource_card.adapters.resource_fetcher import ResourceFetcher
from resource_card.config import DEFAULT_FAVICON_SERVICES
from resource_card.domain.errors import ImageDecodeError
from resource_card.domain.models import Metadata, Viewport
from resource_card.domain.results import FetchError, FetchSuccess

_logger = logging.getLogger(__name__)

SOCIAL_IMAGE_ACCEPT = "image/webp,image/apng,image/svg+xml,image/*,*/*;q=0.8"

Attempt = Callable[[], Awaitable[bytes | FetchError]]


@dataclass
class ImagePipeline:
    """Fallback chains for cover images and favicons."""

    fetcher: ResourceFetcher
    codec: ImageCodec
    user_agent: str
    settle_delay_seconds: float = 2.0
    social_image_timeout_seconds: float = 15
    favicon_timeout_seconds: float = 5
    cover_viewport: Viewport = field(default_factory=lambda: Viewport(1920, 1080))
    jpeg_quality: int = 85
    favicon_size: int = 64
    favicon_services: Sequence[str] = DEFAULT_FAVICON_SERVICES

    async def acquire_cover(
        self,
        metadata: Metadata,
        context: RenderContext,
        referer: str,
        fallback_viewport: Viewport | None = None,
    ) -> bytes:
        """Return the social image, or a desktop screenshot when it is unusable."""
        attempts: list[Attempt] = []
        if metadata.social_image_url:
            social_url = metadata.social_image_url
            attempts.append(lambda: self._fetch_social_image(social_url, referer))
        cover = await first_success(attempts)
        if isinstance(cover, bytes):
            _logger.info("Cover from social image: url=%s", metadata.social_image_url)
            return cover

        _logger.info(
            "Cover falling back to screenshot: hostname=%s reasons=%s",
            metadata.hostname,
            [error.reason for error in cover],
        )
        return await self.acquire_screenshot(
            context, fallback_viewport or self.cover_viewport
        )

    async def acquire_favicon(self, metadata: Metadata) -> bytes | None:
        """Return a square PNG favicon from the first working source."""
        attempts = [
            _bind(self._fetch_favicon, url)
            for url in self.favicon_candidates(metadata)
        ]
        favicon = await first_success(attempts)
        if isinstance(favicon, bytes):
            return favicon
        _logger.info("All favicon sources failed: hostname=%s", metadata.hostname)
        return None

    async def acquire_screenshot(
        self, context: RenderContext, viewport: Viewport
    ) -> bytes:
        """Resize the viewport, let the page settle, and capture it as JPEG."""
        await context.set_viewport(viewport)
        await asyncio.sleep(self.settle_delay_seconds)
        screenshot = await context.screenshot()
        return self.codec.to_jpeg(screenshot, quality=self.jpeg_quality)

    def favicon_candidates(self, metadata: Metadata) -> list[str]:
        """Return favicon URLs in the order they should be tried."""
        candidates = []
        if metadata.favicon_url:
            candidates.append(metadata.favicon_url)
        if metadata.hostname:
            candidates.extend(
                template.format(hostname=metadata.hostname)
                for template in self.favicon_services
            )
        return candidates

    async def _fetch_social_image(self, url: str, referer: str) -> bytes | FetchError:
        result = await self.fetcher.fetch(
            url,
            headers={
                "User-Agent": self.user_agent,
                "Accept": SOCIAL_IMAGE_ACCEPT,
                "Accept-Language": "en-US,en;q=0.5",
                "Cache-Control": "no-cache",
                "Referer": referer,
            },
            timeout=self.social_image_timeout_seconds,
            require_image=True,
        )
        return self._encode(
            result, lambda data: self.codec.to_jpeg(data, quality=self.jpeg_quality)
        )

    async def _fetch_favicon(self, url: str) -> bytes | FetchError:
        result = await self.fetcher.fetch(
            url,
            headers={"User-Agent": self.user_agent},
            timeout=self.favicon_timeout_seconds,
            require_image=True,
        )
        return self._encode(
            result, lambda data: self.codec.to_square_png(data, self.favicon_size)
        )

    @staticmethod
    def _encode(
        result: FetchSuccess | FetchError, encode: Callable[[bytes], bytes]
    ) -> bytes | FetchError:
        if isinstance(result, FetchError):
            return result
        try:
            return encode(result.content)
        except ImageDecodeError as exc:
            _logger.info(
                "Discarding undecodable image: url=%s error=%s", result.url, exc
            )
            return FetchError(url=result.url, reason=f"undecodable image: {exc}")


async def first_success(attempts: Sequence[Attempt]) -> bytes | list[FetchError]:
    """Run attempts in order and return the first bytes, or every failure."""
    errors: list[FetchError] = []
    for attempt in attempts:
        outcome = await attempt()
        if isinstance(outcome, FetchError):
            errors.append(outcome)
            continue
        return outcome
    return errors


def _bind(
    fetch: Callable[[str], Awaitable[bytes | FetchError]], url: str
) -> Attempt:
    return lambda: fetch(url)
