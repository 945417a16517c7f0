"""Shared test fixtures."""

import asyncio
import io
import struct
import zlib
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from PIL import Image

from resource_card.adapters.browser import RenderContext, Renderer
from resource_card.adapters.image_codec import PillowImageCodec
from resource_card.adapters.resource_fetcher import ResourceFetcher
from resource_card.config import Settings
from resource_card.containers import AppContainer
from resource_card.domain.errors import RenderFailure
from resource_card.domain.models import Viewport
from resource_card.domain.results import FetchError, FetchResult, FetchSuccess
from resource_card.services.enrichment import EnrichmentService
from resource_card.services.images import ImagePipeline
from resource_card.services.metadata import MetadataExtractor
from resource_card.services.sessions import SessionRegistry

JPEG_SIGNATURE = b"\xff\xd8\xff"
PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def make_image(
    width: int = 32,
    height: int = 24,
    image_format: str = "PNG",
    mode: str = "RGB",
    color: tuple[int, ...] = (200, 30, 30),
) -> bytes:
    """Build small real image bytes with Pillow."""
    buffer = io.BytesIO()
    Image.new(mode, (width, height), color).save(buffer, format=image_format)
    return buffer.getvalue()


def image_size(data: bytes) -> tuple[int, int]:
    with Image.open(io.BytesIO(data)) as image:
        return image.size


def oversized_png(width: int = 20000, height: int = 20000) -> bytes:
    """PNG header declaring dimensions past Pillow's decompression bomb limit."""
    header = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return PNG_SIGNATURE + _png_chunk(b"IHDR", header) + _png_chunk(b"IEND", b"")


def _png_chunk(tag: bytes, data: bytes) -> bytes:
    crc = struct.pack(">I", zlib.crc32(tag + data))
    return struct.pack(">I", len(data)) + tag + data + crc


def page_snapshot(
    url: str = "https://example.com/",
    title: str | None = None,
    metas: dict[str, str] | None = None,
    icons: dict[str, str] | None = None,
    base_uri: str | None = None,
) -> dict[str, object]:
    """Build the payload the in-page snapshot script returns."""
    hostname = url.split("//", 1)[1].split("/", 1)[0]
    return {
        "href": url,
        "baseUri": base_uri or url,
        "hostname": hostname,
        "title": title or "",
        "metas": metas or {},
        "icons": icons or {},
    }


@dataclass
class FakeClock:
    """Controllable clock for registry expiry."""

    now: datetime = field(default_factory=lambda: datetime(2024, 1, 1, tzinfo=UTC))

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@dataclass
class FakeRenderContext(RenderContext):
    """In-memory render context that records how it was driven."""

    url: str
    interactive: bool = False
    opened_viewport: Viewport | None = None
    snapshot: dict[str, object] = field(default_factory=page_snapshot)
    screenshot_bytes: bytes = field(default_factory=make_image)
    clickable: set[str] = field(default_factory=set)
    fail_screenshot: bool = False
    fail_close: bool = False
    viewports: list[Viewport] = field(default_factory=list)
    clicked: list[str] = field(default_factory=list)
    screenshot_calls: int = 0
    close_calls: int = 0

    async def set_viewport(self, viewport: Viewport) -> None:
        self.viewports.append(viewport)

    async def screenshot(self) -> bytes:
        self.screenshot_calls += 1
        if self.fail_screenshot:
            raise RenderFailure("Screenshot failed: page crashed")
        return self.screenshot_bytes

    async def evaluate(self, script: str) -> Any:
        return self.snapshot

    async def click_if_present(self, selector: str) -> bool:
        if selector not in self.clickable:
            return False
        self.clicked.append(selector)
        return True

    async def close(self) -> None:
        self.close_calls += 1
        await asyncio.sleep(0)
        if self.fail_close:
            raise RuntimeError("browser already gone")


@dataclass
class FakeRenderer(Renderer):
    """Renderer that hands out fake contexts and remembers them."""

    snapshots: dict[str, dict[str, object]] = field(default_factory=dict)
    failing_urls: set[str] = field(default_factory=set)
    fail_screenshot: bool = False
    fail_close: bool = False
    opened: list[FakeRenderContext] = field(default_factory=list)

    async def open(
        self, url: str, viewport: Viewport | None, interactive: bool
    ) -> FakeRenderContext:
        if url in self.failing_urls:
            raise RenderFailure(f"Failed to load {url}: net::ERR_NAME_NOT_RESOLVED")
        context = FakeRenderContext(
            url=url,
            interactive=interactive,
            opened_viewport=viewport,
            snapshot=self.snapshots.get(url, page_snapshot(url)),
            fail_screenshot=self.fail_screenshot,
            fail_close=self.fail_close,
        )
        self.opened.append(context)
        return context

    @property
    def outstanding(self) -> list[FakeRenderContext]:
        return [context for context in self.opened if context.close_calls == 0]


@dataclass
class FakeResourceFetcher(ResourceFetcher):
    """Fetcher with canned results keyed by URL."""

    results: dict[str, FetchResult] = field(default_factory=dict)
    calls: list[tuple[str, dict[str, str], float, bool]] = field(default_factory=list)

    async def fetch(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 15.0,
        require_image: bool = False,
    ) -> FetchResult:
        self.calls.append((url, dict(headers or {}), timeout, require_image))
        return self.results.get(url, FetchError(url=url, reason="HTTP 404"))

    def serve(self, url: str, content: bytes, content_type: str = "image/png") -> None:
        self.results[url] = FetchSuccess(
            url=url, content=content, content_type=content_type
        )

    @property
    def urls(self) -> list[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        admin_token="admin-token",
        settle_delay_seconds=0,
        consent_wait_seconds=0,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def fetcher() -> FakeResourceFetcher:
    return FakeResourceFetcher()


@pytest.fixture
def pipeline(fetcher: FakeResourceFetcher, settings: Settings) -> ImagePipeline:
    return ImagePipeline(
        fetcher=fetcher,
        codec=PillowImageCodec(),
        user_agent=settings.user_agent,
        settle_delay_seconds=0,
    )


@pytest.fixture
def registry(renderer: FakeRenderer, clock: FakeClock) -> SessionRegistry:
    return SessionRegistry(renderer=renderer, ttl_seconds=600, clock=clock)


@pytest.fixture
def enrichment_service(
    renderer: FakeRenderer,
    registry: SessionRegistry,
    pipeline: ImagePipeline,
) -> EnrichmentService:
    return EnrichmentService(
        renderer=renderer,
        registry=registry,
        extractor=MetadataExtractor(),
        pipeline=pipeline,
        codec=PillowImageCodec(),
        consent_wait_seconds=0,
    )


@pytest.fixture
def container(
    settings: Settings,
    renderer: FakeRenderer,
    registry: SessionRegistry,
    enrichment_service: EnrichmentService,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        renderer=renderer,
        session_registry=registry,
        enrichment_service=enrichment_service,
        close_resources=close_resources,
    )
