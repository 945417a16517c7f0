"""Domain models for capture and metadata requests."""

from dataclasses import dataclass
from urllib.parse import urlparse

from resource_card.domain.errors import InvalidInput


@dataclass(frozen=True)
class Viewport:
    """Browser viewport size in CSS pixels."""

    width: int
    height: int


@dataclass(frozen=True)
class CaptureRequest:
    """A validated request to capture or enrich a URL."""

    url: str
    viewport_width: int
    viewport_height: int
    needs_screenshot: bool = False

    def __post_init__(self) -> None:
        if not self.url or not self.url.strip():
            raise InvalidInput("url is required")
        parsed = urlparse(self.url)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise InvalidInput(f"url must be an absolute http(s) URL: {self.url}")
        if self.viewport_width <= 0 or self.viewport_height <= 0:
            raise InvalidInput("width and height must be positive")

    @property
    def viewport(self) -> Viewport:
        return Viewport(self.viewport_width, self.viewport_height)


@dataclass(frozen=True)
class Metadata:
    """Best-effort page metadata; every field except hostname may be absent."""

    hostname: str
    title: str | None = None
    description: str | None = None
    social_image_url: str | None = None
    favicon_url: str | None = None


@dataclass(frozen=True)
class EnrichmentResult:
    """Metadata plus encoded images for a single URL."""

    metadata: Metadata
    cover_image: bytes | None = None
    favicon_image: bytes | None = None
    screenshot_image: bytes | None = None
