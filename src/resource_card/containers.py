"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from resource_card.adapters.browser import PlaywrightRenderer, Renderer
from resource_card.adapters.image_codec import PillowImageCodec
from resource_card.adapters.resource_fetcher import HttpxResourceFetcher
from resource_card.config import Settings
from resource_card.domain.models import Viewport
from resource_card.services.enrichment import EnrichmentService
from resource_card.services.images import ImagePipeline
from resource_card.services.metadata import MetadataExtractor
from resource_card.services.sessions import SessionRegistry


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    renderer: Renderer
    session_registry: SessionRegistry
    enrichment_service: EnrichmentService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    fetcher = HttpxResourceFetcher.create()
    renderer = PlaywrightRenderer(
        navigation_timeout_ms=resolved_settings.navigation_timeout_ms
    )
    codec = PillowImageCodec()
    pipeline = ImagePipeline(
        fetcher=fetcher,
        codec=codec,
        user_agent=resolved_settings.user_agent,
        settle_delay_seconds=resolved_settings.settle_delay_seconds,
        social_image_timeout_seconds=resolved_settings.social_image_timeout_seconds,
        favicon_timeout_seconds=resolved_settings.favicon_timeout_seconds,
        cover_viewport=Viewport(
            resolved_settings.cover_viewport_width,
            resolved_settings.cover_viewport_height,
        ),
        jpeg_quality=resolved_settings.jpeg_quality,
        favicon_size=resolved_settings.favicon_size,
        favicon_services=tuple(resolved_settings.favicon_services),
    )
    session_registry = SessionRegistry(
        renderer=renderer,
        ttl_seconds=resolved_settings.session_ttl_seconds,
        sweep_interval_seconds=resolved_settings.sweep_interval_seconds,
    )
    enrichment_service = EnrichmentService(
        renderer=renderer,
        registry=session_registry,
        extractor=MetadataExtractor(),
        pipeline=pipeline,
        codec=codec,
        consent_selectors=tuple(resolved_settings.consent_selectors),
        consent_wait_seconds=resolved_settings.consent_wait_seconds,
    )

    async def close_resources() -> None:
        await fetcher.close()
        await renderer.close()

    return AppContainer(
        settings=resolved_settings,
        renderer=renderer,
        session_registry=session_registry,
        enrichment_service=enrichment_service,
        close_resources=close_resources,
    )
