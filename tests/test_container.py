"""Tests for container wiring."""

import asyncio

from resource_card.config import Settings
from resource_card.containers import build_container
from resource_card.domain.models import Viewport


def test_build_container_creates_services(settings: Settings) -> None:
    container = build_container(settings)

    service = container.enrichment_service
    assert service.registry is container.session_registry
    assert service.renderer is container.renderer
    assert service.pipeline.cover_viewport == Viewport(1920, 1080)
    assert container.session_registry.ttl_seconds == 600
    asyncio.run(container.close_resources())


def test_settings_read_environment(monkeypatch) -> None:  # type: ignore[no-untyped-def]
    monkeypatch.setenv("SESSION_TTL_SECONDS", "120")
    monkeypatch.setenv("CONSENT_SELECTORS", '["#accept-cookies"]')

    settings = Settings()

    assert settings.session_ttl_seconds == 120
    assert settings.consent_selectors == ["#accept-cookies"]
    assert settings.port == 3000
