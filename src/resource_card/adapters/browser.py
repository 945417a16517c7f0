"""Browser render contexts backed by Playwright."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from resource_card.domain.errors import RenderFailure
from resource_card.domain.models import Viewport

_logger = logging.getLogger(__name__)


class RenderContext(Protocol):
    """An owned browser page that has already navigated to its URL."""

    async def set_viewport(self, viewport: Viewport) -> None:
        """Resize the page viewport."""

    async def screenshot(self) -> bytes:
        """Capture the current viewport as PNG bytes."""

    async def evaluate(self, script: str) -> Any:
        """Evaluate a script in the page and return its JSON result."""

    async def click_if_present(self, selector: str) -> bool:
        """Click the first element matching a selector, if any."""

    async def close(self) -> None:
        """Release the page and its browser."""


class Renderer(Protocol):
    """Interface for opening render contexts."""

    async def open(
        self, url: str, viewport: Viewport | None, interactive: bool
    ) -> RenderContext:
        """Launch a browser, navigate to a URL and return the owned context."""


@dataclass
class PlaywrightRenderContext(RenderContext):
    """Render context owning one Chromium browser and its single page."""

    browser: Browser
    page: Page

    async def set_viewport(self, viewport: Viewport) -> None:
        try:
            await self.page.set_viewport_size(
                {"width": viewport.width, "height": viewport.height}
            )
        except PlaywrightError as exc:
            raise RenderFailure(f"Failed to set viewport: {exc}") from exc

    async def screenshot(self) -> bytes:
        try:
            return await self.page.screenshot(type="png", full_page=False)
        except PlaywrightError as exc:
            raise RenderFailure(f"Screenshot failed: {exc}") from exc

    async def evaluate(self, script: str) -> Any:
        try:
            return await self.page.evaluate(script)
        except PlaywrightError as exc:
            raise RenderFailure(f"Page evaluation failed: {exc}") from exc

    async def click_if_present(self, selector: str) -> bool:
        try:
            element = await self.page.query_selector(selector)
            if element is None:
                return False
            await element.click()
        except PlaywrightError as exc:
            _logger.info("Click failed: selector=%s error=%s", selector, exc)
            return False
        return True

    async def close(self) -> None:
        await self.browser.close()


@dataclass
class PlaywrightRenderer(Renderer):
    """Launches a dedicated Chromium browser per render context."""

    navigation_timeout_ms: int = 30000
    _playwright: Playwright | None = field(default=None, init=False)
    _start_lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)

    async def open(
        self, url: str, viewport: Viewport | None, interactive: bool
    ) -> PlaywrightRenderContext:
        """Open a headless page, or a headed maximized window when interactive."""
        playwright = await self._ensure_started()
        try:
            browser = await playwright.chromium.launch(
                headless=not interactive,
                args=["--start-maximized"] if interactive else [],
            )
        except PlaywrightError as exc:
            raise RenderFailure(f"Failed to launch browser: {exc}") from exc

        try:
            if viewport is not None:
                browser_context = await browser.new_context(
                    viewport={"width": viewport.width, "height": viewport.height},
                    device_scale_factor=1,
                )
            elif interactive:
                browser_context = await browser.new_context(no_viewport=True)
            else:
                browser_context = await browser.new_context()
            page = await browser_context.new_page()
            await page.goto(
                url, wait_until="networkidle", timeout=self.navigation_timeout_ms
            )
        except PlaywrightError as exc:
            await _close_quietly(browser)
            raise RenderFailure(f"Failed to load {url}: {exc}") from exc
        except BaseException:
            await _close_quietly(browser)
            raise
        _logger.info("Opened page: url=%s interactive=%s", url, interactive)
        return PlaywrightRenderContext(browser=browser, page=page)

    async def close(self) -> None:
        """Stop the Playwright driver."""
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    async def _ensure_started(self) -> Playwright:
        async with self._start_lock:
            if self._playwright is None:
                self._playwright = await async_playwright().start()
            return self._playwright


async def _close_quietly(browser: Browser) -> None:
    try:
        await browser.close()
    except PlaywrightError:
        _logger.exception("Failed to close browser after a failed navigation")
