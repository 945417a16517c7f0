"""Remote resource fetching over HTTP."""

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from resource_card.domain.results import FetchError, FetchResult, FetchSuccess

_logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15.0


class ResourceFetcher(Protocol):
    """Interface for fetching remote bytes without raising."""

    async def fetch(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        require_image: bool = False,
    ) -> FetchResult:
        """Fetch a URL and return a success or a typed failure."""


@dataclass
class HttpxResourceFetcher(ResourceFetcher):
    """Resource fetcher backed by a shared httpx session."""

    http_client: httpx.AsyncClient

    @classmethod
    def create(cls) -> "HttpxResourceFetcher":
        """Create a fetcher with a managed httpx session."""
        return cls(http_client=httpx.AsyncClient(follow_redirects=True))

    async def fetch(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        require_image: bool = False,
    ) -> FetchResult:
        """Fetch a URL, validating status, content type and body size."""
        try:
            response = await self.http_client.get(
                url, headers=headers, timeout=timeout
            )
        except httpx.TimeoutException:
            return _failure(url, f"timed out after {timeout}s")
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            return _failure(url, f"{type(exc).__name__}: {exc}")

        if not response.is_success:
            return _failure(url, f"HTTP {response.status_code}")
        content_type = response.headers.get("content-type", "")
        if require_image and not content_type.lower().startswith("image/"):
            return _failure(url, f"unexpected content-type {content_type or 'none'}")
        if not response.content:
            return _failure(url, "empty body")
        return FetchSuccess(
            url=url, content=response.content, content_type=content_type
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _failure(url: str, reason: str) -> FetchError:
    _logger.info("Fetch failed: url=%s reason=%s", url, reason)
    return FetchError(url=url, reason=reason)
