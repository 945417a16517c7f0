"""Tagged results for remote resource fetches."""

from dataclasses import dataclass


@dataclass(frozen=True)
class FetchSuccess:
    """Bytes fetched from a remote URL."""

    url: str
    content: bytes
    content_type: str


@dataclass(frozen=True)
class FetchError:
    """A remote source that could not be used, and why."""

    url: str
    reason: str


FetchResult = FetchSuccess | FetchError
