"""Page metadata extraction with source-priority rules."""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from urllib.parse import urljoin, urlparse

from resource_card.adapters.browser import RenderContext
from resource_card.domain.models import Metadata

_logger = logging.getLogger(__name__)

TITLE_KEYS = ("og:title", "twitter:title")
DESCRIPTION_KEYS = ("description", "og:description", "twitter:description")
SOCIAL_IMAGE_KEYS = (
    "og:image",
    "og:image:url",
    "twitter:image",
    "twitter:image:src",
)
ICON_RELS = (
    "icon",
    "shortcut icon",
    "apple-touch-icon",
    "apple-touch-icon-precomposed",
)

# Collects raw values only; priority and URL resolution happen in Python.
SNAPSHOT_SCRIPT = """() => {
  const metaKeys = %(meta_keys)s;
  const iconRels = %(icon_rels)s;
  const metas = {};
  for (const key of metaKeys) {
    const meta = document.querySelector(
      `meta[name="${key}"], meta[property="${key}"]`
    );
    if (meta) metas[key] = meta.getAttribute('content');
  }
  const icons = {};
  for (const rel of iconRels) {
    const link = document.querySelector(`link[rel="${rel}"]`);
    if (link) icons[rel] = link.getAttribute('href');
  }
  return {
    href: window.location.href,
    baseUri: document.baseURI,
    hostname: window.location.hostname,
    title: document.title,
    metas,
    icons,
  };
}"""


@dataclass(frozen=True)
class PageSnapshot:
    """Raw values read from a loaded page."""

    href: str
    base_uri: str
    hostname: str
    title: str | None
    metas: Mapping[str, str | None]
    icons: Mapping[str, str | None]

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> "PageSnapshot":
        metas = payload.get("metas")
        icons = payload.get("icons")
        title = payload.get("title")
        href = str(payload.get("href") or "")
        return cls(
            href=href,
            base_uri=str(payload.get("baseUri") or href),
            hostname=str(payload.get("hostname") or ""),
            title=title if isinstance(title, str) else None,
            metas=metas if isinstance(metas, Mapping) else {},
            icons=icons if isinstance(icons, Mapping) else {},
        )


@dataclass
class MetadataExtractor:
    """Extracts title, description, images and hostname from a page."""

    async def extract(self, context: RenderContext) -> Metadata:
        """Read a snapshot from the page and apply the priority rules."""
        payload = await context.evaluate(_snapshot_script())
        if not isinstance(payload, Mapping):
            payload = {}
        metadata = build_metadata(PageSnapshot.from_payload(payload))
        _logger.info(
            "Extracted metadata: hostname=%s title=%s social_image=%s favicon=%s",
            metadata.hostname,
            metadata.title,
            metadata.social_image_url,
            metadata.favicon_url,
        )
        return metadata


def build_metadata(snapshot: PageSnapshot) -> Metadata:
    """Build metadata from a raw page snapshot."""
    title = _clean(snapshot.title) or _first_text(snapshot.metas, TITLE_KEYS)
    return Metadata(
        hostname=snapshot.hostname or (urlparse(snapshot.href).hostname or ""),
        title=title,
        description=_first_text(snapshot.metas, DESCRIPTION_KEYS),
        social_image_url=_first_url(
            snapshot.href, (snapshot.metas.get(key) for key in SOCIAL_IMAGE_KEYS)
        ),
        favicon_url=_favicon_url(snapshot),
    )


def resolve_url(base: str, candidate: str | None) -> str | None:
    """Resolve a possibly relative URL against a base; None when malformed."""
    cleaned = _clean(candidate)
    if cleaned is None:
        return None
    try:
        resolved = urljoin(base, cleaned)
        parsed = urlparse(resolved)
        # Accessing port validates it.
        valid = parsed.scheme in {"http", "https"} and parsed.port != 0
    except ValueError:
        return None
    return resolved if valid and parsed.hostname else None


def _favicon_url(snapshot: PageSnapshot) -> str | None:
    declared = _first_url(
        snapshot.base_uri, (snapshot.icons.get(rel) for rel in ICON_RELS)
    )
    return declared or resolve_url(snapshot.href, "/favicon.ico")


def _first_url(base: str, candidates: Iterable[str | None]) -> str | None:
    for candidate in candidates:
        resolved = resolve_url(base, candidate)
        if resolved:
            return resolved
    return None


def _first_text(values: Mapping[str, str | None], keys: Iterable[str]) -> str | None:
    for key in keys:
        value = _clean(values.get(key))
        if value:
            return value
    return None


def _clean(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def _snapshot_script() -> str:
    meta_keys = sorted(set(TITLE_KEYS + DESCRIPTION_KEYS + SOCIAL_IMAGE_KEYS))
    return SNAPSHOT_SCRIPT % {
        "meta_keys": _js_array(meta_keys),
        "icon_rels": _js_array(ICON_RELS),
    }


def _js_array(values: Iterable[str]) -> str:
    return "[" + ", ".join(f"'{value}'" for value in values) + "]"
