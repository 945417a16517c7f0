"""Response encoding helpers."""

import base64

from resource_card.domain.models import EnrichmentResult, Metadata


def to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL."""
    mime_type = detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "application/octet-stream"


def metadata_payload(metadata: Metadata) -> dict[str, str | None]:
    """Serialize metadata with the keys the design plugin reads."""
    return {
        "title": metadata.title,
        "description": metadata.description,
        "ogImage": metadata.social_image_url,
        "favicon": metadata.favicon_url,
        "hostname": metadata.hostname,
    }


def enrichment_payload(result: EnrichmentResult) -> dict[str, object]:
    """Serialize an enrichment result as a success response."""
    return {
        "success": True,
        "metadata": metadata_payload(result.metadata),
        "coverImage": _optional_data_url(result.cover_image),
        "faviconImage": _optional_data_url(result.favicon_image),
        "screenshotImage": _optional_data_url(result.screenshot_image),
    }


def _optional_data_url(image_bytes: bytes | None) -> str | None:
    return to_data_url(image_bytes) if image_bytes else None
