"""Image re-encoding with Pillow."""

import io
from dataclasses import dataclass
from typing import Protocol

from PIL import Image, ImageOps, UnidentifiedImageError

from resource_card.domain.errors import ImageDecodeError


class ImageCodec(Protocol):
    """Interface for normalizing image bytes."""

    def to_jpeg(self, data: bytes, quality: int) -> bytes:
        """Re-encode an image as JPEG."""

    def to_png(self, data: bytes, size: tuple[int, int] | None = None) -> bytes:
        """Re-encode an image as PNG, optionally resized to an exact size."""

    def to_square_png(self, data: bytes, size: int) -> bytes:
        """Cover-crop an image to a square and encode it as PNG."""


@dataclass
class PillowImageCodec(ImageCodec):
    """Pillow implementation of the image codec."""

    def to_jpeg(self, data: bytes, quality: int) -> bytes:
        """Re-encode as JPEG, flattening transparency onto white."""
        image = _open(data)
        if image.mode in {"RGBA", "LA"} or (
            image.mode == "P" and "transparency" in image.info
        ):
            rgba = image.convert("RGBA")
            background = Image.new("RGB", rgba.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.getchannel("A"))
            image = background
        elif image.mode != "RGB":
            image = image.convert("RGB")
        return _save(image, "JPEG", quality=quality, optimize=True)

    def to_png(self, data: bytes, size: tuple[int, int] | None = None) -> bytes:
        image = _open(data)
        if size is not None and image.size != size:
            image = image.resize(size, Image.Resampling.LANCZOS)
        return _save(image, "PNG")

    def to_square_png(self, data: bytes, size: int) -> bytes:
        image = _open(data).convert("RGBA")
        fitted = ImageOps.fit(image, (size, size), Image.Resampling.LANCZOS)
        return _save(fitted, "PNG")


def _open(data: bytes) -> Image.Image:
    """Decode image bytes fully so truncated files fail here."""
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        ValueError,
    ) as exc:
        raise ImageDecodeError(f"{type(exc).__name__}: {exc}") from exc
    return image


def _save(image: Image.Image, image_format: str, **params: object) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=image_format, **params)
    return buffer.getvalue()
