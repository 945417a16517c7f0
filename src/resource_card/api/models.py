"""Request payloads accepted by the enrichment endpoints."""

import math

from pydantic import BaseModel, ConfigDict, Field, field_validator

from resource_card.domain.models import CaptureRequest


class CaptureBody(BaseModel):
    """Body for /capture and /interactive-capture."""

    model_config = ConfigDict(populate_by_name=True)

    url: str
    width: int
    height: int

    @field_validator("width", "height", mode="before")
    @classmethod
    def _floor_dimension(cls, value: object) -> object:
        """Floor fractional sizes produced by a scale factor."""
        if isinstance(value, str):
            try:
                value = float(value)
            except ValueError:
                return value
        if isinstance(value, float) and math.isfinite(value):
            return math.floor(value)
        return value

    def to_request(self) -> CaptureRequest:
        return CaptureRequest(
            url=self.url.strip(),
            viewport_width=self.width,
            viewport_height=self.height,
        )


class MetadataBody(CaptureBody):
    """Body for /metadata and /interactive-metadata."""

    needs_screenshot: bool = Field(default=False, alias="needsScreenshot")

    def to_request(self) -> CaptureRequest:
        return CaptureRequest(
            url=self.url.strip(),
            viewport_width=self.width,
            viewport_height=self.height,
            needs_screenshot=self.needs_screenshot,
        )


class ContinueBody(BaseModel):
    """Body for /continue-capture and /continue-metadata."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="sessionId", min_length=1)

    @field_validator("session_id", mode="before")
    @classmethod
    def _coerce_session_id(cls, value: object) -> object:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value
