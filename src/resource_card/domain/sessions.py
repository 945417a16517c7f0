"""Domain models for interactive sessions."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING

from resource_card.domain.models import CaptureRequest

if TYPE_CHECKING:
    from resource_card.adapters.browser import RenderContext


class SessionKind(StrEnum):
    """Which continue operation may consume a session."""

    CAPTURE = "capture"
    METADATA = "metadata"


@dataclass(frozen=True)
class Session:
    """A live browser page waiting for an operator to continue."""

    id: str
    kind: SessionKind
    context: "RenderContext"
    request: CaptureRequest
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


@dataclass(frozen=True)
class SessionSummary:
    """Read-only view of a session for reporting."""

    id: str
    kind: SessionKind
    url: str
    created_at: datetime
    expires_at: datetime
