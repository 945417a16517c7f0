"""Registry of interactive browser sessions awaiting continuation."""

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from resource_card.adapters.browser import RenderContext, Renderer
from resource_card.domain.models import CaptureRequest
from resource_card.domain.sessions import Session, SessionKind, SessionSummary

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class SessionRegistry:
    """Owns live render contexts between the start and continue calls.

    Every mutation of the session map happens under a single lock, and the
    lock is never held across browser I/O. A session is released only by the
    caller that removed it from the map, so a context is closed exactly once
    whether the entry is consumed, swept, or dropped at shutdown.
    """

    renderer: Renderer
    ttl_seconds: float = 600
    sweep_interval_seconds: float = 60
    clock: Callable[[], datetime] = _utcnow
    _sessions: dict[str, Session] = field(default_factory=dict, init=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)
    _last_id: int = field(default=0, init=False)
    _sweeper: asyncio.Task[None] | None = field(default=None, init=False)

    async def create(self, request: CaptureRequest, kind: SessionKind) -> str:
        """Open a headed browser on the request URL and register it."""
        viewport = request.viewport if kind is SessionKind.CAPTURE else None
        context = await self.renderer.open(request.url, viewport, interactive=True)
        try:
            async with self._lock:
                session_id = self._next_id()
                created_at = self.clock()
                self._sessions[session_id] = Session(
                    id=session_id,
                    kind=kind,
                    context=context,
                    request=request,
                    created_at=created_at,
                    expires_at=created_at + timedelta(seconds=self.ttl_seconds),
                )
        except BaseException:
            await release_context(context, label="unregistered")
            raise
        _logger.info(
            "Interactive session ready: session_id=%s kind=%s url=%s",
            session_id,
            kind,
            request.url,
        )
        return session_id

    async def consume(
        self, session_id: str, kind: SessionKind | None = None
    ) -> Session | None:
        """Remove and return a live session; None if unknown, used or expired.

        A session registered for a different kind is left untouched.
        """
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None or (kind is not None and session.kind is not kind):
                return None
            del self._sessions[session_id]

        if session.is_expired(self.clock()):
            _logger.info("Session expired before continue: session_id=%s", session_id)
            await release_context(session.context, label=session_id)
            return None
        return session

    async def sweep(self, now: datetime | None = None) -> list[str]:
        """Remove and release every session older than the TTL."""
        now = now or self.clock()
        async with self._lock:
            expired = [
                session
                for session in self._sessions.values()
                if session.is_expired(now)
            ]
            for session in expired:
                del self._sessions[session.id]

        for session in expired:
            _logger.info("Cleaning up expired session: session_id=%s", session.id)
        await asyncio.gather(
            *(release_context(session.context, session.id) for session in expired)
        )
        return [session.id for session in expired]

    async def close_all(self) -> int:
        """Remove and release every session, returning how many were open."""
        async with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        await asyncio.gather(
            *(release_context(session.context, session.id) for session in sessions)
        )
        return len(sessions)

    async def list_sessions(self) -> list[SessionSummary]:
        """Return a snapshot of live sessions, oldest first."""
        async with self._lock:
            sessions = sorted(self._sessions.values(), key=lambda s: s.created_at)
        return [
            SessionSummary(
                id=session.id,
                kind=session.kind,
                url=session.request.url,
                created_at=session.created_at,
                expires_at=session.expires_at,
            )
            for session in sessions
        ]

    def __len__(self) -> int:
        return len(self._sessions)

    async def run_sweeper(self) -> None:
        """Sweep expired sessions on a fixed period until cancelled."""
        while True:
            await asyncio.sleep(self.sweep_interval_seconds)
            try:
                await self.sweep()
            except Exception:
                _logger.exception("Session sweep failed")

    def start(self) -> None:
        """Start the background sweeper task."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(
                self.run_sweeper(), name="session-sweeper"
            )

    async def stop(self) -> None:
        """Stop the sweeper and release every remaining session."""
        if self._sweeper is not None:
            self._sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweeper
            self._sweeper = None
        closed = await self.close_all()
        if closed:
            _logger.info("Closed %s interactive sessions on shutdown", closed)

    def _next_id(self) -> str:
        # Microsecond timestamps, forced strictly increasing so ids never repeat.
        self._last_id = max(time.time_ns() // 1000, self._last_id + 1)
        return str(self._last_id)


async def release_context(context: RenderContext, label: str) -> None:
    """Close a render context, logging instead of raising on failure."""
    try:
        await context.close()
    except Exception:
        _logger.exception(
            "Failed to release render context", extra={"session_id": label}
        )
