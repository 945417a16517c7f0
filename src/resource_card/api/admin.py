"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

if TYPE_CHECKING:
    from resource_card.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str | None:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str | None = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token; no token disables admin."""
    if not admin_token or not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/sessions", dependencies=[Depends(require_admin)])
async def list_sessions(request: Request) -> dict[str, object]:
    """Return interactive sessions still waiting for a continue call."""
    container: AppContainer = request.app.state.container
    sessions = await container.session_registry.list_sessions()
    return {
        "sessions": [
            {
                "sessionId": session.id,
                "kind": str(session.kind),
                "url": session.url,
                "createdAt": session.created_at.isoformat(),
                "expiresAt": session.expires_at.isoformat(),
            }
            for session in sessions
        ]
    }
