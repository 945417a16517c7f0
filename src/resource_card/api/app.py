"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from resource_card.api.admin import router as admin_router
from resource_card.api.encoding import enrichment_payload, to_data_url
from resource_card.api.models import CaptureBody, ContinueBody, MetadataBody
from resource_card.app_logging import configure_logging
from resource_card.containers import AppContainer
from resource_card.domain.errors import ResourceCardError

_CONTINUE_CAPTURE_HINT = (
    "Browser opened - interact manually, then call /continue-capture"
)
_CONTINUE_METADATA_HINT = (
    "Browser opened - interact manually, then call /continue-metadata"
)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        state_container.session_registry.start()
        yield
        await state_container.session_registry.stop()
        await state_container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=container.settings.cors_allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(admin_router)

    @app.exception_handler(ResourceCardError)
    async def handle_resource_card_error(
        request: Request, exc: ResourceCardError
    ) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "Request failed: path=%s error=%s", request.url.path, exc.message
            )
        return _failure(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return _failure(400, _describe_validation_error(exc))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error", extra={"path": request.url.path})
        return _failure(500, str(exc) or type(exc).__name__)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/capture")
    async def capture(body: CaptureBody, request: Request) -> dict[str, object]:
        """Screenshot a URL at the requested size."""
        state_container: AppContainer = request.app.state.container
        image = await state_container.enrichment_service.capture(body.to_request())
        return {"success": True, "imageUrl": to_data_url(image)}

    @app.post("/metadata")
    async def metadata(body: MetadataBody, request: Request) -> dict[str, object]:
        """Extract metadata, cover, favicon and optional screenshot for a URL."""
        state_container: AppContainer = request.app.state.container
        result = await state_container.enrichment_service.metadata(body.to_request())
        return enrichment_payload(result)

    @app.post("/interactive-capture")
    async def interactive_capture(
        body: CaptureBody, request: Request
    ) -> dict[str, object]:
        """Open a visible browser and return the session id to continue with."""
        state_container: AppContainer = request.app.state.container
        service = state_container.enrichment_service
        session_id = await service.start_interactive_capture(body.to_request())
        return {
            "success": True,
            "sessionId": session_id,
            "message": _CONTINUE_CAPTURE_HINT,
        }

    @app.post("/continue-capture")
    async def continue_capture(
        body: ContinueBody, request: Request
    ) -> dict[str, object]:
        """Screenshot an interactive session and close its browser."""
        state_container: AppContainer = request.app.state.container
        image = await state_container.enrichment_service.continue_capture(
            body.session_id
        )
        return {"success": True, "imageUrl": to_data_url(image)}

    @app.post("/interactive-metadata")
    async def interactive_metadata(
        body: MetadataBody, request: Request
    ) -> dict[str, object]:
        """Open a visible browser and return the session id to continue with."""
        state_container: AppContainer = request.app.state.container
        service = state_container.enrichment_service
        session_id = await service.start_interactive_metadata(body.to_request())
        return {
            "success": True,
            "sessionId": session_id,
            "message": _CONTINUE_METADATA_HINT,
        }

    @app.post("/continue-metadata")
    async def continue_metadata(
        body: ContinueBody, request: Request
    ) -> dict[str, object]:
        """Extract metadata from an interactive session and close its browser."""
        state_container: AppContainer = request.app.state.container
        result = await state_container.enrichment_service.continue_metadata(
            body.session_id
        )
        return enrichment_payload(result)

    return app


def _failure(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"success": False, "message": message}
    )


def _describe_validation_error(exc: RequestValidationError) -> str:
    """Return a short message naming the offending request fields."""
    parts = []
    for error in exc.errors():
        location = ".".join(
            str(item) for item in error.get("loc", ()) if item != "body"
        )
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "Invalid request"
