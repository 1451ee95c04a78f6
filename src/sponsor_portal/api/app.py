"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from sponsor_portal.api.admin import router as admin_router
from sponsor_portal.api.public import router as public_router
from sponsor_portal.api.sponsor import router as sponsor_router
from sponsor_portal.app_logging import configure_logging
from sponsor_portal.containers import AppContainer
from sponsor_portal.errors import (
    GENERIC_FAILURE,
    INVALID_REQUEST,
    PortalError,
    StoreError,
    ThrottledError,
)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(sponsor_router)
    app.include_router(public_router)
    app.include_router(admin_router)

    @app.exception_handler(PortalError)
    async def portal_error_handler(request: Request, exc: PortalError) -> JSONResponse:
        body: dict[str, object] = {"error": exc.message}
        headers: dict[str, str] = {}
        if isinstance(exc, ThrottledError):
            headers["Retry-After"] = str(max(1, exc.retry_after_seconds))
            if exc.next_eligible_at is not None:
                body["nextEligibleAt"] = exc.next_eligible_at.isoformat()
        elif isinstance(exc, StoreError):
            logger.error(
                "Request failed on store: path=%s entity=%s operation=%s",
                request.url.path,
                exc.entity,
                exc.operation,
            )
            body = {"error": GENERIC_FAILURE}
        return JSONResponse(body, status_code=exc.status_code, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.info(
            "Rejected malformed request: path=%s errors=%s",
            request.url.path,
            len(exc.errors()),
        )
        return JSONResponse({"error": INVALID_REQUEST}, status_code=400)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error: path=%s", request.url.path)
        return JSONResponse({"error": GENERIC_FAILURE}, status_code=500)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app
