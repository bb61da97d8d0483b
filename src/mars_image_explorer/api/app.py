"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from mars_image_explorer.api.photos import router as photos_router
from mars_image_explorer.app_logging import configure_logging
from mars_image_explorer.containers import AppContainer
from mars_image_explorer.domain.errors import (
    AlreadyVotedError,
    InvalidCursorError,
    PartialWriteError,
    TransientError,
    ValidationError,
)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(photos_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.exception_handler(ValidationError)
    async def validation_error(_: Request, exc: ValidationError) -> JSONResponse:
        logger.error("Rejected invalid request: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": str(exc)},
        )

    @app.exception_handler(InvalidCursorError)
    async def invalid_cursor(_: Request, exc: InvalidCursorError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": str(exc)},
        )

    @app.exception_handler(TransientError)
    async def transient_error(_: Request, exc: TransientError) -> JSONResponse:
        logger.warning("Store unavailable: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Photos are temporarily unavailable, try again."},
        )

    @app.exception_handler(AlreadyVotedError)
    async def already_voted(_: Request, exc: AlreadyVotedError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": str(exc)},
        )

    @app.exception_handler(PartialWriteError)
    async def partial_write(_: Request, exc: PartialWriteError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_202_ACCEPTED,
            content={"image_id": exc.image_id, "status": "recorded", "votes": None},
        )

    return app
