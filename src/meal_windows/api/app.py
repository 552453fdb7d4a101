"""FastAPI application factory."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from meal_windows.api.redistribution import router as redistribution_router
from meal_windows.app_logging import configure_logging
from meal_windows.containers import AppContainer
from meal_windows.domain.errors import (
    NoPendingRedistributionError,
    RedistributionCommitError,
    RedistributionError,
    RedistributionPendingError,
    WindowNotFoundError,
)

_ERROR_STATUS: dict[type[RedistributionError], int] = {
    WindowNotFoundError: status.HTTP_404_NOT_FOUND,
    NoPendingRedistributionError: status.HTTP_404_NOT_FOUND,
    RedistributionPendingError: status.HTTP_409_CONFLICT,
    RedistributionCommitError: status.HTTP_502_BAD_GATEWAY,
}


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    app = FastAPI()
    app.state.container = container
    app.include_router(redistribution_router)

    @app.exception_handler(RedistributionError)
    async def redistribution_error(
        request: Request, exc: RedistributionError
    ) -> JSONResponse:
        status_code = _ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
        logger.info(
            "%s %s -> %d: %s", request.method, request.url.path, status_code, exc
        )
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app
