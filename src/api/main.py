"""HTTP service entrypoint."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from src.api.handlers import handle_invalid_request
from src.api.router import router
from src.app import App, create_app
from src.config.logging import configure_logging
from src.config.settings import load_settings

logger = logging.getLogger(__name__)


def create_api(app: App) -> FastAPI:
    """Build the FastAPI application around an application container."""

    @asynccontextmanager
    async def lifespan(_api: FastAPI) -> AsyncIterator[None]:
        try:
            yield
        finally:
            logger.info("shutting down")
            await app.airtable.aclose()

    api = FastAPI(title="Mapfluence AI Query Service", lifespan=lifespan)
    api.state.container = app
    api.add_middleware(
        CORSMiddleware,
        allow_origin_regex=".*",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    api.add_exception_handler(RequestValidationError, handle_invalid_request)
    api.include_router(router)
    return api


def main() -> None:
    """Run the HTTP server."""

    settings = load_settings()
    configure_logging(settings.log_level)

    api = create_api(create_app(settings))
    logger.info("query service listening host=%s port=%d", settings.host, settings.port)
    uvicorn.run(api, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
