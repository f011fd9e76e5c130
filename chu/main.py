"""Main FastAPI application for the Camel Health Union server."""

import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from chu.api import lifespan, router, store_error_handler
from chu.config import Settings, get_settings
from chu.errors import StoreOperationError
from chu.storage import DocumentStore


def create_app(
    store: Optional[DocumentStore] = None, settings: Optional[Settings] = None
) -> FastAPI:
    """
    Build the application.

    When `store` is given it is used as is; otherwise one is opened from
    `settings` during startup.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Camel Health Union API",
        description="FastAPI service storing users and heart-rate readings in MongoDB",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StoreOperationError, store_error_handler)
    app.include_router(router)
    return app


app = create_app()


def run() -> None:
    """Serve the application with uvicorn on the configured host and port."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
