from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..logging import configure_logging, request_id_middleware
from .routes import export, health, top_items, worlds


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="FFXIV Market Board", version=__version__)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.middleware("http")(request_id_middleware)

    app.include_router(health.router)
    app.include_router(worlds.router)
    app.include_router(top_items.router)
    app.include_router(export.router)

    return app


app = create_app()
