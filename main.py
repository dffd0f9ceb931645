# main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import CORS_ALLOW_HEADERS, CORS_ALLOW_METHODS
from core.providers import init_providers
from core.settings import get_settings

# Routers
from health.router import router as health_router
from images.router import limited as images_limited_router
from images.router import router as images_router
from sms.router import router as sms_router

log = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or "INFO").upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------

def create_app(providers=None) -> FastAPI:
    """
    Build the app. Providers are resolved from the environment at startup
    unless a prebuilt container is passed in.
    """
    settings = providers.settings if providers is not None else get_settings()
    _configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "providers", None) is None:
            init_providers(app)
        yield

    app = FastAPI(title="Bird Relay Backend", lifespan=lifespan)

    if providers is not None:
        init_providers(app, providers)

    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=settings.cors.allow_origin_regex,
        allow_methods=CORS_ALLOW_METHODS,
        allow_headers=CORS_ALLOW_HEADERS,
    )

    app.include_router(health_router)
    app.include_router(images_router)
    app.include_router(images_limited_router)
    app.include_router(sms_router)

    @app.get("/")
    async def root():
        return {"status": "ok", "message": "bird relay backend running"}

    return app


app = create_app()


# ---------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
