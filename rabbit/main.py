"""
Rabbit API entrypoint: ``uvicorn rabbit.main:app``
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from rabbit.config import settings, warn_if_unconfigured

logger = logging.getLogger(__name__)
from rabbit.providers.openai import OpenAIProvider
from rabbit.routes import health, llm, personas, status


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle events"""
    warn_if_unconfigured()

    # Startup: one provider client shared by all requests
    if getattr(app.state, "provider", None) is None:
        app.state.provider = OpenAIProvider(
            api_key=settings.openai_api_key,
            model=settings.default_model,
            api_url=settings.openai_api_url,
        )
    logger.info(f"Provider ready: {app.state.provider.name} ({settings.openai_api_url})")

    yield

    # Shutdown: Cleanup resources
    await app.state.provider.cleanup()
    app.state.provider = None


def create_app() -> FastAPI:
    app = FastAPI(
        title="Rabbit API",
        description="Streaming relay for parallel model takes",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
        max_age=86400,
    )

    # Include routers
    app.include_router(health.router, prefix="/api", tags=["health"])
    app.include_router(llm.router, prefix="/api", tags=["llm"])
    app.include_router(status.router, prefix="/api", tags=["llm"])
    app.include_router(personas.router, prefix="/api", tags=["personas"])
    return app


app = create_app()
