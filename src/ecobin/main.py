"""FastAPI application entry point."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import dustbins, health, live, routes
from .config import settings
from .services.dispatch.polling import PollingDriver


def _build_polling_driver() -> PollingDriver:
    from .persistence.state_store import build_state_store
    from .services.dispatch.engine import build_engine

    return PollingDriver(build_engine(), build_state_store())


@asynccontextmanager
async def lifespan(app: FastAPI):
    driver = app.state.polling_driver
    if driver is None and settings.live_dispatch_enabled:
        driver = _build_polling_driver()
        app.state.polling_driver = driver
    if driver is not None:
        driver.start()
    yield
    if driver is not None:
        driver.stop()


def create_app(polling_driver: PollingDriver | None = None) -> FastAPI:
    app = FastAPI(title=settings.app_name, root_path="", lifespan=lifespan)
    app.state.polling_driver = polling_driver
    if settings.frontend_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.frontend_allowed_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Root endpoint for diagnostics
    @app.get("/")
    def root():
        return {
            "service": settings.app_name,
            "status": "running",
            "api_prefix": settings.api_prefix,
            "health": f"{settings.api_prefix}/health",
            "docs": "/docs",
        }

    app.include_router(health.router, prefix=settings.api_prefix)
    app.include_router(dustbins.router, prefix=settings.api_prefix)
    app.include_router(routes.router, prefix=settings.api_prefix)
    app.include_router(live.router, prefix=settings.api_prefix)
    return app


app = create_app()
