import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from src.core.config import Settings, get_settings
from src.routers import diagnostics, health

settings = get_settings()

logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s %(message)s")
logger = logging.getLogger("rootless_fixture.backend")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application for the given (or cached) settings."""
    settings = settings or get_settings()

    app = FastAPI(
        title="Rootless Fixture Backend",
        description="Health and diagnostics endpoints for rootless container checks.",
        version="0.1.0",
        openapi_tags=[
            {"name": "health", "description": "Container health"},
            {"name": "diagnostics", "description": "Runtime and environment snapshot"},
        ],
    )

    # Without the middleware request.session is absent and sessions report as disabled
    if settings.sessions_enabled:
        app.add_middleware(SessionMiddleware, secret_key=settings.session_secret)

    # Ensure standard HTTP exceptions pass through (do not override FastAPI/Starlette defaults)
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_passthrough(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    # Catch-all for truly unhandled exceptions only
    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    # Routers
    app.include_router(health.router)
    app.include_router(diagnostics.router)
    return app


app = create_app(settings)
