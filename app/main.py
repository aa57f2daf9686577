"""FastAPI application factory. No business logic; only wiring, lifespan and error mapping.

Run with:  uvicorn --factory app.main:create_app
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1 import router as api_router
from app.core.config import Settings, get_settings
from app.core.context import build_context
from app.core.errors import ServiceError
from app.services.user_directory import bootstrap_default_admin

logger = logging.getLogger(__name__)


async def _service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "Request failed",
            extra={"path": request.url.path, "status_code": exc.status_code, "reason": exc.message},
        )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Invalid request body"},
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build the application. Settings are validated here, so a missing DATABASE_URL or
    JWT_SECRET aborts startup with a pydantic ValidationError.
    """
    if settings is None:
        load_dotenv()
        settings = get_settings()

    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%SZ",
    )
    ctx = build_context(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        ctx.store.ensure_schema()
        bootstrap_default_admin(ctx.directory, settings)
        logger.info("JellyStream API started (env=%s)", settings.APP_ENV)
        try:
            yield
        finally:
            ctx.close()
            logger.info("Database connections closed")

    app = FastAPI(
        title="JellyStream API",
        version="2.2.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.ctx = ctx

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.APP_ENV == "dev" else [],
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.add_exception_handler(ServiceError, _service_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)

    app.include_router(api_router, prefix=settings.API_PREFIX)

    @app.get("/")
    def root() -> dict[str, str]:
        """Root route; minimal payload for discovery."""
        return {"message": "JellyStream API"}

    return app
