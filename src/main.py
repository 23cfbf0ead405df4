"""Profile store service entry point."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import ORJSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from api.exception_handlers import setup_exception_handlers
from api.middleware.logging import RequestLoggingMiddleware
from api.routes.health import SERVICE_VERSION
from api.routes.health import router as health_router
from api.v1 import router as v1_router
from api.v1.dependencies import get_profile_service
from core.config import settings
from core.logging import setup_logging
from core.rate_limit import READ_LIMIT, WRITE_LIMIT, limiter, rate_limit_exceeded_handler

setup_logging()
logger = structlog.get_logger()

API_DESCRIPTION = f"""
Stores one profile record per user: name, email, free-form fields, tags
and an optional picture. Pictures are re-encoded as JPEG inside a
1024x1024 box. Profiles can be looked up by tag.

Every profile request carries `Authorization: Bearer <token>` whose subject
is the profile uuid, plus a `timestamp` (ms since epoch) within the allowed
clock skew.

Reads are limited to {READ_LIMIT} and mutations to {WRITE_LIMIT} per client.
"""


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Log startup and optionally re-derive the tag index from profile records."""
    logger.info("service_starting", env=settings.app_env, data_path=str(settings.data_path))
    if settings.rebuild_tag_index_on_startup:
        resolve = app.dependency_overrides.get(get_profile_service, get_profile_service)
        try:
            entries = await resolve().rebuild_tag_index()
        except OSError:
            logger.exception("startup_tag_index_rebuild_failed")
        else:
            logger.info("startup_tag_index_rebuilt", entries=entries)
    yield
    logger.info("service_stopped")


def _add_middleware(app: FastAPI) -> None:
    # Added innermost first; CORS ends up outermost.
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
    )


def create_app() -> FastAPI:
    """Build the application: middleware, error envelope and routers."""
    app = FastAPI(
        title=settings.app_name,
        description=API_DESCRIPTION,
        version=SERVICE_VERSION,
        debug=settings.debug,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        openapi_tags=[
            {"name": "health", "description": "Liveness and storage checks"},
            {"name": "profiles", "description": "Profile records, pictures and tag lookup"},
        ],
    )

    _add_middleware(app)
    setup_exception_handlers(app)

    app.include_router(health_router)
    # Profile routes live at /user/{uuid}/profile and /profiles, unversioned.
    app.include_router(v1_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.host, port=settings.port, reload=not settings.is_production)
