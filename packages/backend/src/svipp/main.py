"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (database, Redis).
Middleware, CORS, exception handlers and routers all registered here.

Secret material is loaded inside create_app(), not lazily: if the
pepper or the signing key is missing, building the app raises
ConfigurationError and uvicorn never starts serving. The hasher,
issuer and validator are built once from it and shared via app.state.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from svipp import __version__
from svipp.api import api_router
from svipp.auth.jwt import TokenIssuer, TokenValidator
from svipp.auth.password import PasswordHasher
from svipp.auth.secret_material import SecretMaterial
from svipp.config import Settings, settings as default_settings
from svipp.errors import SvippError

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: FastAPI lifespan replaces on_event("startup") / on_event("shutdown").
    Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    cfg: Settings = app.state.settings
    logger.info(
        "svipp.starting",
        version=__version__,
        environment=cfg.environment,
        port=cfg.port,
    )

    # Development bootstrap — production schemas are managed outside the app
    if cfg.is_development:
        from svipp.db.engine import create_tables
        await create_tables()

    # Redis is optional — without it the rate limiter stands aside
    from svipp.cache import close_redis, init_redis
    try:
        await init_redis()
        logger.info("svipp.redis_connected")
    except Exception as e:
        logger.warning("svipp.redis_unavailable", error=type(e).__name__)

    yield

    # Shutdown
    logger.info("svipp.shutdown")
    await close_redis()

    from svipp.db.engine import engine
    await engine.dispose()


async def svipp_error_handler(request: Request, exc: SvippError) -> JSONResponse:
    """Expected domain errors → their status code and public message."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.public_detail},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything unexpected: full detail in the logs, nothing in the response."""
    logger.exception("svipp.unhandled_error", path=request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    settings = settings or default_settings
    secrets = SecretMaterial.from_settings(settings)

    app = FastAPI(
        title="Svipp API",
        description="Svipp backend — accounts, session tokens and resource ownership",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.password_hasher = PasswordHasher.from_secrets(secrets)
    app.state.token_issuer = TokenIssuer(secrets)
    app.state.token_validator = TokenValidator(secrets)

    app.add_exception_handler(SvippError, svipp_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → Security → RateLimit → CORS → handler

    from svipp.middleware.rate_limit import RateLimitMiddleware
    from svipp.middleware.request_id import RequestIdMiddleware
    from svipp.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    # Mount API routes
    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: svipp.main:app)
app = create_app()
