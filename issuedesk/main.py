"""
Issue Desk — application entry point.

This is the **only** module that assembles the app.  All business logic
lives in the `api/`, `core/`, `stores/` and `services/` packages.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from issuedesk.api.routes import api_router
from issuedesk.core.config import Settings, get_settings
from issuedesk.core.exceptions import register_exception_handlers
from issuedesk.core.policy import Role
from issuedesk.core.rate_limit import LoginRateLimiter
from issuedesk.core.security import TokenService
from issuedesk.db.session import create_backend
from issuedesk.stores.base import StoreBackend

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )


async def seed_admin(backend: StoreBackend, settings: Settings) -> None:
    """Create the configured admin account on first run."""
    if not (settings.FIRST_ADMIN_EMAIL and settings.FIRST_ADMIN_PASSWORD):
        return
    email = settings.FIRST_ADMIN_EMAIL.strip().lower()
    async with backend.user_store() as users:
        if await users.find_by_email(email) is not None:
            return
        await users.create(
            {
                "username": "admin",
                "email": email,
                "password": settings.FIRST_ADMIN_PASSWORD,
                "phone_number": None,
                "role": Role.ADMIN.value,
            }
        )
    logger.info("Default admin created: %s (password: <redacted>)", email)


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    backend: StoreBackend = app.state.backend
    try:
        await backend.connect()
    except Exception:
        # fatal: the server must not start without its store
        logger.critical("Error connecting to the database", exc_info=True)
        raise

    await seed_admin(backend, settings)
    logger.info("🚀 %s v%s started", settings.PROJECT_NAME, settings.VERSION)
    yield
    await backend.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app(
    settings: Settings | None = None,
    backend: StoreBackend | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)
    if settings.uses_default_secret:
        logger.warning(
            "⚠️  WARNING: You are running with the default INSECURE Secret Key! "
            "Update the SECRET_KEY in your .env file immediately."
        )

    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Issue tracking API",
        version=settings.VERSION,
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    application.state.settings = settings
    application.state.backend = backend or create_backend(settings.DATABASE_URL)
    application.state.token_service = TokenService(settings)
    application.state.login_limiter = LoginRateLimiter(settings)

    # CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Global exception handlers (prevent stack-trace leakage)
    register_exception_handlers(application)

    @application.get("/", response_class=PlainTextResponse, include_in_schema=False)
    async def root() -> str:
        return "Server is live!"

    application.include_router(api_router, prefix=settings.API_PREFIX)
    return application


def run() -> None:
    """Serve the app with uvicorn on ``HOST:PORT``."""
    settings = get_settings()
    uvicorn.run(
        create_app(settings),
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )
