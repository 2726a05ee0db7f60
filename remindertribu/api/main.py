import datetime as dt
import logging
from typing import Callable

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware

from remindertribu.api.rate_limit import limiter, limiter_enabled
from remindertribu.api.routes_health import router as health_router
from remindertribu.api.routes_messages import router as messages_router
from remindertribu.api.routes_metrics import router as metrics_router
from remindertribu.api.routes_phones import router as phones_router
from remindertribu.api.routes_reminders import router as reminders_router
from remindertribu.bot.whatsapp_client import WhatsAppClient
from remindertribu.core.config import BaseAppSettings, get_settings
from remindertribu.core.errors import register_error_handlers
from remindertribu.core.logger import init_logging
from remindertribu.core.monitoring import init_monitoring
from remindertribu.services.member_store import MemberStore

logger = logging.getLogger(__name__)


async def _rate_limit_handler(request, exc: RateLimitExceeded):
    return JSONResponse(status_code=429, content={"ok": False, "error": "Too many requests"})


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):  # type: ignore[override]
        response = await call_next(request)
        response.headers.setdefault("Referrer-Policy", "same-origin")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Cache-Control", "no-store")
        return response


def build_store(settings: BaseAppSettings) -> MemberStore:
    store = MemberStore.from_url(
        settings.DATABASE_URL,
        expiry_field=settings.MEMBER_EXPIRY_FIELD,
        timezone=settings.REMINDER_TIMEZONE,
    )
    if settings.ENV.lower() != "prod":
        # Production schema is managed by alembic migrations.
        store.create_schema()
    return store


def create_app(
    settings: BaseAppSettings | None = None,
    store: MemberStore | None = None,
    gateway: WhatsAppClient | None = None,
    clock: Callable[[], dt.datetime] | None = None,
) -> FastAPI:
    """Build the application with its process-wide collaborators.

    The store client and the gateway are created here exactly once and
    reached by handlers through ``app.state``; tests pass their own.
    """
    settings = settings or get_settings()
    init_logging(settings=settings)
    init_monitoring(settings)

    is_production = settings.ENV.lower() == "prod"
    app = FastAPI(
        title=settings.APP_NAME,
        debug=False,
        docs_url=None if is_production else "/docs",
        redoc_url=None if is_production else "/redoc",
        openapi_url=None if is_production else "/openapi.json",
    )
    app.state.settings = settings
    app.state.store = store or build_store(settings)
    app.state.gateway = gateway or WhatsAppClient.from_settings(settings)
    app.state.clock = clock or (lambda: dt.datetime.now(dt.timezone.utc))

    limiter.enabled = limiter_enabled(settings)
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    register_error_handlers(app)

    app.include_router(reminders_router, prefix="/api")
    app.include_router(phones_router, prefix="/api")
    app.include_router(messages_router, prefix="/api/messages")
    app.include_router(health_router, prefix="/api")
    app.include_router(metrics_router, tags=["metrics"])

    logger.info(
        "%s started env=%s dry_run=%s phone_apply=%s gateway_configured=%s",
        settings.APP_NAME,
        settings.ENV,
        settings.DRY_RUN,
        settings.ALLOW_PHONE_APPLY,
        app.state.gateway.is_configured,
    )
    return app
