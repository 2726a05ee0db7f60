import logging

from slowapi import Limiter
from slowapi.util import get_remote_address

from remindertribu.core.config import settings

logger = logging.getLogger(__name__)


def _storage_uri() -> str:
    if settings.ENV.lower() != "prod":
        logger.info("Rate limiter using in-memory storage (dev/test mode)")
        return "memory://"
    return settings.REDIS_URL or "memory://"


def limiter_enabled(app_settings) -> bool:
    return app_settings.ENV.lower() not in {"test", "testing"}


limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=_storage_uri(),
    enabled=limiter_enabled(settings),
)

RATE_LIMITS = {
    "message_send": "30/minute",
    "reminder_run": "10/minute",
}
