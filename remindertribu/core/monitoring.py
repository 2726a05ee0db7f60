import logging

from remindertribu.core.config import BaseAppSettings, settings as default_settings

_initialized = False


def init_monitoring(settings: BaseAppSettings | None = None) -> bool:
    """Start Sentry once per process; returns whether it is active."""
    global _initialized
    if _initialized:
        return _initialized
    settings = settings or default_settings
    dsn = getattr(settings, "SENTRY_DSN", None)
    if dsn:
        import sentry_sdk
        from sentry_sdk.integrations.fastapi import FastApiIntegration

        sentry_sdk.init(
            dsn=dsn,
            integrations=[FastApiIntegration()],
            traces_sample_rate=0.1,
            profiles_sample_rate=0.0,
            environment=settings.ENV,
            release=f"remindertribu@{settings.ENV}",
        )
        logging.getLogger(__name__).info("Sentry initialized")
        _initialized = True
    return _initialized
