"""Tests for application assembly."""
import sentry_sdk

from remindertribu.api import main
from remindertribu.core import monitoring
from remindertribu.core.config import get_settings


def test_create_app_uses_given_settings(store, gateway, monkeypatch):
    seen = {}
    monkeypatch.setattr(main, "init_logging", lambda settings=None: seen.setdefault("logging", settings))
    monkeypatch.setattr(main, "init_monitoring", lambda settings=None: seen.setdefault("monitoring", settings))
    dev_settings = get_settings().model_copy(update={"ENV": "dev"})

    try:
        app = main.create_app(settings=dev_settings, store=store, gateway=gateway)
        assert seen["logging"] is dev_settings
        assert seen["monitoring"] is dev_settings
        assert app.state.settings is dev_settings
        assert app.state.limiter.enabled is True
    finally:
        app = main.create_app(settings=get_settings(), store=store, gateway=gateway)

    assert app.state.limiter.enabled is False


def test_init_monitoring_reads_given_dsn(monkeypatch):
    calls = []
    monkeypatch.setattr(sentry_sdk, "init", lambda **kwargs: calls.append(kwargs))
    monkeypatch.setattr(monitoring, "_initialized", False)
    settings = get_settings().model_copy(update={"SENTRY_DSN": "https://key@o0.ingest.sentry.io/1"})

    assert monitoring.init_monitoring(settings) is True
    assert calls[0]["dsn"] == "https://key@o0.ingest.sentry.io/1"
    assert calls[0]["environment"] == "test"


def test_init_monitoring_without_dsn_is_inactive(monkeypatch):
    monkeypatch.setattr(monitoring, "_initialized", False)
    settings = get_settings().model_copy(update={"SENTRY_DSN": None})

    assert monitoring.init_monitoring(settings) is False
