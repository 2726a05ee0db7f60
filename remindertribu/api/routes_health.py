from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter
from sqlalchemy.exc import SQLAlchemyError

from remindertribu.api.dependencies import GatewayDep, SettingsDep, StoreDep

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])


@router.get("/health")
def health(store: StoreDep, gateway: GatewayDep, settings: SettingsDep) -> dict[str, Any]:
    """Diagnostic view of configuration presence and store reachability (no secrets)."""
    env = {
        "hasDatabase": bool(settings.DATABASE_URL),
        "hasWaToken": bool(gateway.api_key),
        "hasWaPhoneId": bool(gateway.phone_number_id),
        "dryRun": settings.DRY_RUN,
        "daysAhead": settings.REMINDER_DAYS_AHEAD,
        "onlyExpired": settings.REMINDER_ONLY_EXPIRED,
        "cooldownDays": settings.REMINDER_COOLDOWN_DAYS,
    }
    store_ok = False
    sample = None
    try:
        sample_id = store.sample_id()
        store_ok = True
        sample = {"id": sample_id} if sample_id else None
    except SQLAlchemyError as exc:
        logger.warning("Store health check failed: %s", exc)
    return {"ok": True, "env": env, "storeOk": store_ok, "sample": sample}


@router.get("/live")
async def live() -> dict[str, str]:
    """Kubernetes-style liveness endpoint (no dependencies)."""
    return {"status": "alive"}
