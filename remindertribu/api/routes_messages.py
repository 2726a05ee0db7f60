"""Single WhatsApp message send.

Honours the global DRY_RUN switch and a per-request ``?dryRun=true``; in dry
run the Cloud API payload is echoed back instead of being sent.
"""
import logging
from typing import Any

from fastapi import APIRouter, Query, Request
from pydantic import BaseModel

from remindertribu.api.dependencies import GatewayDep, SettingsDep
from remindertribu.api.rate_limit import RATE_LIMITS, limiter
from remindertribu.bot.whatsapp_client import MAX_TEXT_LENGTH, WhatsAppClient
from remindertribu.core.exceptions import InvalidPhoneError, ValidationError
from remindertribu.services.phone import normalize_phone

logger = logging.getLogger(__name__)
router = APIRouter(tags=["messages"])


class SendMessageRequest(BaseModel):
    to: str = ""
    message: str = ""
    preview_url: bool = False


@router.post("/send")
@limiter.limit(RATE_LIMITS["message_send"])
def send_message(
    request: Request,
    payload: SendMessageRequest,
    gateway: GatewayDep,
    settings: SettingsDep,
    dry_run: bool = Query(False, alias="dryRun"),
) -> dict[str, Any]:
    to = normalize_phone(payload.to)
    if not to:
        raise InvalidPhoneError(payload.to)
    if not payload.message.strip():
        raise ValidationError("Empty message.", field="message")
    if len(payload.message) > MAX_TEXT_LENGTH:
        raise ValidationError(f"Message too long (max {MAX_TEXT_LENGTH} characters).", field="message")

    if settings.DRY_RUN or dry_run:
        return {
            "ok": True,
            "dryRun": True,
            "to": to,
            "payload": WhatsAppClient.text_payload(to, payload.message, payload.preview_url),
        }

    result = gateway.send_text(to, payload.message, preview_url=payload.preview_url)
    return {
        "ok": True,
        "dryRun": False,
        "to": to,
        "meta": {
            "messages": result.get("messages"),
            "contacts": result.get("contacts"),
        },
    }
