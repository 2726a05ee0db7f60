from __future__ import annotations

import logging
from typing import Any

import requests

from remindertribu.core.exceptions import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 4096


class WhatsAppClient:
    """WhatsApp Cloud API client used as the outbound messaging gateway.

    Unlike a fire-and-forget notifier, every send returns the API response
    and raises ``UpstreamError`` on failure so callers decide whether a
    failure is fatal (single send) or recorded per member (bulk runs).
    """

    def __init__(
        self,
        api_key: str | None,
        phone_number_id: str | None,
        api_version: str = "v20.0",
        timeout: float = 10,
        session: requests.Session | None = None,
    ):
        self.api_key = api_key
        self.phone_number_id = phone_number_id
        self.base_url = f"https://graph.facebook.com/{api_version}/{phone_number_id}/messages"
        self.timeout = timeout
        self._http = session or requests.Session()

    @classmethod
    def from_settings(cls, settings) -> WhatsAppClient:
        return cls(
            settings.WHATSAPP_API_KEY,
            settings.WHATSAPP_PHONE_NUMBER_ID,
            api_version=settings.WHATSAPP_API_VERSION,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.phone_number_id)

    def require_configured(self) -> None:
        if not self.api_key:
            raise ConfigurationError("WHATSAPP_API_KEY")
        if not self.phone_number_id:
            raise ConfigurationError("WHATSAPP_PHONE_NUMBER_ID")

    @staticmethod
    def text_payload(to: str, body: str, preview_url: bool = False) -> dict[str, Any]:
        return {
            "messaging_product": "whatsapp",
            "to": to.replace("+", "").replace(" ", ""),
            "type": "text",
            "text": {"body": body, "preview_url": preview_url},
        }

    @staticmethod
    def template_payload(
        to: str,
        template_name: str,
        language: str,
        components: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "messaging_product": "whatsapp",
            "to": to.replace("+", "").replace(" ", ""),
            "type": "template",
            "template": {
                "name": template_name,
                "language": {"code": language},
            },
        }
        if components:
            payload["template"]["components"] = components
        return payload

    def send_text(self, to: str, body: str, preview_url: bool = False) -> dict[str, Any]:
        """Send a plain text message."""
        result = self._post(self.text_payload(to, body, preview_url))
        logger.info("[WHATSAPP] ✓ Sent to %s: %s", to, body[:50])
        return result

    def send_template(
        self,
        to: str,
        template_name: str,
        language: str,
        components: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        """Send a pre-approved template message."""
        result = self._post(self.template_payload(to, template_name, language, components))
        logger.info("[WHATSAPP TEMPLATE] ✓ Sent to %s with %s", to, template_name)
        return result

    def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        self.require_configured()
        try:
            response = self._http.post(
                self.base_url,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("[WHATSAPP] Transport error sending to %s: %s", payload.get("to"), exc)
            raise UpstreamError(f"Meta API unreachable: {exc}") from exc

        try:
            data = response.json()
        except ValueError:
            data = {}

        if not response.ok:
            error = data.get("error") if isinstance(data, dict) else None
            detail = None
            if isinstance(error, dict):
                detail = error.get("message") or error.get("error_user_msg")
            detail = detail or response.text or response.reason
            logger.error("[WHATSAPP] API %s sending to %s: %s", response.status_code, payload.get("to"), detail)
            raise UpstreamError(f"Meta API error: {detail}", status_code=response.status_code)
        return data if isinstance(data, dict) else {}
