"""
WhatsApp client over the Evolution API (one instance per school: "school_<id>").
Requires EVOLUTION_API_URL and EVOLUTION_API_KEY in config.
"""
import logging
import re
from typing import Any, Protocol
from uuid import UUID

import httpx

from app.core.config import settings
from app.core.errors import InvalidPhoneNumberError, WhatsAppAPIError, WhatsAppError

logger = logging.getLogger(__name__)

MIN_NUMBER_DIGITS = 12


class MessagingChannel(Protocol):
    async def send_text(self, school_id: UUID, phone: str, text: str) -> None: ...

    async def send_file(self, school_id: UUID, phone: str, url: str, filename: str, caption: str) -> None: ...

    async def is_channel_connected(self, school_id: UUID) -> bool: ...


def instance_name_for(school_id: UUID) -> str:
    return f"school_{school_id}"


def normalize_phone(phone: str | None, country_code: str | None = None) -> str:
    """Digits only, country code added to 10/11-digit national numbers."""
    country_code = country_code or settings.WHATSAPP_DEFAULT_COUNTRY_CODE
    number = re.sub(r"\D", "", phone or "")
    if not number.startswith(country_code) and len(number) in (10, 11):
        number = country_code + number
    if len(number) < MIN_NUMBER_DIGITS:
        raise InvalidPhoneNumberError(phone)
    return number


def _is_configured() -> bool:
    return bool(settings.EVOLUTION_API_URL.strip() and settings.EVOLUTION_API_KEY.strip())


def _decode(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class EvolutionWhatsAppClient:
    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url if base_url is not None else settings.EVOLUTION_API_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.EVOLUTION_API_KEY
        self.timeout = timeout or settings.EVOLUTION_TIMEOUT_SECONDS
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        if not self.base_url or not self.api_key:
            raise WhatsAppError("WhatsApp provider is not configured (EVOLUTION_API_URL / EVOLUTION_API_KEY)")
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={"apikey": self.api_key},
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _post(self, path: str, payload: dict[str, Any], what: str) -> Any:
        async with self._client() as client:
            try:
                response = await client.post(path, json=payload)
            except httpx.HTTPError as e:
                raise WhatsAppError(f"WhatsApp {what} request failed: {e}") from e
        if response.is_error:
            data = _decode(response)
            logger.error("Evolution %s error status=%s body=%s", what, response.status_code, data)
            detail = data.get("message") if isinstance(data, dict) else None
            raise WhatsAppAPIError(
                response.status_code,
                data,
                f"WhatsApp {what} failed: {detail or response.reason_phrase}",
            )
        return _decode(response)

    async def send_text(self, school_id: UUID, phone: str, text: str) -> None:
        number = normalize_phone(phone)
        payload = {
            "number": number,
            "options": {"delay": 1200, "presence": "composing"},
            "text": text,
        }
        logger.info("Sending WhatsApp text via %s to %s", instance_name_for(school_id), number)
        await self._post(f"/message/sendText/{instance_name_for(school_id)}", payload, "text send")

    async def send_file(self, school_id: UUID, phone: str, url: str, filename: str, caption: str) -> None:
        number = normalize_phone(phone)
        payload = {
            "number": number,
            "options": {"delay": 1200, "presence": "composing"},
            "mediatype": "document",
            "caption": caption,
            "media": url,
            "fileName": filename,
        }
        logger.info("Sending WhatsApp document %s to %s", filename, number)
        await self._post(f"/message/sendMedia/{instance_name_for(school_id)}", payload, "document send")

    async def connection_state(self, school_id: UUID) -> str:
        """Live instance state from the provider; 'disconnected' when unknown or unreachable."""
        try:
            async with self._client() as client:
                response = await client.get(f"/instance/connectionState/{instance_name_for(school_id)}")
        except (httpx.HTTPError, WhatsAppError) as e:
            logger.warning("Evolution connection state check failed for %s: %s", school_id, e)
            return "disconnected"
        if response.is_error:
            return "disconnected"
        data = _decode(response)
        if not isinstance(data, dict):
            return "disconnected"
        instance = data.get("instance") if isinstance(data.get("instance"), dict) else {}
        return instance.get("state") or data.get("state") or "disconnected"

    async def is_channel_connected(self, school_id: UUID) -> bool:
        return await self.connection_state(school_id) == "open"


def get_whatsapp_client() -> EvolutionWhatsAppClient:
    if not _is_configured():
        logger.warning("Evolution API not configured; WhatsApp sends will fail until EVOLUTION_API_URL/KEY are set")
    return EvolutionWhatsAppClient()
