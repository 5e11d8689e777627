"""Domain errors raised while queueing and delivering billing notifications."""
from typing import Any


class NotificationError(Exception):
    """Base class; the message ends up in NotificationLog.error_message."""


class InvoiceNotFoundError(NotificationError):
    def __init__(self, invoice_id):
        super().__init__(f"Invoice {invoice_id} not found.")


class InvoiceAlreadyResolvedError(NotificationError):
    def __init__(self, status: str):
        super().__init__(f"Invoice already resolved (status={status}); nothing to collect.")


class ChannelDisconnectedError(NotificationError):
    def __init__(self):
        super().__init__("WhatsApp disconnected (confirmed by provider).")


class InvalidStatusTransitionError(NotificationError):
    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move notification from {current} to {target}.")


class WhatsAppError(Exception):
    """Any failure talking to the WhatsApp provider."""


class InvalidPhoneNumberError(WhatsAppError):
    def __init__(self, phone: str | None):
        super().__init__(f"Invalid phone number (check the area code): {phone}")


class WhatsAppAPIError(WhatsAppError):
    def __init__(self, status_code: int | None, payload: Any, message: str):
        self.status_code = status_code
        self.payload = payload
        super().__init__(message)


NO_WHATSAPP_ACCOUNT_MESSAGE = "Invalid number / recipient has no WhatsApp account."


def _recipient_missing(payload: Any) -> bool:
    # Evolution answers {"response": {"message": [{"exists": false, "number": ...}]}}
    if not isinstance(payload, dict):
        return False
    response = payload.get("response")
    if not isinstance(response, dict):
        return False
    messages = response.get("message")
    if not isinstance(messages, list) or not messages:
        return False
    first = messages[0]
    return isinstance(first, dict) and first.get("exists") is False


def friendly_error_message(exc: BaseException) -> str:
    """Translate known provider error shapes into an operator-facing message."""
    if isinstance(exc, WhatsAppAPIError) and _recipient_missing(exc.payload):
        return NO_WHATSAPP_ACCOUNT_MESSAGE
    return str(exc) or exc.__class__.__name__
