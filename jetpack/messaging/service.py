"""
Transactional Messaging Service

Thin pass-through to the SendGrid v3 mail API. Without an API token the
service is considered disabled and sending is a silent no-op. Each
recipient gets its own message; a failure for one recipient is logged and
the rest of the batch continues.
"""

import warnings
from email.utils import parseaddr
from typing import Any, Dict, Optional, Tuple

import httpx

from jetpack.core.config import Settings, settings as default_settings
from jetpack.core.exceptions import ExternalAPIError, ValidationError
from jetpack.core.logging import get_logger
from jetpack.core.metrics import record_email
from jetpack.messaging.schemas import Email, EmailSettings, Sms, SmsSettings

logger = get_logger(__name__)


def parse_recipient(recipient: str) -> Tuple[str, str]:
    """Split ``Name <address>`` into (name, address)."""
    name, address = parseaddr(recipient)
    if "@" not in address:
        raise ValidationError(f"Invalid email address: '{recipient}'")
    return name, address


class MessageService:
    """Sends email through SendGrid; SMS is a deprecated no-op."""

    def __init__(
        self,
        email_settings: EmailSettings,
        sms_settings: Optional[SmsSettings] = None,
        api_token: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.email_settings = email_settings
        self.api_token = api_token
        self.api_url = api_url or Settings.model_fields["SENDGRID_API_URL"].default
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "MessageService":
        return cls(
            EmailSettings(
                sender_address=settings.EMAIL_SENDER_ADDRESS,
                sender_name=settings.EMAIL_SENDER_NAME
            ),
            api_token=settings.SENDGRID_API_TOKEN,
            api_url=settings.SENDGRID_API_URL,
            timeout=settings.EMAIL_TIMEOUT_SECONDS
        )

    @property
    def enabled(self) -> bool:
        return bool(self.api_token and self.api_token.strip())

    async def send_email(self, email: Email) -> None:
        """Send ``email`` to each of its recipients."""
        email = email.model_copy(update={
            "from_address": email.from_address or self.email_settings.sender_address,
            "from_name": email.from_name or self.email_settings.sender_name,
        })

        if not self.enabled:
            logger.debug("email_disabled", recipients=email.to_address)
            return

        logger.info("email_sending", recipients=email.to_address)

        headers = {
            "Authorization": f"Bearer {self.api_token}",
            "Content-Type": "application/json"
        }

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            for recipient in email.recipients:
                try:
                    name, address = parse_recipient(recipient)
                    logger.info("email_sending_to", to=address)

                    response = await client.post(
                        self.api_url,
                        json=self._build_payload(email, address, name),
                        headers=headers
                    )
                    if response.status_code >= 400:
                        raise ExternalAPIError(
                            f"SendGrid API error: {response.text}",
                            service="sendgrid",
                            http_status=response.status_code
                        )

                    record_email("sent")
                    logger.info("email_sent", to=address, http_status=response.status_code)
                except Exception as e:
                    record_email("failed")
                    logger.error(
                        "email_recipient_failed",
                        to=recipient,
                        error=str(e),
                        error_type=type(e).__name__
                    )

    def send_sms(self, sms: Sms) -> None:
        """Deprecated: Twilio SMS is no longer enabled, this does nothing."""
        warnings.warn(
            "SMS delivery is no longer enabled; send_sms is a no-op",
            DeprecationWarning,
            stacklevel=2
        )

    @staticmethod
    def _build_payload(email: Email, address: str, name: str) -> Dict[str, Any]:
        to: Dict[str, str] = {"email": address}
        if name:
            to["name"] = name

        sender: Dict[str, str] = {"email": email.from_address or ""}
        if email.from_name:
            sender["name"] = email.from_name

        return {
            "personalizations": [{"to": [to]}],
            "from": sender,
            "subject": email.subject,
            "content": [{"type": "text/html", "value": email.message or " "}],
        }


def get_message_service(settings: Optional[Settings] = None) -> MessageService:
    """Build a MessageService from explicit or environment settings."""
    return MessageService.from_settings(settings or default_settings)
