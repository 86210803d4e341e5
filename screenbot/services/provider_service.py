"""
screenbot/services/provider_service.py

Purpose: WhatsApp provider REST clients

- Green-API: plain text messages
- Twilio: plain text plus quick-reply content templates
- Every send returns a SendResult that tells rate-limited (retryable)
  failures apart from terminal ones; nothing here retries or sleeps
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

import httpx

from screenbot.core.config import Settings
from screenbot.core.exceptions import ConfigurationError, TemplateError
from screenbot.core.logging import get_logger
from screenbot.utils.whatsapp_utils import (
    identity_to_greenapi_chat_id,
    identity_to_twilio_address,
)

logger = get_logger(__name__)

HTTP_TOO_MANY_REQUESTS = 429


@dataclass(frozen=True)
class SendResult:
    success: bool
    status_code: Optional[int] = None
    message_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def retryable(self) -> bool:
        """Only provider rate limiting is worth retrying."""
        return self.status_code == HTTP_TOO_MANY_REQUESTS

    @property
    def auth_failed(self) -> bool:
        return self.status_code in (401, 403)


class MessagingProvider:
    """Base class; subclasses talk to one provider's REST API."""

    name = "provider"
    supports_quick_replies = False

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: float = 10.0):
        self._client = client
        self._owns_client = client is None
        self.timeout = timeout

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self):
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def send_text(self, identity: str, text: str) -> SendResult:
        raise NotImplementedError

    async def create_quick_reply_template(
        self, name: str, body: str, actions: List[Dict[str, str]]
    ) -> str:
        raise TemplateError(f"{self.name} does not support quick-reply templates")

    async def send_template(self, identity: str, template_id: str) -> SendResult:
        return SendResult(success=False, error=f"{self.name} does not support templates")

    async def _post(self, url: str, **kwargs) -> SendResult:
        """
        Performs one POST and classifies the outcome.
        Network errors become a non-retryable failure.
        """
        try:
            response = await self.client.post(url, **kwargs)
        except httpx.TimeoutException:
            logger.error(f"{self.name} API timeout")
            return SendResult(success=False, error=f"{self.name} API timeout")
        except httpx.HTTPError as e:
            logger.error(f"{self.name} API request failed: {e}")
            return SendResult(success=False, error=str(e))

        if response.is_success:
            return SendResult(
                success=True,
                status_code=response.status_code,
                message_id=self._message_id(response),
            )

        return SendResult(
            success=False,
            status_code=response.status_code,
            error=response.text[:500],
        )

    def _message_id(self, response: httpx.Response) -> Optional[str]:
        return None


class GreenApiProvider(MessagingProvider):
    """Green-API instance (https://green-api.com)."""

    name = "greenapi"

    def __init__(
        self,
        id_instance: str,
        api_token: str,
        base_url: str = "https://api.green-api.com",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        super().__init__(client=client, timeout=timeout)
        self.id_instance = id_instance
        self.api_token = api_token
        self.base_url = base_url.rstrip("/")

    def _method_url(self, method: str) -> str:
        return f"{self.base_url}/waInstance{self.id_instance}/{method}/{self.api_token}"

    async def send_text(self, identity: str, text: str) -> SendResult:
        chat_id = identity_to_greenapi_chat_id(identity)
        logger.info(f"📤 Sending Green-API message to {chat_id}")
        return await self._post(
            self._method_url("sendMessage"),
            json={"chatId": chat_id, "message": text},
        )

    def _message_id(self, response: httpx.Response) -> Optional[str]:
        try:
            return response.json().get("idMessage")
        except ValueError:
            return None


class TwilioProvider(MessagingProvider):
    """Twilio WhatsApp sender with Content API quick replies."""

    name = "twilio"
    supports_quick_replies = True

    CONTENT_API_URL = "https://content.twilio.com/v1/Content"

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        whatsapp_number: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
        language: str = "es",
    ):
        super().__init__(client=client, timeout=timeout)
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.whatsapp_number = whatsapp_number  # whatsapp:+14155238886
        self.language = language
        self.base_url = f"https://api.twilio.com/2010-04-01/Accounts/{account_sid}"

    @property
    def _auth(self):
        return (self.account_sid, self.auth_token)

    async def _send(self, identity: str, **fields) -> SendResult:
        data = {
            "From": self.whatsapp_number,
            "To": identity_to_twilio_address(identity),
            **fields,
        }
        return await self._post(f"{self.base_url}/Messages.json", data=data, auth=self._auth)

    async def send_text(self, identity: str, text: str) -> SendResult:
        logger.info(f"📤 Sending Twilio message to {identity}")
        return await self._send(identity, Body=text)

    async def send_template(self, identity: str, template_id: str) -> SendResult:
        logger.info(f"📤 Sending Twilio quick reply {template_id} to {identity}")
        return await self._send(identity, ContentSid=template_id)

    async def create_quick_reply_template(
        self, name: str, body: str, actions: List[Dict[str, str]]
    ) -> str:
        """
        Creates a twilio/quick-reply content resource.

        Returns:
            Content SID (HX...)

        Raises:
            TemplateError: If Twilio rejects the request or is unreachable
        """
        payload = {
            "friendly_name": name,
            "language": self.language,
            "types": {
                "twilio/quick-reply": {"body": body, "actions": actions},
                "twilio/text": {"body": body},
            },
        }
        result = await self._post(self.CONTENT_API_URL, json=payload, auth=self._auth)
        if not result.success or not result.message_id:
            raise TemplateError(
                f"Could not create quick-reply template {name}",
                details={"status_code": result.status_code, "error": result.error},
            )
        logger.info(f"✅ Created quick-reply template {name}: {result.message_id}")
        return result.message_id

    def _message_id(self, response: httpx.Response) -> Optional[str]:
        try:
            return response.json().get("sid")
        except ValueError:
            return None


def build_provider(settings: Settings) -> MessagingProvider:
    """
    Instantiates the provider selected by MESSAGING_PROVIDER.

    Raises:
        ConfigurationError: If the provider's credentials are missing
    """
    if settings.MESSAGING_PROVIDER == "twilio":
        if not (settings.TWILIO_ACCOUNT_SID and settings.TWILIO_AUTH_TOKEN and settings.TWILIO_WHATSAPP_NUMBER):
            raise ConfigurationError("Twilio credentials are not configured")
        return TwilioProvider(
            account_sid=settings.TWILIO_ACCOUNT_SID,
            auth_token=settings.TWILIO_AUTH_TOKEN,
            whatsapp_number=settings.TWILIO_WHATSAPP_NUMBER,
            timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        )

    if not (settings.GREENAPI_ID_INSTANCE and settings.GREENAPI_API_TOKEN):
        raise ConfigurationError("Green-API credentials are not configured")
    return GreenApiProvider(
        id_instance=settings.GREENAPI_ID_INSTANCE,
        api_token=settings.GREENAPI_API_TOKEN,
        base_url=settings.GREENAPI_BASE_URL,
        timeout=settings.PROVIDER_TIMEOUT_SECONDS,
    )
