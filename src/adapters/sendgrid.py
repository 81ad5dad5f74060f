"""SendGrid v3 mail transport adapter.

Provides:
- Contact formatting into SendGrid's {name, email} pairs
- Request body assembly, including base64 attachments read from disk
- A single authenticated POST to /v3/mail/send with error mapping
"""

from __future__ import annotations

import asyncio
import re
from base64 import b64encode
from pathlib import Path
from typing import TYPE_CHECKING, Any

import httpx
from aws_lambda_powertools import Logger

from src.core.models import (
    ContentPart,
    Personalization,
    SendGridAddress,
    SendGridAttachment,
    SendGridRequestBody,
    SendResult,
)

if TYPE_CHECKING:
    from src.core.models import Attachment, Contact, MailMessage, SendGridConfig

logger = Logger()

_MESSAGE_ID_STRIP = re.compile(r"[<>\s]")


class SendGridAPIError(Exception):
    """Raised when SendGrid rejects a request with a JSON error body."""

    def __init__(self, payload: Any, status_code: int):
        self.payload = payload
        self.status_code = status_code
        super().__init__(f"SendGrid request failed with status {status_code}: {payload}")


def format_address(contact: Contact, recipient_field: bool = False) -> SendGridAddress:
    """Convert a contact into a SendGrid address.

    Recipient names are always wrapped in double quotes so that names with
    commas survive header formatting. Only the first embedded quote is
    escaped. Sender names are passed through unchanged.

    See: https://stackoverflow.com/questions/15555563/how-to-format-an-email-from-header-that-contains-a-comma
    """
    if recipient_field:
        escaped = contact.name.replace('"', '\\"', 1)
        return SendGridAddress(name=f'"{escaped}"', email=contact.address)

    return SendGridAddress(name=contact.name, email=contact.address)


async def read_attachment(attachment: Attachment) -> SendGridAttachment:
    """Read an attachment from disk and base64 encode it.

    The filename is the last "/"-separated segment of the path.

    Raises:
        OSError: If the file can't be read
    """
    data = await asyncio.to_thread(Path(attachment.path).read_bytes)
    return SendGridAttachment(
        filename=attachment.path.split("/")[-1],
        content=b64encode(data).decode("ascii"),
    )


async def build_request_body(message: MailMessage) -> SendGridRequestBody:
    """Assemble the SendGrid request body for a message.

    Attachments are read concurrently; the first read failure aborts the
    whole build.

    Args:
        message: The message to send

    Returns:
        The request body with one personalization

    Raises:
        OSError: If any attachment can't be read
    """
    attachments = await asyncio.gather(*(read_attachment(a) for a in message.attachments))

    content: list[ContentPart] = []
    if message.text:
        content.append(ContentPart(type="text/plain", value=message.text))
    if message.html:
        content.append(ContentPart(type="text/html", value=message.html))

    return SendGridRequestBody(
        personalizations=[
            Personalization(
                subject=message.subject,
                to=[format_address(contact, recipient_field=True) for contact in message.to],
            )
        ],
        content=content,
        from_=format_address(message.from_[0]),
        attachments=list(attachments) or None,
    )


def serialize_request_body(body: SendGridRequestBody) -> dict[str, Any]:
    """Dump the body with wire field names, omitting absent attachments."""
    return body.model_dump(by_alias=True, exclude_none=True)


def sanitize_message_id(message_id: str) -> str:
    """Strip angle brackets and whitespace from a Message-ID header value."""
    return _MESSAGE_ID_STRIP.sub("", message_id)


class SendGridTransport:
    """Mail transport for the SendGrid v3 API."""

    name = "sendgrid"
    version = "1.0.0"

    BASE_URL = "https://api.sendgrid.com/v3"
    SEND_PATH = "/mail/send"
    USER_AGENT = "sendgrid-mail"

    def __init__(self, config: SendGridConfig) -> None:
        self.config = config
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_ssm(cls, parameter_name: str | None = None) -> SendGridTransport:
        """Create a transport with the API key from env or SSM Parameter Store."""
        # Import here to avoid module-level dependency on SSM (for testing)
        from src.adapters.ssm import load_sendgrid_config

        return cls(load_sendgrid_config(parameter_name))

    @property
    def endpoint(self) -> str:
        return f"{self.BASE_URL}{self.SEND_PATH}"

    @property
    def auth_header(self) -> str:
        return f"Bearer {self.config.api_key}"

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.BASE_URL,
                headers={
                    "user-agent": self.USER_AGENT,
                    "Authorization": self.auth_header,
                    "Content-Type": "application/json",
                },
                timeout=self.config.timeout,
            )
        return self._client

    async def send(self, message: MailMessage) -> SendResult:
        """Send a message through SendGrid.

        Args:
            message: The message to send

        Returns:
            SendResult with the message's own Message-ID, sanitized

        Raises:
            OSError: If an attachment can't be read (nothing is sent)
            SendGridAPIError: If SendGrid rejects the request with a JSON body
            httpx.HTTPError: On any other HTTP or network failure
        """
        body = await build_request_body(message)
        logger.debug("Sending mail via SendGrid", extra={"mail": message.model_dump(by_alias=True)})
        return await self.execute(body, message)

    async def execute(self, body: SendGridRequestBody, message: MailMessage) -> SendResult:
        """POST a built body once. No retries.

        SendGrid returns no body on success, so the id comes from the
        outgoing message rather than the response.
        """
        client = await self._get_client()
        response = await client.post(self.SEND_PATH, json=serialize_request_body(body))

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            payload = _parse_error_body(e.response)
            if payload is None:
                raise
            raise SendGridAPIError(payload, e.response.status_code) from e

        return SendResult(message_id=sanitize_message_id(message.message_id))

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None


def _parse_error_body(response: httpx.Response) -> Any | None:
    try:
        return response.json()
    except ValueError:
        return None
