"""Pydantic models for mail messages and the SendGrid wire format."""

from __future__ import annotations

import os
from email.utils import make_msgid
from functools import partial
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

# Fixed Message-ID domain; make_msgid otherwise does a getfqdn() lookup per message
MESSAGE_ID_DOMAIN = os.environ.get("MESSAGE_ID_DOMAIN", "sendgrid-mail.local")


# === Generic mail message ===


class Contact(BaseModel):
    """A display name / address pair."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    address: str


class Attachment(BaseModel):
    """A file to attach, read from disk at send time."""

    path: str


class MailMessage(BaseModel):
    """A message handed to a mail transport.

    Exactly one sender is used; extra senders are ignored by the SendGrid
    transport. Text/HTML presence is not validated here, the provider rejects
    empty content.
    """

    model_config = ConfigDict(populate_by_name=True)

    from_: list[Contact] = Field(alias="from", min_length=1)
    to: list[Contact] = Field(min_length=1)
    subject: str
    text: str | None = None
    html: str | None = None
    attachments: list[Attachment] = Field(default_factory=list)

    # Generated Message-ID header, e.g. "<170000000012.34.5678@sendgrid-mail.local>"
    message_id: str = Field(default_factory=partial(make_msgid, domain=MESSAGE_ID_DOMAIN))


class SendResult(BaseModel):
    """Outcome of a successful send."""

    message_id: str


# === SendGrid v3 wire format ===


class SendGridAddress(BaseModel):
    name: str
    email: str


class SendGridAttachment(BaseModel):
    filename: str
    content: str  # base64


class Personalization(BaseModel):
    """One subject + recipient group. Always exactly one per request."""

    subject: str
    to: list[SendGridAddress]


class ContentPart(BaseModel):
    type: Literal["text/plain", "text/html"]
    value: str


class SendGridRequestBody(BaseModel):
    """Body of POST /v3/mail/send."""

    model_config = ConfigDict(populate_by_name=True)

    personalizations: list[Personalization]
    content: list[ContentPart] = Field(default_factory=list)
    from_: SendGridAddress = Field(alias="from")
    attachments: list[SendGridAttachment] | None = None


# === Configuration ===


class SendGridConfig(BaseModel):
    """Credentials for the SendGrid transport, fixed for its lifetime."""

    model_config = ConfigDict(frozen=True)

    api_key: str = Field(min_length=1)
    timeout: float | None = None  # seconds; None waits indefinitely
