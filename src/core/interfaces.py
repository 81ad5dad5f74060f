"""Core interfaces for mail delivery backends."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from src.core.models import MailMessage, SendResult


class MailTransport(Protocol):
    """Interface for a backend that delivers a single message."""

    name: str

    async def send(self, message: MailMessage) -> SendResult:
        """Deliver the message, raising on failure."""
        ...
