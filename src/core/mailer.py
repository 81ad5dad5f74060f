"""Generic mailer that delegates delivery to a MailTransport."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

    from src.core.interfaces import MailTransport
    from src.core.models import MailMessage, SendResult


class Mailer:
    """Sends messages through an injected transport."""

    def __init__(self, transport: MailTransport) -> None:
        self.transport = transport

    async def send(self, message: MailMessage) -> SendResult:
        """Send a message.

        Args:
            message: The message to deliver

        Returns:
            The send result with the message id

        Raises:
            Whatever the transport raises; nothing is retried.
        """
        return await self.transport.send(message)

    async def send_with_callback(
        self,
        message: MailMessage,
        callback: Callable[[Exception | None, SendResult | None], None],
    ) -> None:
        """Send a message and report the outcome as callback(error, result)."""
        try:
            result = await self.transport.send(message)
        except Exception as e:
            callback(e, None)
            return
        callback(None, result)
