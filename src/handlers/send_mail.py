"""Send mail Lambda handler - delivers one message through SendGrid.

Invoked directly (or from a queue consumer) with a message document:
{"from": [...], "to": [...], "subject": "...", "text": "...", "html": "...",
 "attachments": [{"path": "/tmp/report.pdf"}]}

Attachment paths must resolve inside ATTACHMENT_DIR (default /tmp); anything
else is rejected before a file is opened.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Any

import httpx
from aws_lambda_powertools import Logger
from botocore.exceptions import ClientError
from pydantic import ValidationError

# Support both Lambda and test import paths
try:
    from adapters.sendgrid import SendGridAPIError, SendGridTransport
    from core.mailer import Mailer
    from core.models import MailMessage
except ImportError:
    from src.adapters.sendgrid import SendGridAPIError, SendGridTransport
    from src.core.mailer import Mailer
    from src.core.models import MailMessage

logger = Logger()

# Configuration from environment
ATTACHMENT_DIR = os.environ.get("ATTACHMENT_DIR", "/tmp")


def handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Lambda handler for sending a single message.

    Args:
        event: The message document
        context: Lambda context

    Returns:
        Response with status and message_id on success
    """
    try:
        message = MailMessage.model_validate(event)
    except ValidationError as e:
        logger.warning("Invalid mail event", extra={"error": str(e)})
        return {
            "statusCode": 400,
            "body": {"status": "error", "message": "Invalid message"},
        }

    outside = [a.path for a in message.attachments if not _is_allowed_attachment(a.path)]
    if outside:
        logger.warning("Attachment outside allowed directory", extra={"paths": outside})
        return {
            "statusCode": 400,
            "body": {"status": "error", "message": "Attachment path not allowed"},
        }

    logger.info(
        "Sending mail",
        extra={"message_id": message.message_id, "recipients": len(message.to)},
    )

    return asyncio.run(_send(message))


def _is_allowed_attachment(path: str) -> bool:
    return Path(path).resolve().is_relative_to(Path(ATTACHMENT_DIR).resolve())


async def _send(message: MailMessage) -> dict[str, Any]:
    try:
        transport = SendGridTransport.from_ssm()
    except (ClientError, ValueError):
        # ValueError covers a bad SENDGRID_TIMEOUT and pydantic config validation
        logger.exception("SendGrid transport not configured")
        return {
            "statusCode": 500,
            "body": {"status": "error", "message": "Mail transport not configured"},
        }

    mailer = Mailer(transport)

    try:
        result = await mailer.send(message)
    except OSError as e:
        logger.warning("Attachment could not be read", extra={"error": str(e)})
        return {
            "statusCode": 400,
            "body": {"status": "error", "message": "Attachment unreadable"},
        }
    except SendGridAPIError as e:
        logger.warning(
            "SendGrid rejected message",
            extra={"status_code": e.status_code, "errors": e.payload},
        )
        return {
            "statusCode": 502,
            "body": {"status": "rejected", "errors": e.payload},
        }
    except httpx.HTTPError:
        logger.exception("SendGrid request failed")
        return {
            "statusCode": 502,
            "body": {"status": "error", "message": "Mail provider request failed"},
        }
    finally:
        await transport.close()

    logger.info("Mail sent", extra={"message_id": result.message_id})
    return {
        "statusCode": 200,
        "body": {"status": "sent", "message_id": result.message_id},
    }
