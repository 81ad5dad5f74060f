#!/usr/bin/env python3
"""Send a single test email through SendGrid.

Uses SENDGRID_API_KEY if set, otherwise the SSM parameter named by
SSM_SENDGRID_API_KEY (default /sendgrid-mail/api-key).

Usage:
    python scripts/send_test_email.py --from me@example.com --to you@example.com \
        --subject "Hello" --text "Plain body"
    python scripts/send_test_email.py --from me@example.com --from-name "Me" \
        --to you@example.com --subject "Report" --html "<b>Hi</b>" --attach report.pdf
"""

import argparse
import asyncio
import sys

from src.adapters.sendgrid import SendGridAPIError, SendGridTransport
from src.core.mailer import Mailer
from src.core.models import Attachment, Contact, MailMessage


async def send(args: argparse.Namespace) -> int:
    message = MailMessage(
        from_=[Contact(name=args.from_name, address=args.sender)],
        to=[Contact(address=address) for address in args.to],
        subject=args.subject,
        text=args.text,
        html=args.html,
        attachments=[Attachment(path=path) for path in args.attach],
    )

    transport = SendGridTransport.from_ssm()
    try:
        result = await Mailer(transport).send(message)
    except SendGridAPIError as e:
        print(f"❌ SendGrid rejected the message ({e.status_code}): {e.payload}")
        return 1
    finally:
        await transport.close()

    print(f"✅ Sent: {result.message_id}")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Send a test email via SendGrid")
    parser.add_argument("--from", dest="sender", required=True, help="Sender address")
    parser.add_argument("--from-name", default="", help="Sender display name")
    parser.add_argument("--to", action="append", required=True, help="Recipient (repeatable)")
    parser.add_argument("--subject", required=True)
    parser.add_argument("--text", help="Plain text body")
    parser.add_argument("--html", help="HTML body")
    parser.add_argument("--attach", action="append", default=[], help="File to attach")
    args = parser.parse_args()

    sys.exit(asyncio.run(send(args)))


if __name__ == "__main__":
    main()
