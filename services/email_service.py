import logging
import os
import re
import smtplib
import ssl
from email.message import EmailMessage
from typing import Iterable, List

logger = logging.getLogger("grouptrip.email")

SMTP_HOST = os.getenv("SMTP_HOST", "")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USER = os.getenv("SMTP_USER", "")
SMTP_PASS = os.getenv("SMTP_PASS", "")
SMTP_FROM = os.getenv("SMTP_FROM", "Group Trips <no-reply@example.com>")


class EmailDeliveryError(Exception):
    """The SMTP relay refused or could not be reached."""


def normalize_recipients(addresses: Iterable[str]) -> List[str]:
    """Drop blanks and case-insensitive duplicates, keeping first-seen order."""
    seen = set()
    result = []
    for address in addresses or []:
        if not address or not address.strip():
            continue
        key = address.strip().lower()
        if key in seen:
            continue
        seen.add(key)
        result.append(address.strip())
    return result


def _html_to_text(html: str) -> str:
    text = re.sub(r"<br\s*/?>|</p>|<hr\s*/?>", "\n", html, flags=re.IGNORECASE)
    text = re.sub(r"<[^>]+>", "", text)
    return "\n".join(line.strip() for line in text.splitlines() if line.strip())


def send_email(to: List[str], subject: str, html: str) -> int:
    """
    Send one message to every address in `to`.

    Returns the number of recipients. No-op (0) on an empty list. A missing
    SMTP_HOST and transport errors both raise EmailDeliveryError so callers
    decide whether to retry.
    """
    to_list = normalize_recipients(to)
    if not to_list:
        return 0
    if not SMTP_HOST:
        logger.warning("SMTP_HOST not configured; cannot send '%s' to %d recipient(s)", subject, len(to_list))
        raise EmailDeliveryError("SMTP_HOST is not configured")

    msg = EmailMessage()
    msg["From"] = SMTP_FROM
    msg["To"] = ", ".join(to_list)
    msg["Subject"] = subject
    msg.set_content(_html_to_text(html))
    msg.add_alternative(html, subtype="html")

    context = ssl.create_default_context()
    try:
        if SMTP_PORT == 465:
            with smtplib.SMTP_SSL(SMTP_HOST, SMTP_PORT, timeout=15, context=context) as server:
                if SMTP_USER:
                    server.login(SMTP_USER, SMTP_PASS)
                server.send_message(msg)
        else:
            with smtplib.SMTP(SMTP_HOST, SMTP_PORT, timeout=15) as server:
                server.ehlo()
                server.starttls(context=context)
                server.ehlo()
                if SMTP_USER:
                    server.login(SMTP_USER, SMTP_PASS)
                server.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Failed to send '%s' to %s: %s", subject, to_list, e)
        raise EmailDeliveryError(str(e)) from e

    logger.info("Sent '%s' to %d recipient(s)", subject, len(to_list))
    return len(to_list)
