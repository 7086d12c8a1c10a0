# storefront/core/email_utils.py
import asyncio
import smtplib
import ssl
from email.message import EmailMessage
from typing import Optional

from storefront.config import settings


def _from_address() -> Optional[str]:
    return settings.smtp_from or settings.smtp_user


def smtp_configured() -> bool:
    return bool(settings.smtp_host and settings.smtp_port and settings.smtp_user and settings.smtp_password and _from_address())


def build_message(to: str, subject: str, html: str, text: Optional[str] = None, sender_name: Optional[str] = None) -> EmailMessage:
    from_addr = _from_address()
    msg = EmailMessage()
    msg["To"] = to
    msg["From"] = f"{sender_name} <{from_addr}>" if sender_name else from_addr
    msg["Subject"] = subject
    msg.set_content(text or "View this e-mail as HTML to see its content.")
    msg.add_alternative(html, subtype="html")
    return msg


def _deliver(msg: EmailMessage) -> None:
    """Blocking SMTP delivery: implicit SSL (465) or STARTTLS (587) depending on smtp_use_starttls."""
    context = ssl.create_default_context()
    if settings.smtp_use_starttls:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=settings.smtp_timeout) as server:
            server.ehlo()
            server.starttls(context=context)
            server.ehlo()
            server.login(settings.smtp_user, settings.smtp_password)
            server.send_message(msg)
    else:
        with smtplib.SMTP_SSL(settings.smtp_host, settings.smtp_port, context=context, timeout=settings.smtp_timeout) as server:
            server.login(settings.smtp_user, settings.smtp_password)
            server.send_message(msg)


async def send_email(to: str, subject: str, html: str, sender_name: Optional[str] = None, text: Optional[str] = None) -> None:
    """Sends one HTML mail; the SMTP conversation runs in the default executor."""
    if not smtp_configured():
        raise RuntimeError("SMTP config missing: check host/port/user/password/from")
    msg = build_message(to, subject, html, text=text, sender_name=sender_name)
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, _deliver, msg)
