# app/core/email_utils.py

import smtplib
import ssl
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Dict, Any
import logging
from datetime import datetime

from jinja2 import Environment, FileSystemLoader, select_autoescape
from starlette.concurrency import run_in_threadpool

from app.config import settings

logger = logging.getLogger(__name__)

# =========================
# Jinja2 Template Setup
# =========================
template_env = Environment(
    loader=FileSystemLoader(settings.EMAIL_TEMPLATE_DIR),
    autoescape=select_autoescape(['html', 'xml'])
)
template_env.globals['current_year'] = datetime.now().year


def render_email(template_name: str, context: Dict[str, Any]) -> str:
    """Renders `<template_name>.html` from EMAIL_TEMPLATE_DIR."""
    return template_env.get_template(f"{template_name}.html").render(context)


async def send_email(to_email: str, subject: str, template_name: str, context: Dict[str, Any]):
    """
    Renders an HTML template and sends it over SMTP.

    smtplib blocks, so the transport runs in a worker thread. Meant to be
    scheduled as a FastAPI background task.
    """
    logger.debug(f"Attempting to send email to {to_email} with subject: {subject} using template: {template_name}")

    try:
        html_content = render_email(template_name, context)
    except Exception as e:
        logger.error(f"Error rendering email template '{template_name}.html' for {to_email}: {e}", exc_info=True)
        raise RuntimeError(f"Failed to render email template: {template_name}")

    sender = settings.MAIL_FROM or settings.MAIL_USERNAME
    message = MIMEMultipart("alternative")
    message["Subject"] = subject
    message["From"] = sender
    message["To"] = to_email
    message.attach(MIMEText(html_content, "html"))

    def _send_sync_email():
        if not settings.MAIL_SERVER:
            raise RuntimeError("MAIL_SERVER is not configured")

        context = ssl.create_default_context()
        server = None
        try:
            if settings.MAIL_TLS: # STARTTLS
                server = smtplib.SMTP(settings.MAIL_SERVER, settings.MAIL_PORT)
                server.ehlo()
                server.starttls(context=context)
                server.ehlo()
            else:
                server = smtplib.SMTP_SSL(settings.MAIL_SERVER, settings.MAIL_PORT, context=context)

            if settings.MAIL_USERNAME and settings.MAIL_PASSWORD:
                server.login(settings.MAIL_USERNAME, settings.MAIL_PASSWORD)

            server.sendmail(sender, to_email, message.as_string())
            logger.info(f"Email successfully sent to {to_email}")
        except smtplib.SMTPAuthenticationError as e:
            logger.error(f"SMTP Authentication Error for {to_email}: Check username/password. Details: {e}", exc_info=True)
            raise
        except smtplib.SMTPException as e:
            logger.error(f"SMTP Error for {to_email}: {e}", exc_info=True)
            raise
        finally:
            if server:
                server.quit()

    try:
        await run_in_threadpool(_send_sync_email)
    except Exception as e:
        raise RuntimeError(f"Failed to send email to {to_email}: {e}")


# --- Context Builders ---

def build_email_verification_context(name: str, token: str) -> Dict[str, Any]:
    verify_url = f"{settings.FRONTEND_URL}/verify-email?token={token}"
    return {
        "name": name,
        "verify_url": verify_url,
        "app_name": settings.APP_NAME,
        "token_expiry_minutes": settings.VERIFY_EMAIL_TOKEN_EXPIRE_MINUTES,
    }

def build_password_reset_context(name: str, token: str) -> Dict[str, Any]:
    reset_url = f"{settings.FRONTEND_URL}/reset-password?token={token}"
    return {
        "name": name,
        "reset_url": reset_url,
        "app_name": settings.APP_NAME,
        "token_expiry_minutes": settings.RESET_PASSWORD_TOKEN_EXPIRE_MINUTES,
    }
