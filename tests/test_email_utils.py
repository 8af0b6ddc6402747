import pytest

from app.config import settings
from app.core.email_utils import (
    build_email_verification_context,
    build_password_reset_context,
    render_email,
    send_email,
)


def test_password_reset_email_links_to_frontend():
    context = build_password_reset_context("Ada", "reset-token")

    assert context["reset_url"] == f"{settings.FRONTEND_URL}/reset-password?token=reset-token"
    html = render_email("password_reset", context)
    assert "Ada" in html
    assert context["reset_url"] in html


def test_verification_email_links_to_frontend():
    context = build_email_verification_context("Ada", "verify-token")

    assert context["verify_url"] == f"{settings.FRONTEND_URL}/verify-email?token=verify-token"
    assert context["verify_url"] in render_email("verification", context)


@pytest.mark.asyncio
async def test_send_email_fails_without_mail_server(monkeypatch):
    monkeypatch.setattr(settings, "MAIL_SERVER", None)

    with pytest.raises(RuntimeError):
        await send_email("ada@example.com", "Hi", "verification", build_email_verification_context("Ada", "t"))
