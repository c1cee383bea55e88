# app/services/email_service.py
"""
Message content for outbound auth emails.

Delivery is handled by app.core.email_client; this module only builds
subject / text / HTML bodies and maps Supabase email actions to them.
"""
import logging
from urllib.parse import urlencode

from fastapi import HTTPException, status

from app.core.config import get_settings
from app.core.email_client import send_email
from app.schemas.auth import SendEmailHookPayload

logger = logging.getLogger(__name__)

_HTML_TEMPLATE = """\
<div style="font-family: Arial, sans-serif; max-width: 560px; margin: 0 auto;">
  <h2 style="color: #111827;">{heading}</h2>
  <p style="color: #374151;">{intro}</p>
  <p style="margin: 24px 0;">
    <a href="{url}" style="background: #111827; color: #ffffff; padding: 12px 20px;
       border-radius: 6px; text-decoration: none;">{button}</a>
  </p>
  <p style="color: #6b7280; font-size: 12px;">{footer}</p>
</div>
"""


def _render(heading: str, intro: str, button: str, url: str, footer: str) -> tuple[str, str]:
    text = f"{heading}\n\n{intro}\n\n{url}\n\n{footer}\n"
    html = _HTML_TEMPLATE.format(
        heading=heading,
        intro=intro,
        button=button,
        url=url,
        footer=footer,
    )
    return text, html


def send_verification_email(email: str, url: str) -> None:
    """
    Send the "verify your email" message with the confirmation link.
    """
    settings = get_settings()
    text, html = _render(
        heading=f"Welcome to {settings.SMTP_FROM_NAME}",
        intro="Please confirm your email address to finish creating your account.",
        button="Verify email",
        url=url,
        footer="If you did not sign up, you can ignore this email.",
    )
    send_email(
        to_email=email,
        subject="Verify your email address",
        text_body=text,
        html_body=html,
    )


def send_password_reset_email(email: str, url: str) -> None:
    """
    Send the password reset link.
    """
    text, html = _render(
        heading="Reset your password",
        intro="We received a request to reset your password. The link expires soon.",
        button="Reset password",
        url=url,
        footer="If you did not request a reset, you can ignore this email.",
    )
    send_email(
        to_email=email,
        subject="Reset your password",
        text_body=text,
        html_body=html,
    )


# email_action_type -> (sender, frontend path)
_HOOK_ACTIONS = {
    "signup": (send_verification_email, "/verify-email"),
    "email": (send_verification_email, "/verify-email"),
    "recovery": (send_password_reset_email, "/reset-password"),
}


def build_action_url(payload: SendEmailHookPayload, path: str) -> str:
    """
    Link the customer clicks: the storefront page for this action with the
    Supabase token hash and type as query parameters.
    """
    settings = get_settings()
    data = payload.email_data
    query = {
        "token_hash": data.token_hash or "",
        "type": data.email_action_type,
    }
    if data.redirect_to:
        query["next"] = data.redirect_to
    return f"{settings.APP_URL.rstrip('/')}{path}?{urlencode(query)}"


def handle_send_email_hook(payload: SendEmailHookPayload) -> None:
    """
    Dispatch a Supabase "send email" hook call to the matching template.

    Raises:
        HTTPException(400): for an action type we do not send mail for.
    """
    action = payload.email_data.email_action_type
    entry = _HOOK_ACTIONS.get(action)
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported email action: {action}",
        )

    sender, path = entry
    sender(email=payload.user.email, url=build_action_url(payload, path))
    logger.info("Sent %s email via auth hook", action)
