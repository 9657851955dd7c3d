import logging
import smtplib
from datetime import datetime, timezone
from email.message import EmailMessage
from html import escape

from app.core.config import get_settings

logger = logging.getLogger(__name__)

_LAYOUT = """<!DOCTYPE html>
<html>
<head>
  <style>
    .container {{ max-width: 600px; margin: 0 auto; padding: 20px; font-family: Arial, sans-serif; }}
    .header {{ background: {accent}; color: white; padding: 20px; text-align: center; }}
    .content {{ padding: 30px; background: #f9f9f9; }}
    .otp-box {{ background: #fff; border: 2px dashed {accent}; padding: 20px; text-align: center;
               font-size: 32px; font-weight: bold; letter-spacing: 10px; margin: 20px 0; }}
    .button {{ background: {accent}; color: white; padding: 12px 24px; text-decoration: none;
              border-radius: 5px; display: inline-block; }}
    .footer {{ text-align: center; padding: 20px; color: #666; font-size: 12px; }}
  </style>
</head>
<body>
  <div class="container">
    <div class="header"><h1>{title}</h1></div>
    <div class="content">{body}</div>
    <div class="footer"><p>&copy; {year} {brand}. All rights reserved.</p></div>
  </div>
</body>
</html>
"""


def _render(title: str, body: str, accent: str) -> str:
    settings = get_settings()
    return _LAYOUT.format(
        title=title,
        body=body,
        accent=accent,
        year=datetime.now(timezone.utc).year,
        brand=escape(settings.from_name),
    )


def render_verification_email(name: str, otp: str) -> tuple[str, str]:
    settings = get_settings()
    brand = escape(settings.from_name)
    body = (
        f"<p>Hello {escape(name)},</p>"
        f"<p>Thank you for registering with {brand}! Use the OTP below to verify your email address:</p>"
        f'<div class="otp-box">{escape(otp)}</div>'
        f"<p><strong>Note:</strong> This OTP is valid for {settings.otp_ttl_minutes} minutes only.</p>"
        "<p>If you didn't request this, please ignore this email.</p>"
        f"<p>Best regards,<br>The {brand} Team</p>"
    )
    return f"Your {settings.from_name} Verification OTP", _render("Email Verification", body, "#4F46E5")


def render_password_reset_email(name: str, reset_url: str) -> tuple[str, str]:
    settings = get_settings()
    brand = escape(settings.from_name)
    url = escape(reset_url, quote=True)
    body = (
        f"<p>Hello {escape(name)},</p>"
        f"<p>You requested a password reset for your {brand} account. Click the button below to reset your password:</p>"
        f'<p style="text-align: center; margin: 30px 0;"><a href="{url}" class="button">Reset Password</a></p>'
        f"<p>If the button doesn't work, copy and paste this link into your browser:</p><p>{url}</p>"
        f"<p>This link will expire in {settings.reset_token_ttl_minutes} minutes.</p>"
        "<p>If you didn't request this password reset, please ignore this email.</p>"
        f"<p>Best regards,<br>The {brand} Team</p>"
    )
    return f"Password Reset Request - {settings.from_name}", _render("Password Reset", body, "#DC2626")


def send_email(to: str, subject: str, html: str) -> bool:
    settings = get_settings()
    if not settings.smtp_host:
        logger.info("email_transport_not_configured", extra={"to": to, "subject": subject})
        return False

    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = f'"{settings.from_name}" <{settings.from_email}>'
    message["To"] = to
    message.set_content("This message requires an HTML capable email client.")
    message.add_alternative(html, subtype="html")

    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as server:
            if settings.smtp_use_tls:
                server.starttls()
            if settings.smtp_username:
                server.login(settings.smtp_username, settings.smtp_password)
            server.send_message(message)
    except (smtplib.SMTPException, OSError) as exc:
        logger.error("email_send_failed", extra={"to": to, "subject": subject, "error": str(exc)})
        return False
    logger.info("email_sent", extra={"to": to, "subject": subject})
    return True
