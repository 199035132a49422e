"""Email utility — sends transactional emails via SMTP (TLS)."""
from __future__ import annotations

import logging
import smtplib
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from matrimony.core.config import settings
from matrimony.models.otp import FlowKind

logger = logging.getLogger(__name__)


def _build_smtp_connection() -> smtplib.SMTP:
    """Open an authenticated SMTP TLS connection."""
    conn = smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=15)
    conn.ehlo()
    conn.starttls()
    conn.ehlo()
    conn.login(settings.SMTP_USER, settings.SMTP_PASS)
    return conn


def send_email(to: str, subject: str, html_body: str, plain_body: str = "") -> bool:
    """Send a transactional email. Returns True on success, False on failure."""
    try:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{settings.EMAIL_FROM_NAME} <{settings.EMAIL_FROM}>"
        msg["To"] = to

        if plain_body:
            msg.attach(MIMEText(plain_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))

        with _build_smtp_connection() as conn:
            conn.sendmail(settings.EMAIL_FROM, [to], msg.as_string())

        logger.info(f"[Email] Sent '{subject}' → {to}")
        return True

    except Exception as exc:
        logger.error(f"[Email] Failed to send '{subject}' to {to}: {exc}")
        return False


# ── OTP emails ────────────────────────────────────────────────────────────────

_OTP_COPY = {
    FlowKind.LOGIN: (
        "Your Login Verification Code",
        "Use the verification code below to finish signing in.",
    ),
    FlowKind.PASSWORD_RESET: (
        "Your Password Reset Code",
        "Use the code below to reset your password.",
    ),
}


def send_otp_email(to: str, otp: str, flow_kind: FlowKind, expire_minutes: int) -> bool:
    """Send a one-time code for *flow_kind*."""
    subject, intro = _OTP_COPY[flow_kind]
    brand = settings.EMAIL_FROM_NAME
    html_body = f"""
<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <style>
    body {{ font-family: Arial, sans-serif; background: #f4f4f4; margin: 0; padding: 0; }}
    .container {{ max-width: 500px; margin: 40px auto; background: #fff;
                  border-radius: 8px; padding: 32px; box-shadow: 0 2px 8px rgba(0,0,0,.1); }}
    .logo {{ font-size: 26px; font-weight: 700; color: #be185d; margin-bottom: 24px; }}
    .otp {{ font-size: 40px; font-weight: 800; letter-spacing: 10px; color: #be185d;
            background: #fdf2f8; padding: 16px 24px; border-radius: 8px;
            display: inline-block; margin: 16px 0; }}
    .footer {{ margin-top: 24px; font-size: 12px; color: #9ca3af; }}
  </style>
</head>
<body>
  <div class="container">
    <div class="logo">{brand}</div>
    <p>Hello,</p>
    <p>{intro}
       The code expires in <strong>{expire_minutes} minutes</strong>.</p>
    <div class="otp">{otp}</div>
    <p>If you did not request this code, please ignore this email.</p>
    <div class="footer">
      &copy; {brand} &nbsp;|&nbsp; {settings.EMAIL_FROM}
    </div>
  </div>
</body>
</html>
"""
    plain_body = f"Hello,\n\n{intro}\n\nYour code is: {otp}\n\nExpires in {expire_minutes} minutes."
    return send_email(to, f"{brand} - {subject}", html_body, plain_body)


class Notifier(ABC):
    """Delivers OTP codes. ``send`` reports success instead of raising."""

    @abstractmethod
    def send(self, email: str, code: str, flow_kind: FlowKind, expire_minutes: int) -> bool:
        ...


class SmtpNotifier(Notifier):
    def send(self, email: str, code: str, flow_kind: FlowKind, expire_minutes: int) -> bool:
        return send_otp_email(email, code, flow_kind, expire_minutes)
