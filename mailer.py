import logging
import smtplib
from email.message import EmailMessage

import config

logger = logging.getLogger(__name__)

OTP_TEMPLATE = """
<div style="max-width: 480px; margin: 0 auto; font-family: Arial, Helvetica, sans-serif;">
  <h2>Password Reset Request</h2>
  <p>Use the OTP below to reset your password. It is valid for <strong>{minutes} minutes</strong>.</p>
  <div style="font-size: 28px; letter-spacing: 6px; font-weight: bold;">{otp}</div>
  <p style="font-size: 12px;">If you did not request a password reset, please ignore this email.</p>
</div>
"""


def send_email(to: str, subject: str, html: str) -> None:
    if not config.SMTP_HOST:
        logger.info(f"SMTP not configured; skipping email '{subject}' to {to}")
        return
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = config.MAIL_FROM
    msg["To"] = to
    msg.set_content("Please view this message in an HTML capable mail client.")
    msg.add_alternative(html, subtype="html")
    with smtplib.SMTP(config.SMTP_HOST, config.SMTP_PORT) as smtp:
        smtp.starttls()
        if config.SMTP_USER:
            smtp.login(config.SMTP_USER, config.SMTP_PASSWORD or "")
        smtp.send_message(msg)
    logger.info(f"Sent email '{subject}' to {to}")


def send_reset_otp(to: str, otp: str) -> None:
    send_email(to, "Password Reset OTP", OTP_TEMPLATE.format(otp=otp, minutes=config.OTP_TTL_MINUTES))
