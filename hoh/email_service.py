"""
Unified Email Service using custom SMTP, Resend, or console logging
Provides email functionality using MJML templates for responsive design
"""

import logging
import smtplib
import ssl
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Union

import resend
from mjml import mjml_to_html

from .config import (
    EMAIL_FROM_ADDRESS,
    EMAIL_SERVICE,
    RESEND_API_KEY,
    SMTP_HOST,
    SMTP_PASSWORD,
    SMTP_PORT,
    SMTP_USE_TLS,
    SMTP_USERNAME,
)
from .email_templates import (
    booking_completed_template,
    booking_confirmation_template,
    completion_otp_template,
    provider_assigned_template,
    status_update_template,
)

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


class EmailDeliveryError(Exception):
    """Raised when every configured delivery channel failed"""


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        # Current releases return an object with .html and .errors
        errors = getattr(result, "errors", None)
        if errors:
            logger.warning(f"MJML compilation warnings: {errors}")
        if hasattr(result, "html"):
            return result.html
        if isinstance(result, dict):
            return result.get("html", "")
        return str(result)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise EmailDeliveryError(f"Failed to compile MJML template: {str(e)}") from e


def send_via_smtp(recipients: list[str], subject: str, html_content: str, from_address: str) -> dict:
    """Send email via the configured SMTP server"""
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = from_address
    msg["To"] = ", ".join(recipients)
    msg.attach(MIMEText(html_content, "html"))

    if SMTP_PORT == 465:
        context = ssl.create_default_context()
        server = smtplib.SMTP_SSL(SMTP_HOST, SMTP_PORT, context=context, timeout=30)
    else:
        server = smtplib.SMTP(SMTP_HOST, SMTP_PORT, timeout=30)
        if SMTP_USE_TLS:
            server.starttls(context=ssl.create_default_context())

    try:
        if SMTP_USERNAME:
            server.login(SMTP_USERNAME, SMTP_PASSWORD or "")
        server.sendmail(from_address.split("<")[-1].rstrip(">"), recipients, msg.as_string())
    finally:
        server.quit()

    logger.info(f"✅ SMTP email sent successfully via {SMTP_HOST}")
    return {"id": f"smtp-{datetime.utcnow().timestamp()}", "success": True}


def send_email(to: Union[str, list[str]], subject: str, mjml_content: str) -> dict:
    """
    Send an email through the channel selected by EMAIL_SERVICE

    "console" only logs the message, like a development mail catcher.
    "smtp" falls back to Resend when an API key is configured.

    Raises:
        EmailDeliveryError: the message could not be delivered
    """
    recipients = [to] if isinstance(to, str) else to

    if EMAIL_SERVICE == "console":
        logger.info(f"📧 [console] To: {', '.join(recipients)} | Subject: {subject}")
        return {"id": "console", "success": True}

    html_content = compile_mjml_to_html(mjml_content)

    if EMAIL_SERVICE == "smtp" and SMTP_HOST:
        try:
            logger.info(f"📧 Sending email via SMTP: {SMTP_HOST}")
            return send_via_smtp(recipients, subject, html_content, EMAIL_FROM_ADDRESS)
        except (smtplib.SMTPException, OSError) as e:
            logger.warning(f"⚠️ SMTP failed, falling back to Resend: {e}")

    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing and SMTP unavailable")
        raise EmailDeliveryError("Email service not configured")

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        response = resend.Emails.send(
            {
                "from": EMAIL_FROM_ADDRESS,
                "to": recipients,
                "subject": subject,
                "html": html_content,
            }
        )
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise EmailDeliveryError(f"Failed to send email: {str(e)}") from e


# ============================================
# Booking notification emails
# ============================================

# kind -> (subject builder, template)
BOOKING_EMAILS = {
    "booking_created": (
        lambda ctx: f"Booking Confirmed - {ctx['booking_code']}",
        booking_confirmation_template,
    ),
    "provider_assigned": (
        lambda ctx: f"Service Provider Assigned - {ctx['booking_code']}",
        provider_assigned_template,
    ),
    "status_updated": (
        lambda ctx: f"Booking Status Update - {ctx['booking_code']}",
        status_update_template,
    ),
    "completion_otp": (
        lambda _ctx: "Service Completion OTP - HOH108",
        completion_otp_template,
    ),
    "booking_completed": (
        lambda ctx: f"Service Completed - {ctx['booking_code']}",
        booking_completed_template,
    ),
}


def send_booking_email(kind: str, recipient: str, context: dict) -> dict:
    """Render and send one booking notification email"""
    if kind not in BOOKING_EMAILS:
        raise ValueError(f"Unknown notification kind: {kind}")

    subject_builder, template = BOOKING_EMAILS[kind]
    return send_email(to=recipient, subject=subject_builder(context), mjml_content=template(context))
