"""
Email Service using Resend
Compiles MJML templates to HTML and sends client-facing emails
"""

import logging
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import EMAIL_FROM_ADDRESS, RESEND_API_KEY
from .email_templates import (
    client_notification_template,
    format_date,
    job_complete_template,
    job_update_template,
)

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        # mjml_to_html returns a mapping with 'html' and 'errors' keys
        if isinstance(result, dict):
            if result.get("errors"):
                logger.warning(f"MJML compilation warnings: {result['errors']}")
            return result.get("html", "")
        return str(result)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise Exception(f"Failed to compile MJML template: {str(e)}") from e


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address

    Returns:
        Send response dict
    """
    html_content = compile_mjml_to_html(mjml_content)

    recipients = [to] if isinstance(to, str) else to
    sender = from_address or EMAIL_FROM_ADDRESS

    if not RESEND_API_KEY:
        logger.error("No email service configured - RESEND_API_KEY missing")
        raise Exception("Email service not configured")

    try:
        logger.info(f"Sending email via Resend to: {recipients}")
        response = resend.Emails.send(
            {
                "from": sender,
                "to": recipients,
                "subject": subject,
                "html": html_content,
            }
        )
        logger.info(f"Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"Email send error to {recipients}: {e}")
        raise Exception(f"Failed to send email: {str(e)}") from e


# ============================================
# Job emails
# ============================================


async def send_job_complete_email(
    to: str,
    client_name: str,
    job_id: str,
    model_name: str,
    location: str,
    target_date=None,
) -> dict:
    """Tell the client their project is complete and deliverables are ready"""
    mjml_content = job_complete_template(
        client_name=client_name,
        job_id=job_id,
        model_name=model_name,
        location=location,
        capture_date=format_date(target_date) or None,
    )
    return await send_email(
        to=to,
        subject=f"Your Project {job_id} is Complete - {model_name}",
        mjml_content=mjml_content,
    )


async def send_job_update_email(to: str, client_name: str, job_id: str, model_name: str) -> dict:
    """Generic project update"""
    return await send_email(
        to=to,
        subject=f"Update on Your Project {job_id}",
        mjml_content=job_update_template(client_name, job_id, model_name),
    )


async def send_client_notification_email(to: str, subject: str, body: str) -> dict:
    """Send a rendered NotificationTemplate to the client"""
    return await send_email(
        to=to,
        subject=subject,
        mjml_content=client_notification_template(subject, body),
    )
