"""
MJML Email Templates
Client-facing emails sent by workflow triggers and job notifications
"""

import html
from typing import Optional

from .config import COMPANY_NAME

THEME = {
    "primary": "#2563eb",
    "background": "#f8fafc",
    "card_bg": "#f3f4f6",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#6b7280",
    "border": "#e2e8f0",
}


def get_base_template(title: str, preview_text: str, content_sections: str) -> str:
    """Base MJML template wrapper for all emails"""
    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}" width="600px">
        <mj-section background-color="#ffffff" padding="32px 40px">
          <mj-column>
            <mj-text font-size="22px" font-weight="600" color="{THEME['primary']}" padding="0 0 16px 0">
              {title}
            </mj-text>
            {content_sections}
          </mj-column>
        </mj-section>
        <mj-section padding="24px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="{THEME['text_muted']}" padding="0">
              Best regards,<br />The {COMPANY_NAME} Team
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def format_date(value) -> str:
    if not value:
        return ""
    if hasattr(value, "strftime"):
        return value.strftime("%m/%d/%Y")
    return str(value)


def job_complete_template(
    client_name: str,
    job_id: str,
    model_name: str,
    location: str,
    capture_date: Optional[str] = None,
) -> str:
    """Project complete / deliverables ready email"""
    capture_line = (
        f"<li><strong>Capture Date:</strong> {html.escape(capture_date)}</li>" if capture_date else ""
    )
    content = f"""
    <mj-text>Hi {html.escape(client_name or '')},</mj-text>
    <mj-text>
      Great news! Your project <strong>{html.escape(job_id)}</strong> for
      <strong>{html.escape(model_name or '')}</strong> has been completed and is ready for delivery.
    </mj-text>
    <mj-text background-color="{THEME['card_bg']}" padding="20px">
      <h3 style="margin-top: 0;">Project Details:</h3>
      <ul style="list-style: none; padding: 0;">
        <li><strong>Job ID:</strong> {html.escape(job_id)}</li>
        <li><strong>Property:</strong> {html.escape(model_name or '')}</li>
        <li><strong>Location:</strong> {html.escape(location or 'N/A')}</li>
        {capture_line}
      </ul>
    </mj-text>
    <mj-text>
      Your deliverables are now available. Our team will be in touch shortly with download links and next steps.
    </mj-text>
    <mj-text>If you have any questions or need any revisions, please don't hesitate to reach out.</mj-text>
    <mj-text>Thank you for choosing {COMPANY_NAME}!</mj-text>
    """
    return get_base_template(
        title="Your Project is Complete!",
        preview_text=f"Project {job_id} is complete",
        content_sections=content,
    )


def job_update_template(client_name: str, job_id: str, model_name: str) -> str:
    """Generic project update email"""
    content = f"""
    <mj-text>Hi {html.escape(client_name or '')},</mj-text>
    <mj-text>
      This is an update regarding your project <strong>{html.escape(job_id)}</strong> for
      <strong>{html.escape(model_name or '')}</strong>.
    </mj-text>
    <mj-text>If you have any questions, please contact us.</mj-text>
    <mj-text>Thank you!</mj-text>
    """
    return get_base_template(
        title="Project Update",
        preview_text=f"Update on project {job_id}",
        content_sections=content,
    )


def client_notification_template(subject: str, body: str) -> str:
    """Wrap a plain-text notification body rendered from a NotificationTemplate"""
    paragraphs = "\n".join(
        f"<mj-text>{html.escape(line)}</mj-text>" for line in body.split("\n\n") if line.strip()
    )
    return get_base_template(title=html.escape(subject), preview_text=html.escape(subject), content_sections=paragraphs)
