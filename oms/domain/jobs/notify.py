"""
Client notification delivery for a single job

Backs POST /jobs/{id}/notify, which both staff and the outbox worker call.
Picks the client's notification template for the type, fills in the job
variables and sends it through email_service.
"""

import logging
import re
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ... import email_service
from ...models import Client, Job, NotificationTemplate
from ..workflows.client_notifier import NOTIFICATION_PREFERENCE_FLAGS
from ..workflows.triggers import format_date_value

logger = logging.getLogger(__name__)

VARIABLE_PATTERN = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def job_location(job: Job) -> str:
    city_state = ", ".join(part for part in (job.city, job.state) if part)
    return ", ".join(part for part in (job.capture_address, city_state) if part)


def template_variables(job: Job, client: Client, custom_message: Optional[str]) -> dict[str, str]:
    preferences = client.notification_preferences or {}
    return {
        "jobNumber": job.job_id or "",
        "clientName": client.name or "",
        "location": job_location(job),
        "targetDate": format_date_value(job.target_date),
        "scannedDate": format_date_value(job.scanned_date),
        "uploadLink": job.upload_link or "",
        "customMessage": custom_message or "",
        "clientCustomMessage": preferences.get("customMessage") or "",
    }


def render_template(text: str, variables: dict[str, str]) -> str:
    """Replace {{name}} placeholders; unknown placeholders are left as-is"""
    return VARIABLE_PATTERN.sub(lambda m: variables.get(m.group(1), m.group(0)), text or "")


def find_notification_template(db: Session, notification_type: str) -> Optional[NotificationTemplate]:
    return (
        db.query(NotificationTemplate)
        .filter(
            NotificationTemplate.type == notification_type,
            NotificationTemplate.active.is_(True),
        )
        .order_by(NotificationTemplate.default_template.desc(), NotificationTemplate.id.asc())
        .first()
    )


async def send_job_notification(
    db: Session,
    job_pk: int,
    notification_type: str,
    custom_message: Optional[str] = None,
    custom_subject: Optional[str] = None,
    custom_body: Optional[str] = None,
) -> dict:
    """
    Email the job's client a notification of the given type.

    Raises:
        HTTPException: 404 for a missing job or client, 400 when the client
            opted out, has no address, or no template exists; 502 when the
            email provider fails
    """
    job = db.query(Job).filter(Job.id == job_pk).first()
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")

    client = db.query(Client).filter(Client.id == job.client_id).first() if job.client_id else None
    if not client:
        raise HTTPException(status_code=404, detail="Client not found for job")

    preferences = client.notification_preferences or {}
    if not preferences.get("enableNotifications"):
        raise HTTPException(status_code=400, detail="Notifications are disabled for this client")

    flag = NOTIFICATION_PREFERENCE_FLAGS.get(notification_type)
    if flag and preferences.get(flag) is False:
        raise HTTPException(
            status_code=400, detail=f"Client has opted out of {notification_type} notifications"
        )

    recipient = preferences.get("notificationEmail") or client.email
    if not recipient:
        raise HTTPException(status_code=400, detail="Client has no notification email address")

    if custom_subject and custom_body:
        subject, body = custom_subject, custom_body
    else:
        template = find_notification_template(db, notification_type)
        if not template:
            raise HTTPException(
                status_code=400, detail=f"No active notification template for {notification_type}"
            )
        variables = template_variables(job, client, custom_message)
        subject = render_template(template.subject, variables)
        body = render_template(template.body, variables)

    try:
        await email_service.send_client_notification_email(to=recipient, subject=subject, body=body)
    except Exception as e:
        logger.error(f"❌ Failed to send {notification_type} notification for job {job.job_id}: {e}")
        raise HTTPException(status_code=502, detail="Failed to send notification email") from e

    logger.info(f"📧 Sent {notification_type} notification for job {job.job_id} to {recipient}")
    return {
        "message": "Notification sent",
        "jobId": job.id,
        "notificationType": notification_type,
        "recipient": recipient,
    }
