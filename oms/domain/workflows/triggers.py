"""
Workflow step triggers
Side effects fired when a workflow step is completed. Every helper here is
best-effort: failures are logged and never propagate to the job write.
"""

import logging
import re
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ... import email_service
from ...models import USER_ROLES, Client, Notification, Technician, User
from ...shared.relations import normalize_relation_id
from .context import JobChangeContext, JobDraft

logger = logging.getLogger(__name__)

ROLE_ALIASES = {
    "post-production": "post-producer",
    "post producer": "post-producer",
    "postproducer": "post-producer",
}

ROLE_QUERY_LIMIT = 100

PLACEHOLDER_PATTERN = re.compile(r"\{\{(jobId|modelName|clientName|targetDate)\}\}")


def normalize_recipient_role(raw_role) -> Optional[str]:
    if not isinstance(raw_role, str):
        return None
    role = raw_role.strip().lower()
    return ROLE_ALIASES.get(role, role)


def get_job_client(db: Session, draft: JobDraft) -> Optional[Client]:
    client_id = normalize_relation_id(draft.get("client"))
    if client_id is None:
        return None
    try:
        return db.query(Client).filter(Client.id == int(client_id)).first()
    except (TypeError, ValueError):
        return None


def format_date_value(value) -> str:
    if not value:
        return ""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    return value.strftime("%m/%d/%Y")


def format_message(message: str, draft: JobDraft, client_name: str = "") -> str:
    """Substitute {{jobId}}, {{modelName}}, {{clientName}} and {{targetDate}}"""
    values = {
        "jobId": draft.get("jobId") or "",
        "modelName": draft.get("modelName") or "",
        "clientName": client_name or "",
        "targetDate": format_date_value(draft.get("targetDate")),
    }
    return PLACEHOLDER_PATTERN.sub(lambda m: str(values[m.group(1)]), message)


def resolve_recipients(db: Session, roles: list, draft: JobDraft) -> list[User]:
    """
    Users to notify for a list of recipient roles.

    "tech" means the technician assigned to this job (through their linked
    user account); any other role means every user holding that role.
    Unknown roles are ignored and users are de-duplicated by id.
    """
    users_by_id: dict[int, User] = {}

    for raw_role in roles or []:
        role = normalize_recipient_role(raw_role)
        if not role:
            continue

        if role == "tech":
            tech_id = normalize_relation_id(draft.get("tech"))
            if tech_id is None:
                continue
            tech = db.query(Technician).filter(Technician.id == int(tech_id)).first()
            if tech and tech.user:
                users_by_id[tech.user.id] = tech.user
            continue

        if role not in USER_ROLES:
            continue

        role_users = db.query(User).filter(User.role == role).limit(ROLE_QUERY_LIMIT).all()
        for user in role_users:
            users_by_id[user.id] = user

    return list(users_by_id.values())


async def create_notifications(
    ctx: JobChangeContext, draft: JobDraft, recipients: list, message: str
) -> int:
    try:
        client = get_job_client(ctx.db, draft)
        formatted_message = format_message(message, draft, client.name if client else "")

        users = resolve_recipients(ctx.db, recipients, draft)
        job_pk = draft.get("id")

        for user in users:
            ctx.db.add(
                Notification(
                    user_id=user.id,
                    type="info",
                    title=f"Job Update: {draft.get('jobId')}",
                    message=formatted_message,
                    related_job_id=job_pk,
                    action_url=f"/oms/jobs/{job_pk}",
                    read=False,
                )
            )

        logger.info(f"[Workflow] Created {len(users)} notification(s)")
        return len(users)
    except Exception as e:
        logger.error(f"[Workflow] Error creating notifications: {e}")
        return 0


async def send_client_email(ctx: JobChangeContext, draft: JobDraft, template: str) -> bool:
    try:
        client = get_job_client(ctx.db, draft)
        if not client:
            logger.info("[Workflow] No client assigned to job, skipping email")
            return False
        if not client.email:
            logger.info("[Workflow] Client has no email address, skipping email")
            return False

        job_id = draft.get("jobId") or ""
        model_name = draft.get("modelName") or ""

        if template == "job-complete":
            location = ", ".join(
                part
                for part in (
                    draft.get("captureAddress") or "N/A",
                    " ".join(p for p in (draft.get("city"), draft.get("state")) if p),
                )
                if part
            )
            await email_service.send_job_complete_email(
                to=client.email,
                client_name=client.name,
                job_id=job_id,
                model_name=model_name,
                location=location,
                target_date=draft.get("targetDate"),
            )
        else:
            await email_service.send_job_update_email(
                to=client.email,
                client_name=client.name,
                job_id=job_id,
                model_name=model_name,
            )

        logger.info(f"[Workflow] Email sent to {client.email} for job {job_id}")
        return True
    except Exception as e:
        logger.error(f"[Workflow] Error sending client email: {e}")
        return False


async def mark_invoice_ready(ctx: JobChangeContext, draft: JobDraft) -> None:
    """
    createInvoice trigger. Only flags the job as ready for invoicing; the
    invoice itself is generated later from the invoicing screen.
    """
    ctx.flags["invoice_ready"] = True
    logger.info(f"[Workflow] Job {draft.get('jobId')} marked as ready for invoicing")


async def schedule_recurring_invoice(draft: JobDraft, delay_days, amount) -> None:
    """createRecurringInvoice trigger. There is no scheduler behind this yet; it records intent only."""
    logger.info(
        f"[Workflow] Would schedule recurring invoice for job {draft.get('jobId')} "
        f"in {delay_days} days for ${amount}"
    )
