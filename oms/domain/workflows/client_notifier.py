"""
Client-facing notifications for completed workflow steps

Runs after the job write is committed. Step names are classified by
substring into a notification type; the client's notification preferences
decide whether anything is sent. Delivery goes through the outbox, so the
job update never waits on it.
"""

import logging
from typing import Optional

from ...services import outbox
from .context import JobChangeContext, JobDraft
from .events import detect_completed_steps
from .triggers import get_job_client

logger = logging.getLogger(__name__)

# First matching rule wins; order matters ("post" before "photo", "scan" before the rest)
STEP_NOTIFICATION_RULES = (
    (("scan",), "scan-completed", "notifyOnScanCompleted"),
    (("upload",), "upload-completed", "notifyOnUploadCompleted"),
    (("qc", "post"), "qc-completed", "notifyOnQcCompleted"),
    (("transfer",), "transfer-completed", "notifyOnTransferCompleted"),
    (("floor plan",), "floorplan-completed", "notifyOnFloorplanCompleted"),
    (("photo",), "photos-completed", "notifyOnPhotosCompleted"),
    (("as-built",), "asbuilts-completed", "notifyOnAsbuiltsCompleted"),
)

# Notification type -> client preference flag, including types only sent manually
NOTIFICATION_PREFERENCE_FLAGS = {
    "scheduled": "notifyOnScheduled",
    "completed": "notifyOnCompleted",
    "delivered": "notifyOnDelivered",
    **{notification_type: flag for _, notification_type, flag in STEP_NOTIFICATION_RULES},
}


def classify_step(step_name: str) -> Optional[tuple[str, str]]:
    """(notification type, preference flag) for a step name, or None"""
    name = (step_name or "").lower()
    for needles, notification_type, flag in STEP_NOTIFICATION_RULES:
        if any(needle in name for needle in needles):
            return notification_type, flag
    return None


async def notify_client_of_completed_steps(doc: JobDraft, ctx: JobChangeContext) -> JobDraft:
    if not ctx.is_update:
        return doc

    events = detect_completed_steps(
        (ctx.original or {}).get("workflowSteps"), doc.get("workflowSteps")
    )
    if not events:
        return doc

    client = get_job_client(ctx.db, doc)
    preferences = (client.notification_preferences if client else None) or {}
    if not preferences.get("enableNotifications"):
        return doc

    queued = 0
    for event in events:
        classified = classify_step(event.step_name)
        if not classified:
            continue
        notification_type, flag = classified
        if preferences.get(flag) is not True:
            continue

        outbox.enqueue(
            ctx.db,
            outbox.CLIENT_NOTIFICATION,
            {
                "jobId": doc.get("id"),
                "notificationType": notification_type,
                "customMessage": f'Workflow step "{event.step_name}" has been completed.',
            },
        )
        queued += 1

    if queued:
        ctx.db.commit()
        logger.info(f"[Workflow] Queued {queued} client notification(s) for job {doc.get('jobId')}")

    return doc
