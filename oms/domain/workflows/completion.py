"""React to newly completed workflow steps: status mapping and step triggers"""

import logging

from ...shared.relations import normalize_relation_id
from . import triggers
from .context import JobChangeContext, JobDraft
from .events import detect_completed_steps
from .repository import WorkflowTemplateRepository, find_template_step

logger = logging.getLogger(__name__)


async def workflow_step_completion(draft: JobDraft, ctx: JobChangeContext) -> JobDraft:
    if not ctx.is_update:
        return draft

    events = detect_completed_steps(
        (ctx.original or {}).get("workflowSteps"), draft.get("workflowSteps")
    )
    if not events:
        return draft

    template_id = normalize_relation_id(draft.get("workflowTemplate")) or normalize_relation_id(
        (ctx.original or {}).get("workflowTemplate")
    )
    if template_id is None:
        logger.info("[Workflow] No workflow template assigned to job")
        return draft

    template = WorkflowTemplateRepository.get_template_by_id(ctx.db, template_id)
    if not template or not template.steps:
        logger.info("[Workflow] Template not found or has no steps")
        return draft

    for event in events:
        template_step = find_template_step(template, event.step_name)
        if not template_step:
            logger.info(f"[Workflow] Template step not found for: {event.step_name}")
            continue

        logger.info(f"[Workflow] Processing completed step: {event.step_name}")

        # Several steps completed in one write: the later step's mapping wins
        if template_step.get("statusMapping"):
            draft["status"] = template_step["statusMapping"]
            logger.info(f"[Workflow] Updated status to: {template_step['statusMapping']}")

        await run_step_triggers(draft, ctx, event.step_name, template_step.get("triggers") or {})

    return draft


async def run_step_triggers(
    draft: JobDraft, ctx: JobChangeContext, step_name: str, step_triggers: dict
) -> None:
    if step_triggers.get("sendNotification") and step_triggers.get("notificationRecipients"):
        message = step_triggers.get("notificationMessage") or (
            f'Step "{step_name}" completed for job {draft.get("jobId")}'
        )
        await triggers.create_notifications(
            ctx, draft, step_triggers["notificationRecipients"], message
        )

    if step_triggers.get("sendClientEmail") and step_triggers.get("emailTemplate"):
        await triggers.send_client_email(ctx, draft, step_triggers["emailTemplate"])

    if step_triggers.get("createInvoice"):
        await triggers.mark_invoice_ready(ctx, draft)

    if step_triggers.get("createRecurringInvoice") and step_triggers.get("recurringInvoiceDelay"):
        await triggers.schedule_recurring_invoice(
            draft,
            step_triggers["recurringInvoiceDelay"],
            step_triggers.get("recurringInvoiceAmount") or 0,
        )


async def update_invoice_status(draft: JobDraft, ctx: JobChangeContext) -> JobDraft:
    """Apply the createInvoice flag without moving invoiced/paid jobs backwards"""
    if not ctx.flags.get("invoice_ready"):
        return draft
    if draft.get("invoiceStatus") in (None, "", "not-invoiced"):
        draft["invoiceStatus"] = "ready"
    else:
        logger.info(
            f"[Workflow] Job {draft.get('jobId')} already {draft.get('invoiceStatus')}, "
            "leaving invoice status alone"
        )
    return draft
