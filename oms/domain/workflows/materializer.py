"""Populate a job's workflowSteps from its workflow template"""

import logging

from ...shared.relations import normalize_relation_id, same_relation
from .context import JobChangeContext, JobDraft
from .repository import WorkflowTemplateRepository, sorted_steps

logger = logging.getLogger(__name__)


def fresh_workflow_steps(template) -> list[dict]:
    return [
        {
            "stepName": step.get("name"),
            "completed": False,
            "completedAt": None,
            "completedBy": None,
            "notes": "",
        }
        for step in sorted_steps(template)
    ]


async def populate_workflow_steps(draft: JobDraft, ctx: JobChangeContext) -> JobDraft:
    """
    Materialize template steps when the template was just assigned or changed.

    This overwrites workflowSteps wholesale: completion state and notes on the
    previous steps are discarded, never merged.
    """
    template_id = normalize_relation_id(draft.get("workflowTemplate"))
    original_template_id = normalize_relation_id((ctx.original or {}).get("workflowTemplate"))

    if template_id is None or same_relation(template_id, original_template_id):
        return draft

    logger.info("[Workflow] Template assigned/changed, populating steps...")

    template = WorkflowTemplateRepository.get_template_by_id(ctx.db, template_id)
    if not template or not template.steps:
        logger.info(f"[Workflow] Template {template_id} not found or has no steps")
        return draft

    draft["workflowSteps"] = fresh_workflow_steps(template)

    logger.info(
        f'[Workflow] Populated {len(draft["workflowSteps"])} steps from template "{template.name}"'
    )
    return draft
