"""
Job change pipeline

Every job create/update goes through BEFORE_CHANGE (ordered, each stage may
rewrite the draft) before it is persisted, and through AFTER_CHANGE once the
write is committed. The order below is the contract; add new stages here
rather than calling them from the service.
"""

import copy
import logging
from collections.abc import Awaitable, Callable, Sequence

from ..jobs.financials import recalculate_financials
from .client_notifier import notify_client_of_completed_steps
from .completion import update_invoice_status, workflow_step_completion
from .context import JobChangeContext, JobDraft
from .defaults import apply_client_default_workflow
from .materializer import populate_workflow_steps

logger = logging.getLogger(__name__)

Stage = Callable[[JobDraft, JobChangeContext], Awaitable[JobDraft]]

BEFORE_CHANGE: tuple[Stage, ...] = (
    apply_client_default_workflow,
    populate_workflow_steps,
    recalculate_financials,
    workflow_step_completion,
    update_invoice_status,
)

AFTER_CHANGE: tuple[Stage, ...] = (notify_client_of_completed_steps,)


async def run_stages(stages: Sequence[Stage], draft: JobDraft, ctx: JobChangeContext) -> JobDraft:
    """
    Run stages in order. A stage works on its own copy of the draft; if it
    raises, the error is logged and the draft from before that stage is kept.
    """
    for stage in stages:
        try:
            result = await stage(copy.deepcopy(draft), ctx)
        except Exception as e:
            logger.error(
                f"[Workflow] Stage {stage.__name__} failed for job {draft.get('jobId')}: {e}",
                exc_info=True,
            )
            continue
        if result is not None:
            draft = result
    return draft


async def run_before_change(draft: JobDraft, ctx: JobChangeContext) -> JobDraft:
    return await run_stages(BEFORE_CHANGE, draft, ctx)


async def run_after_change(saved: JobDraft, ctx: JobChangeContext) -> JobDraft:
    return await run_stages(AFTER_CHANGE, saved, ctx)
