"""Apply a client's default workflow to new jobs and on client change"""

import logging

from ...models import Client
from ...shared.relations import normalize_relation_id, same_relation
from .context import JobChangeContext, JobDraft

logger = logging.getLogger(__name__)


async def apply_client_default_workflow(draft: JobDraft, ctx: JobChangeContext) -> JobDraft:
    client_id = normalize_relation_id(draft.get("client"))
    original_client_id = normalize_relation_id((ctx.original or {}).get("client"))

    client_changed = (
        ctx.is_update and client_id is not None and not same_relation(client_id, original_client_id)
    )

    if not ctx.is_create and not client_changed:
        return draft

    # A template picked explicitly on a new job wins over the client default
    if draft.get("workflowTemplate") and not client_changed:
        return draft

    if client_id is None:
        return draft

    try:
        client = ctx.db.query(Client).filter(Client.id == int(client_id)).first()
    except Exception as e:
        logger.error(f"[Apply Client Default Workflow] Error fetching client {client_id}: {e}")
        return draft

    if not client:
        logger.warning(f"[Apply Client Default Workflow] Client {client_id} not found")
        return draft

    if client.default_workflow_id:
        draft["workflowTemplate"] = client.default_workflow_id
        if ctx.is_create:
            logger.info(
                f"[Apply Client Default Workflow] Applied workflow {client.default_workflow_id} "
                f"to new job from client {client_id}"
            )
        else:
            logger.info(
                f"[Apply Client Default Workflow] Applied workflow {client.default_workflow_id} "
                f"after client change to {client_id}"
            )
    elif client_changed:
        logger.info(
            f"[Apply Client Default Workflow] Client {client_id} has no default workflow, "
            "keeping existing workflow"
        )

    return draft
