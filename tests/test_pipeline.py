import logging

from oms.domain.workflows.completion import update_invoice_status, workflow_step_completion
from oms.domain.workflows.defaults import apply_client_default_workflow
from oms.domain.workflows.materializer import populate_workflow_steps
from oms.domain.workflows.pipeline import BEFORE_CHANGE, run_stages


def test_before_change_order():
    names = [stage.__name__ for stage in BEFORE_CHANGE]
    assert names.index(apply_client_default_workflow.__name__) < names.index(populate_workflow_steps.__name__)
    assert names.index(populate_workflow_steps.__name__) < names.index(workflow_step_completion.__name__)
    assert names[-1] == update_invoice_status.__name__


async def test_failing_stage_is_skipped(create_ctx, caplog):
    async def tag(draft, ctx):
        draft["tags"] = draft.get("tags", []) + ["first"]
        return draft

    async def explode(draft, ctx):
        draft["tags"].append("half-done")
        raise RuntimeError("boom")

    async def finish(draft, ctx):
        draft["tags"].append("last")
        return draft

    with caplog.at_level(logging.ERROR):
        result = await run_stages((tag, explode, finish), {"jobId": "JOB-1"}, create_ctx())

    assert result["tags"] == ["first", "last"]
    assert "Stage explode failed for job JOB-1" in caplog.text


async def test_stage_returning_none_keeps_draft(create_ctx):
    async def noop(draft, ctx):
        draft["status"] = "qc"

    result = await run_stages((noop,), {"status": "request"}, create_ctx())

    assert result == {"status": "request"}
