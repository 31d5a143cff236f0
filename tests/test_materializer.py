from helpers import completed, template_step

from oms.domain.workflows.materializer import populate_workflow_steps


async def test_materializes_steps_in_order(make_template, create_ctx):
    template = make_template(
        steps=[
            template_step("QC", 2),
            template_step("Scanned", 1),
            template_step("Delivered", 3),
        ]
    )

    draft = await populate_workflow_steps({"workflowTemplate": template.id}, create_ctx())

    assert [s["stepName"] for s in draft["workflowSteps"]] == ["Scanned", "QC", "Delivered"]
    assert all(s["completed"] is False for s in draft["workflowSteps"])
    assert all(s["completedAt"] is None and s["completedBy"] is None for s in draft["workflowSteps"])
    assert all(s["notes"] == "" for s in draft["workflowSteps"])


async def test_rematerializing_discards_previous_state(make_template, update_ctx):
    old = make_template(name="Old", steps=[template_step("Scanned", 1)])
    new = make_template(name="New", steps=[template_step("Upload", 1), template_step("Floor Plan", 2)])
    original = {
        "workflowTemplate": old.id,
        "workflowSteps": [{**completed("Scanned"), "notes": "done early"}],
    }

    draft = await populate_workflow_steps(
        {**original, "workflowTemplate": new.id}, update_ctx(original)
    )

    assert draft["workflowSteps"] == [
        {"stepName": "Upload", "completed": False, "completedAt": None, "completedBy": None, "notes": ""},
        {"stepName": "Floor Plan", "completed": False, "completedAt": None, "completedBy": None, "notes": ""},
    ]


async def test_unchanged_template_is_a_noop(make_template, update_ctx):
    template = make_template(steps=[template_step("Scanned", 1)])
    original = {"workflowTemplate": template.id, "workflowSteps": [completed("Scanned")]}

    # expanded relation compares equal to the bare id
    draft = await populate_workflow_steps(
        {**original, "workflowTemplate": {"id": str(template.id)}}, update_ctx(original)
    )

    assert draft["workflowSteps"] == [completed("Scanned")]


async def test_missing_or_empty_template_leaves_steps(make_template, create_ctx):
    empty = make_template(steps=[])

    draft = await populate_workflow_steps({"workflowTemplate": empty.id, "workflowSteps": []}, create_ctx())
    assert draft["workflowSteps"] == []

    draft = await populate_workflow_steps({"workflowTemplate": 9999, "workflowSteps": []}, create_ctx())
    assert draft["workflowSteps"] == []
