import pytest
from helpers import completed, pending

from oms.domain.workflows.client_notifier import classify_step, notify_client_of_completed_steps
from oms.models_outbox import OutboxMessage


@pytest.mark.parametrize(
    "step_name, expected",
    [
        ("Scan Completed", "scan-completed"),
        ("Upload to Matterport", "upload-completed"),
        ("QC Review", "qc-completed"),
        ("Post-Production", "qc-completed"),
        ("Transfer Model", "transfer-completed"),
        ("Floor Plan Ordered", "floorplan-completed"),
        ("Photos Delivered", "photos-completed"),
        ("As-Built Drawings", "asbuilts-completed"),
        ("Invoice Sent", None),
    ],
)
def test_classify_step(step_name, expected):
    result = classify_step(step_name)
    assert (result[0] if result else None) == expected


def saved_job(client, steps):
    return {"id": 11, "jobId": "JOB-1011", "client": client.id, "workflowSteps": steps}


async def test_scan_completed_queues_notification_when_enabled(db_session, make_client, update_ctx):
    client = make_client(
        notification_preferences={"enableNotifications": True, "notifyOnScanCompleted": True}
    )
    original = saved_job(client, [pending("Scan Completed")])

    await notify_client_of_completed_steps(
        saved_job(client, [completed("Scan Completed")]), update_ctx(original)
    )

    message = db_session.query(OutboxMessage).one()
    assert message.kind == "client-notification"
    assert message.status == "pending"
    assert message.payload == {
        "jobId": 11,
        "notificationType": "scan-completed",
        "customMessage": 'Workflow step "Scan Completed" has been completed.',
    }


async def test_scan_completed_not_queued_when_flag_off(db_session, make_client, update_ctx):
    client = make_client(
        notification_preferences={"enableNotifications": True, "notifyOnScanCompleted": False}
    )
    original = saved_job(client, [pending("Scan Completed")])

    await notify_client_of_completed_steps(
        saved_job(client, [completed("Scan Completed")]), update_ctx(original)
    )

    assert db_session.query(OutboxMessage).count() == 0


async def test_master_switch_off_blocks_everything(db_session, make_client, update_ctx):
    client = make_client(
        notification_preferences={"enableNotifications": False, "notifyOnScanCompleted": True}
    )
    original = saved_job(client, [pending("Scan Completed")])

    await notify_client_of_completed_steps(
        saved_job(client, [completed("Scan Completed")]), update_ctx(original)
    )

    assert db_session.query(OutboxMessage).count() == 0


async def test_unclassified_steps_are_ignored(db_session, make_client, update_ctx):
    client = make_client(notification_preferences={"enableNotifications": True})
    original = saved_job(client, [pending("Invoice Sent")])

    await notify_client_of_completed_steps(
        saved_job(client, [completed("Invoice Sent")]), update_ctx(original)
    )

    assert db_session.query(OutboxMessage).count() == 0
