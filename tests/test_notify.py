from datetime import datetime

import pytest
from fastapi import HTTPException

from oms import email_service
from oms.config import INTERNAL_API_TOKEN
from oms.domain.jobs.notify import render_template, send_job_notification


@pytest.fixture
def captured_notifications(monkeypatch):
    sent = []

    async def fake_send(to, subject, body):
        sent.append({"to": to, "subject": subject, "body": body})
        return {"id": "email-1"}

    monkeypatch.setattr(email_service, "send_client_notification_email", fake_send)
    return sent


@pytest.fixture
def notifiable_job(make_client, make_job):
    client = make_client(
        notification_preferences={"enableNotifications": True, "notifyOnScanCompleted": True}
    )
    return make_job(
        client=client,
        capture_address="12 Harbor Rd",
        city="Portland",
        state="ME",
        scanned_date=datetime(2026, 3, 4),
    )


def test_render_template_leaves_unknown_placeholders():
    assert render_template("{{ jobNumber }} / {{nope}}", {"jobNumber": "JOB-1"}) == "JOB-1 / {{nope}}"


async def test_sends_rendered_template(db_session, notifiable_job, make_notification_template, captured_notifications):
    make_notification_template(type="scan-completed", body="Old body", active=False)
    make_notification_template(type="scan-completed", subject="Fallback {{jobNumber}}")
    make_notification_template(
        type="scan-completed",
        subject="Scan done: {{jobNumber}}",
        body="{{clientName}}: {{location}} on {{scannedDate}}. {{customMessage}}",
        default_template=True,
    )

    result = await send_job_notification(
        db_session, notifiable_job.id, "scan-completed", custom_message="See you soon."
    )

    assert result == {
        "message": "Notification sent",
        "jobId": notifiable_job.id,
        "notificationType": "scan-completed",
        "recipient": "office@acme.example.com",
    }
    assert captured_notifications == [
        {
            "to": "office@acme.example.com",
            "subject": f"Scan done: {notifiable_job.job_id}",
            "body": "Acme Realty: 12 Harbor Rd, Portland, ME on 03/04/2026. See you soon.",
        }
    ]


async def test_custom_subject_and_body_sent_verbatim(db_session, notifiable_job, captured_notifications):
    await send_job_notification(
        db_session,
        notifiable_job.id,
        "scan-completed",
        custom_subject="Heads up {{jobNumber}}",
        custom_body="Literal body",
    )

    assert captured_notifications[0]["subject"] == "Heads up {{jobNumber}}"
    assert captured_notifications[0]["body"] == "Literal body"


async def test_notification_email_preference_wins(
    db_session, make_client, make_job, make_notification_template, captured_notifications
):
    client = make_client(
        notification_preferences={"enableNotifications": True, "notificationEmail": "alerts@acme.example.com"}
    )
    job = make_job(client=client)
    make_notification_template(type="job-scheduled")

    result = await send_job_notification(db_session, job.id, "job-scheduled")

    assert result["recipient"] == "alerts@acme.example.com"


async def test_missing_job_and_client(db_session, make_job, captured_notifications):
    with pytest.raises(HTTPException) as exc:
        await send_job_notification(db_session, 9999, "scan-completed")
    assert exc.value.status_code == 404

    orphan = make_job(client=None)
    with pytest.raises(HTTPException) as exc:
        await send_job_notification(db_session, orphan.id, "scan-completed")
    assert exc.value.status_code == 404


@pytest.mark.parametrize(
    "preferences, email, detail",
    [
        ({"enableNotifications": False}, "office@acme.example.com", "disabled"),
        ({"enableNotifications": True, "notifyOnScanCompleted": False}, "office@acme.example.com", "opted out"),
        ({"enableNotifications": True, "notifyOnScanCompleted": True}, None, "no notification email"),
    ],
)
async def test_rejected_notifications(
    db_session, make_client, make_job, make_notification_template, captured_notifications, preferences, email, detail
):
    make_notification_template(type="scan-completed")
    client = make_client(email=email, notification_preferences=preferences)
    job = make_job(client=client)

    with pytest.raises(HTTPException) as exc:
        await send_job_notification(db_session, job.id, "scan-completed")

    assert exc.value.status_code == 400
    assert detail in exc.value.detail
    assert captured_notifications == []


async def test_no_template(db_session, notifiable_job, captured_notifications):
    with pytest.raises(HTTPException) as exc:
        await send_job_notification(db_session, notifiable_job.id, "scan-completed")
    assert exc.value.status_code == 400


async def test_provider_failure_is_502(db_session, notifiable_job, make_notification_template, monkeypatch):
    make_notification_template(type="scan-completed")

    async def failing_send(to, subject, body):
        raise RuntimeError("resend down")

    monkeypatch.setattr(email_service, "send_client_notification_email", failing_send)

    with pytest.raises(HTTPException) as exc:
        await send_job_notification(db_session, notifiable_job.id, "scan-completed")
    assert exc.value.status_code == 502


def test_notify_route_accepts_internal_token(
    api_client, notifiable_job, make_notification_template, captured_notifications
):
    make_notification_template(type="scan-completed")

    response = api_client.post(
        f"/jobs/{notifiable_job.id}/notify",
        json={"notificationType": "scan-completed", "customMessage": "Done."},
        headers={"X-Internal-Token": INTERNAL_API_TOKEN},
    )

    assert response.status_code == 200, response.text
    assert response.json()["recipient"] == "office@acme.example.com"
    assert len(captured_notifications) == 1


def test_notify_route_rejects_bad_token(api_client, notifiable_job, captured_notifications):
    response = api_client.post(
        f"/jobs/{notifiable_job.id}/notify",
        json={"notificationType": "scan-completed"},
        headers={"X-Internal-Token": "wrong"},
    )

    assert response.status_code == 401
    assert captured_notifications == []
