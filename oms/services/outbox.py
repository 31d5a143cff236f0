"""
Outbox for side effects that must not block a job write

Messages are queued right after the job change commits, in their own
transaction, and delivered later by the worker (or any caller of
dispatch_pending). A crash between the two commits drops the message.
Failed deliveries are retried with exponential backoff until max_attempts,
after which the message is parked as "failed" with its last error.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

import httpx
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..config import (
    INTERNAL_API_TOKEN,
    OUTBOX_BATCH_SIZE,
    OUTBOX_HTTP_TIMEOUT,
    OUTBOX_MAX_ATTEMPTS,
    OUTBOX_RETRY_BASE_SECONDS,
    SERVER_URL,
)
from ..models_outbox import OutboxMessage

logger = logging.getLogger(__name__)

CLIENT_NOTIFICATION = "client-notification"


class OutboxDeliveryError(Exception):
    """Raised by a handler when the receiving side rejected the message"""


def enqueue(
    db: Session, kind: str, payload: dict, max_attempts: Optional[int] = None
) -> OutboxMessage:
    """Record a message; it is committed together with the caller's transaction"""
    message = OutboxMessage(
        kind=kind,
        payload=payload,
        status="pending",
        attempts=0,
        max_attempts=max_attempts or OUTBOX_MAX_ATTEMPTS,
        next_attempt_at=datetime.utcnow(),
    )
    db.add(message)
    logger.info(f"📮 Queued {kind} message: {payload}")
    return message


def retry_delay(attempts: int) -> timedelta:
    return timedelta(seconds=OUTBOX_RETRY_BASE_SECONDS * (2 ** max(attempts - 1, 0)))


async def deliver_client_notification(message: OutboxMessage, http_client: httpx.AsyncClient) -> None:
    payload = message.payload or {}
    job_pk = payload.get("jobId")
    response = await http_client.post(
        f"/jobs/{job_pk}/notify",
        json={
            "notificationType": payload.get("notificationType"),
            "customMessage": payload.get("customMessage"),
        },
        headers={"X-Internal-Token": INTERNAL_API_TOKEN},
    )
    if response.status_code >= 400:
        raise OutboxDeliveryError(f"HTTP {response.status_code}: {response.text[:500]}")


HANDLERS = {
    CLIENT_NOTIFICATION: deliver_client_notification,
}


def due_messages(db: Session, now: datetime, limit: int = OUTBOX_BATCH_SIZE) -> list[OutboxMessage]:
    return (
        db.query(OutboxMessage)
        .filter(
            OutboxMessage.status == "pending",
            or_(OutboxMessage.next_attempt_at.is_(None), OutboxMessage.next_attempt_at <= now),
        )
        .order_by(OutboxMessage.id.asc())
        .limit(limit)
        .all()
    )


def record_failure(message: OutboxMessage, error: str, now: datetime) -> None:
    message.attempts = (message.attempts or 0) + 1
    message.last_error = error
    if message.attempts >= message.max_attempts:
        message.status = "failed"
        message.next_attempt_at = None
        logger.error(
            f"❌ Outbox message {message.id} ({message.kind}) failed permanently "
            f"after {message.attempts} attempts: {error}"
        )
    else:
        message.next_attempt_at = now + retry_delay(message.attempts)
        logger.warning(
            f"🔄 Outbox message {message.id} ({message.kind}) attempt {message.attempts}/"
            f"{message.max_attempts} failed, retrying at {message.next_attempt_at}: {error}"
        )


async def dispatch_pending(
    db: Session,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    now: Optional[datetime] = None,
) -> dict:
    """
    Deliver every message that is due.

    Args:
        db: Database session
        transport: Optional httpx transport (tests pass httpx.MockTransport)
        now: Clock override

    Returns:
        dict: counts of delivered / retrying / failed messages
    """
    now = now or datetime.utcnow()
    summary = {"delivered": 0, "retrying": 0, "failed": 0}

    messages = due_messages(db, now)
    if not messages:
        return summary

    async with httpx.AsyncClient(
        base_url=SERVER_URL, timeout=OUTBOX_HTTP_TIMEOUT, transport=transport
    ) as http_client:
        for message in messages:
            handler = HANDLERS.get(message.kind)
            if handler is None:
                message.attempts = (message.attempts or 0) + 1
                message.status = "failed"
                message.last_error = f"No handler for message kind {message.kind}"
                summary["failed"] += 1
                logger.error(f"❌ Outbox message {message.id}: {message.last_error}")
                continue

            try:
                await handler(message, http_client)
            except Exception as e:
                record_failure(message, str(e) or type(e).__name__, now)
                summary["failed" if message.status == "failed" else "retrying"] += 1
                continue

            message.attempts = (message.attempts or 0) + 1
            message.status = "delivered"
            message.delivered_at = now
            message.last_error = None
            summary["delivered"] += 1
            logger.info(f"✅ Delivered outbox message {message.id} ({message.kind})")

    db.commit()
    logger.info(f"📊 Outbox dispatch summary: {summary}")
    return summary
