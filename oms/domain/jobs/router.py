"""Job router - FastAPI endpoints for job operations"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin, require_staff_or_internal
from ...database import get_db
from ...models import User
from .notify import send_job_notification
from .schemas import JobCreate, JobNotifyRequest, JobResponse, JobUpdate, StepCompleteRequest
from .service import JobService, job_to_document

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["Jobs"])


def get_job_service(db: Session = Depends(get_db)) -> JobService:
    """Dependency injection for JobService"""
    return JobService(db)


@router.get("", response_model=list[JobResponse])
async def get_jobs(
    status: Optional[str] = Query(None),
    client: Optional[int] = Query(None),
    invoiceStatus: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: JobService = Depends(get_job_service),
):
    jobs = service.get_jobs(status=status, client_id=client, invoice_status=invoiceStatus)
    return [JobResponse(**job_to_document(job)) for job in jobs]


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: int,
    current_user: User = Depends(get_current_user),
    service: JobService = Depends(get_job_service),
):
    return JobResponse(**job_to_document(service.get_job(job_id)))


@router.post("", response_model=JobResponse)
async def create_job(
    data: JobCreate,
    current_user: User = Depends(require_admin),
    service: JobService = Depends(get_job_service),
):
    """Create a job; the client's default workflow is applied when no template is given"""
    job = await service.create_job(data, current_user)
    return JobResponse(**job_to_document(job))


@router.patch("/{job_id}", response_model=JobResponse)
async def update_job(
    job_id: int,
    data: JobUpdate,
    current_user: User = Depends(get_current_user),
    service: JobService = Depends(get_job_service),
):
    """Partially update a job; workflow step completions fire their triggers"""
    job = await service.update_job(job_id, data, current_user)
    return JobResponse(**job_to_document(job))


@router.post("/{job_id}/steps/{step_index}/complete", response_model=JobResponse)
async def complete_workflow_step(
    job_id: int,
    step_index: int,
    data: Optional[StepCompleteRequest] = None,
    current_user: User = Depends(get_current_user),
    service: JobService = Depends(get_job_service),
):
    job = await service.complete_step(
        job_id, step_index, current_user, notes=data.notes if data else None
    )
    return JobResponse(**job_to_document(job))


@router.get("/{job_id}/financials")
async def get_job_financials(
    job_id: int,
    current_user: User = Depends(require_admin),
    service: JobService = Depends(get_job_service),
):
    """Subtotal, discount, tax, payouts and margin for a job"""
    return service.get_financials(job_id)


@router.post("/{job_id}/notify")
async def notify_job_client(
    job_id: int,
    data: JobNotifyRequest,
    caller: Optional[User] = Depends(require_staff_or_internal),
    db: Session = Depends(get_db),
):
    """Send the client a notification email for this job"""
    logger.info(
        f"📥 Notify request for job {job_id} ({data.notificationType}) "
        f"from {caller.email if caller else 'outbox'}"
    )
    return await send_job_notification(
        db,
        job_id,
        data.notificationType,
        custom_message=data.customMessage,
        custom_subject=data.customSubject,
        custom_body=data.customBody,
    )
