"""Job service - Business logic for job operations"""

import copy
import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Job, User
from ...shared.relations import normalize_relation_id
from ..workflows.context import JobChangeContext, JobDraft
from ..workflows.pipeline import run_after_change, run_before_change
from .financials import financials_for_draft
from .repository import JobRepository
from .schemas import JobCreate, JobUpdate

logger = logging.getLogger(__name__)

# Job document key -> Job column. Relations are stored as *_id columns and
# exposed as plain ids in the document.
DOCUMENT_FIELDS = {
    "jobId": "job_id",
    "modelName": "model_name",
    "status": "status",
    "invoiceStatus": "invoice_status",
    "invoice": "invoice_id",
    "invoicedAt": "invoiced_at",
    "client": "client_id",
    "tech": "tech_id",
    "captureAddress": "capture_address",
    "city": "city",
    "state": "state",
    "sqFt": "sq_ft",
    "targetDate": "target_date",
    "scannedDate": "scanned_date",
    "completedAt": "completed_at",
    "uploadLink": "upload_link",
    "workflowTemplate": "workflow_template_id",
    "workflowSteps": "workflow_steps",
    "lineItems": "line_items",
    "externalExpenses": "external_expenses",
    "discount": "discount",
    "vendorPrice": "vendor_price",
    "travelPayout": "travel_payout",
    "offHoursPayout": "off_hours_payout",
    "subtotal": "subtotal",
    "taxAmount": "tax_amount",
    "totalWithTax": "total_with_tax",
}

RELATION_FIELDS = ("client", "tech", "workflowTemplate", "invoice")
DATETIME_FIELDS = ("invoicedAt", "targetDate", "scannedDate", "completedAt")
LIST_FIELDS = ("workflowSteps", "lineItems", "externalExpenses")


def parse_datetime(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            logger.warning(f"Ignoring unparseable date value: {value!r}")
    return None


def stamp_completion(draft: JobDraft) -> None:
    if draft.get("status") == "done" and not draft.get("completedAt"):
        draft["completedAt"] = datetime.utcnow()


def job_to_document(job: Job) -> JobDraft:
    """Snapshot a Job row as a job document (deep-copied, safe to mutate)"""
    document: dict[str, Any] = {"id": job.id}
    for key, column in DOCUMENT_FIELDS.items():
        document[key] = copy.deepcopy(getattr(job, column))
    for key in LIST_FIELDS:
        if document[key] is None:
            document[key] = []
    document["createdAt"] = job.created_at
    document["updatedAt"] = job.updated_at
    return document


def apply_document(job: Job, document: JobDraft) -> None:
    """Write a job document back onto the row"""
    for key, column in DOCUMENT_FIELDS.items():
        if key not in document:
            continue
        value = document[key]
        if key in RELATION_FIELDS:
            value = normalize_relation_id(value)
            if value is not None and not isinstance(value, int):
                logger.warning(f"Dropping non-numeric {key} reference {value!r} on job {job.job_id}")
                value = None
        elif key in DATETIME_FIELDS:
            value = parse_datetime(value)
        elif key in LIST_FIELDS:
            value = copy.deepcopy(value) if value is not None else []
        elif key == "discount":
            value = copy.deepcopy(value)
        setattr(job, column, value)


class JobService:
    """Service layer for job business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = JobRepository()

    def get_jobs(
        self, status: Optional[str] = None, client_id: Optional[int] = None, invoice_status: Optional[str] = None
    ) -> list[Job]:
        return self.repo.get_jobs(self.db, status=status, client_id=client_id, invoice_status=invoice_status)

    def get_job(self, job_pk: int) -> Job:
        job = self.repo.get_job_by_id(self.db, job_pk)
        if not job:
            raise HTTPException(status_code=404, detail="Job not found")
        return job

    async def create_job(self, data: JobCreate, user: Optional[User] = None) -> Job:
        """Create a job, running the change pipeline on the new document"""
        fields = data.model_dump(exclude_unset=True)

        job_id = fields.pop("jobId", None) or self.repo.next_job_id(self.db)
        if self.repo.get_job_by_job_id(self.db, job_id):
            raise HTTPException(status_code=400, detail=f"Job {job_id} already exists")

        draft: JobDraft = {
            "id": None,
            "jobId": job_id,
            "status": "request",
            "invoiceStatus": "not-invoiced",
            "workflowSteps": [],
            "lineItems": [],
            "externalExpenses": [],
        }
        draft.update({k: v for k, v in fields.items() if v is not None or k in RELATION_FIELDS})

        ctx = JobChangeContext(db=self.db, operation="create", original=None, user=user)
        draft = await run_before_change(draft, ctx)
        stamp_completion(draft)

        job = Job()
        apply_document(job, draft)
        self._save(job, is_new=True)
        logger.info(f"✅ Created job {job.job_id} (id={job.id})")

        await run_after_change(job_to_document(job), ctx)
        return job

    async def update_job(self, job_pk: int, data: JobUpdate, user: Optional[User] = None) -> Job:
        """Apply a partial update to a job through the change pipeline"""
        return await self.apply_changes(job_pk, data.model_dump(exclude_unset=True), user)

    async def apply_changes(self, job_pk: int, changes: dict, user: Optional[User] = None) -> Job:
        job = self.get_job(job_pk)
        original = job_to_document(job)

        draft = copy.deepcopy(original)
        draft.update(changes)

        ctx = JobChangeContext(db=self.db, operation="update", original=original, user=user)
        draft = await run_before_change(draft, ctx)
        stamp_completion(draft)

        apply_document(job, draft)
        self._save(job)
        logger.info(f"✅ Updated job {job.job_id} (id={job.id})")

        await run_after_change(job_to_document(job), ctx)
        return job

    async def complete_step(
        self, job_pk: int, step_index: int, user: Optional[User] = None, notes: Optional[str] = None
    ) -> Job:
        """Mark one workflow step completed by the acting user"""
        job = self.get_job(job_pk)
        steps = copy.deepcopy(job.workflow_steps or [])

        if step_index < 0 or step_index >= len(steps):
            raise HTTPException(status_code=404, detail="Workflow step not found")
        if steps[step_index].get("completed"):
            raise HTTPException(status_code=400, detail="Workflow step already completed")

        steps[step_index].update(
            {
                "completed": True,
                "completedAt": datetime.utcnow().isoformat(),
                "completedBy": user.id if user else None,
            }
        )
        if notes is not None:
            steps[step_index]["notes"] = notes

        return await self.apply_changes(job_pk, {"workflowSteps": steps}, user)

    def get_financials(self, job_pk: int) -> dict:
        job = self.get_job(job_pk)
        return financials_for_draft(self.db, job_to_document(job)).to_dict()

    def _save(self, job: Job, is_new: bool = False) -> None:
        try:
            if is_new:
                self.db.add(job)
            self.db.commit()
            self.db.refresh(job)
        except Exception as e:
            logger.error(f"❌ Error saving job {job.job_id}: {str(e)}")
            self.db.rollback()
            raise HTTPException(status_code=500, detail="Failed to save job") from e
