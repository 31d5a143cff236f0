"""Job repository - Database operations for jobs"""

import re
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Job

JOB_NUMBER_PATTERN = re.compile(r"^JOB-(\d+)$")
FIRST_JOB_NUMBER = 1001


class JobRepository:
    """Repository for job database operations"""

    @staticmethod
    def get_jobs(
        db: Session,
        status: Optional[str] = None,
        client_id: Optional[int] = None,
        invoice_status: Optional[str] = None,
        limit: int = 200,
    ) -> list[Job]:
        query = db.query(Job)
        if status:
            query = query.filter(Job.status == status)
        if client_id is not None:
            query = query.filter(Job.client_id == client_id)
        if invoice_status:
            query = query.filter(Job.invoice_status == invoice_status)
        return query.order_by(Job.created_at.desc(), Job.id.desc()).limit(limit).all()

    @staticmethod
    def get_job_by_id(db: Session, job_pk: int) -> Optional[Job]:
        return db.query(Job).filter(Job.id == job_pk).first()

    @staticmethod
    def get_job_by_job_id(db: Session, job_id: str) -> Optional[Job]:
        """Look up by the human job number (JOB-1001)"""
        return db.query(Job).filter(Job.job_id == job_id).first()

    @staticmethod
    def next_job_id(db: Session) -> str:
        """One past the highest JOB-<n> in use, including explicitly chosen numbers"""
        highest = FIRST_JOB_NUMBER - 1
        for (job_id,) in db.query(Job.job_id).filter(Job.job_id.like("JOB-%")):
            match = JOB_NUMBER_PATTERN.match(job_id or "")
            if match:
                highest = max(highest, int(match.group(1)))
        return f"JOB-{highest + 1}"

    @staticmethod
    def get_ready_to_invoice(db: Session, client_id: Optional[int] = None, limit: int = 50) -> list[Job]:
        """Completed jobs waiting for an invoice"""
        query = db.query(Job).filter(Job.status == "done", Job.invoice_status == "ready")
        if client_id is not None:
            query = query.filter(Job.client_id == client_id)
        return query.order_by(Job.completed_at.desc()).limit(limit).all()
