"""Payment repository - Database operations for payments"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Job
from ...models_invoice import Payment

CANDIDATE_JOB_LIMIT = 50


class PaymentRepository:
    """Repository for payment database operations"""

    @staticmethod
    def get_payments(
        db: Session, status: Optional[str] = None, client_id: Optional[int] = None
    ) -> list[Payment]:
        query = db.query(Payment)
        if status:
            query = query.filter(Payment.status == status)
        if client_id is not None:
            query = query.filter(Payment.client_id == client_id)
        return query.order_by(Payment.payment_date.desc(), Payment.id.desc()).all()

    @staticmethod
    def get_payment_by_id(db: Session, payment_id: int) -> Optional[Payment]:
        return db.query(Payment).filter(Payment.id == payment_id).first()

    @staticmethod
    def create_payment(db: Session, commit: bool = True, **payment_data) -> Payment:
        payment = Payment(**payment_data)
        db.add(payment)
        if commit:
            db.commit()
            db.refresh(payment)
        return payment

    @staticmethod
    def get_candidate_jobs(db: Session, client_id: int, limit: int = CANDIDATE_JOB_LIMIT) -> list[Job]:
        """Done jobs of this client that are ready to invoice"""
        return (
            db.query(Job)
            .filter(Job.client_id == client_id, Job.status == "done", Job.invoice_status == "ready")
            .order_by(Job.id.asc())
            .limit(limit)
            .all()
        )
