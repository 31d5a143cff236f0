"""
Invoice service

Turns completed jobs into draft invoices and moves invoices through
approve / void. Jobs must be done and ready; generating an invoice marks
them invoiced, voiding releases them back to ready.
"""

import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Client, Job
from ...models_invoice import Invoice
from ...shared.relations import normalize_relation_id
from ..jobs.financials import client_tax_settings, load_products, price_line_items

logger = logging.getLogger(__name__)

TERMS_DAYS = {
    "due-on-receipt": 0,
    "net-15": 15,
    "net-30": 30,
    "net-45": 45,
    "net-60": 60,
}


class InvoiceGenerationError(Exception):
    """Jobs cannot be invoiced as requested"""


def due_date_for_terms(invoice_date: datetime, terms: Optional[str]) -> datetime:
    return invoice_date + timedelta(days=TERMS_DAYS.get(terms or "net-30", 30))


def calculate_invoice_totals(line_items: list[dict], tax_rate: float, tax_exempt: bool = False) -> dict:
    """Subtotal, tax (taxable lines only) and total for invoice line items"""
    subtotal = sum(item.get("amount") or 0 for item in line_items)

    tax_amount = 0.0
    if not tax_exempt and tax_rate > 0:
        taxable_amount = sum(item.get("amount") or 0 for item in line_items if item.get("taxable"))
        tax_amount = taxable_amount * tax_rate / 100

    return {
        "subtotal": round(subtotal, 2),
        "taxAmount": round(tax_amount, 2),
        "total": round(subtotal + tax_amount, 2),
    }


def invoice_line_items(db: Session, jobs: list[Job]) -> list[dict]:
    line_items = []
    for job in jobs:
        products = load_products(db, job.line_items)
        for line in price_line_items(job.line_items, products, job.sq_ft):
            line_items.append(
                {
                    "description": f"{line.description} - Job #{job.job_id}",
                    "quantity": line.quantity,
                    "rate": line.rate,
                    "amount": line.amount,
                    "taxable": line.taxable,
                    "jobReference": job.job_id,
                }
            )
    return line_items


def generate_invoice_from_jobs(
    db: Session, job_ids: list, user_id: Optional[int] = None, commit: bool = True
) -> Invoice:
    """
    Create a draft invoice covering the given jobs.

    All jobs must exist, belong to one client and be done + ready. Each job
    is moved to invoiced and linked to the new invoice.

    Raises:
        InvoiceGenerationError: on any violated precondition
    """
    if not job_ids:
        raise InvoiceGenerationError("At least one job ID is required")

    normalized_ids = [normalize_relation_id(job_id) for job_id in job_ids]
    if any(not isinstance(job_id, int) for job_id in normalized_ids):
        raise InvoiceGenerationError("One or more jobs not found")

    jobs_by_id = {job.id: job for job in db.query(Job).filter(Job.id.in_(normalized_ids)).all()}
    if len(jobs_by_id) != len(set(normalized_ids)):
        raise InvoiceGenerationError("One or more jobs not found")
    jobs = [jobs_by_id[job_id] for job_id in dict.fromkeys(normalized_ids)]

    client_ids = {job.client_id for job in jobs}
    if len(client_ids) > 1:
        raise InvoiceGenerationError("All jobs must belong to the same client")

    invalid = [job.job_id for job in jobs if job.status != "done" or job.invoice_status != "ready"]
    if invalid:
        raise InvoiceGenerationError(
            f"Jobs must have status='done' and invoiceStatus='ready'. Invalid jobs: {', '.join(invalid)}"
        )

    client_id = client_ids.pop()
    client = db.query(Client).filter(Client.id == client_id).first() if client_id else None
    if not client:
        raise InvoiceGenerationError("Client not found")

    line_items = invoice_line_items(db, jobs)
    if not line_items:
        raise InvoiceGenerationError("No line items found in the selected jobs")

    tax_rate, tax_exempt = client_tax_settings(client)
    if tax_exempt:
        tax_rate = 0.0
    totals = calculate_invoice_totals(line_items, tax_rate, tax_exempt)

    preferences = client.invoicing_preferences or {}
    terms = preferences.get("terms") or "net-30"
    invoice_date = datetime.utcnow()

    invoice = Invoice(
        client_id=client.id,
        status="draft",
        job_ids=[job.id for job in jobs],
        line_items=line_items,
        subtotal=totals["subtotal"],
        tax_rate=tax_rate,
        tax_amount=totals["taxAmount"],
        total=totals["total"],
        invoice_date=invoice_date,
        due_date=due_date_for_terms(invoice_date, terms),
        terms=terms,
        notes=preferences.get("invoiceNotes") or "",
        created_by_id=user_id,
    )
    db.add(invoice)
    db.flush()

    for job in jobs:
        job.invoice_status = "invoiced"
        job.invoice_id = invoice.id
        job.invoiced_at = invoice_date

    if commit:
        db.commit()
        db.refresh(invoice)

    logger.info(f"[Invoice] Created invoice {invoice.id} for {len(jobs)} job(s)")
    return invoice


class InvoiceService:
    """Service layer for invoice business logic"""

    def __init__(self, db: Session):
        self.db = db

    def get_invoice(self, invoice_id: int) -> Invoice:
        invoice = self.db.query(Invoice).filter(Invoice.id == invoice_id).first()
        if not invoice:
            raise HTTPException(status_code=404, detail="Invoice not found")
        return invoice

    def get_invoices(self, status: Optional[str] = None, client_id: Optional[int] = None) -> list[Invoice]:
        query = self.db.query(Invoice)
        if status:
            query = query.filter(Invoice.status == status)
        if client_id is not None:
            query = query.filter(Invoice.client_id == client_id)
        return query.order_by(Invoice.invoice_date.desc()).all()

    def generate(self, job_ids: list, user_id: Optional[int]) -> Invoice:
        try:
            return generate_invoice_from_jobs(self.db, job_ids, user_id)
        except InvoiceGenerationError as e:
            self.db.rollback()
            logger.warning(f"[Invoice] Generation rejected: {e}")
            raise HTTPException(status_code=400, detail=str(e)) from e

    def ready_to_invoice(self) -> dict:
        """Done + ready jobs grouped by client id"""
        jobs = (
            self.db.query(Job)
            .filter(Job.status == "done", Job.invoice_status == "ready")
            .order_by(Job.client_id.asc(), Job.completed_at.asc())
            .limit(1000)
            .all()
        )
        jobs_by_client: dict[str, list[Job]] = defaultdict(list)
        for job in jobs:
            jobs_by_client[str(job.client_id)].append(job)

        return {
            "totalJobs": len(jobs),
            "clients": len(jobs_by_client),
            "jobsByClient": dict(jobs_by_client),
        }

    def approve(self, invoice_id: int) -> Invoice:
        invoice = self.get_invoice(invoice_id)
        if invoice.status != "draft":
            raise HTTPException(
                status_code=400, detail=f"Invoice cannot be approved from status: {invoice.status}"
            )
        invoice.status = "approved"
        self.db.commit()
        self.db.refresh(invoice)
        logger.info(f"[Invoice] Invoice {invoice.id} approved")
        return invoice

    def void(self, invoice_id: int) -> Invoice:
        """Void an unpaid invoice and put its jobs back in the ready queue"""
        invoice = self.get_invoice(invoice_id)
        if invoice.status in ("paid", "void"):
            raise HTTPException(status_code=400, detail=f"Invoice cannot be voided from status: {invoice.status}")

        invoice.status = "void"
        jobs = self.db.query(Job).filter(Job.invoice_id == invoice.id).all()
        for job in jobs:
            job.invoice_status = "ready"
            job.invoice_id = None
            job.invoiced_at = None

        self.db.commit()
        self.db.refresh(invoice)
        logger.info(f"[Invoice] Invoice {invoice.id} voided, released {len(jobs)} job(s)")
        return invoice
