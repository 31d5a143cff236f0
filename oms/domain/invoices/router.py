"""Invoice routes - generate invoices from completed jobs and move them through approval"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...models import User
from ...models_invoice import Invoice
from ..jobs.schemas import JobResponse
from ..jobs.service import job_to_document
from .service import InvoiceService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/invoices", tags=["Invoices"])


class GenerateInvoiceRequest(BaseModel):
    jobIds: list[int]


class InvoiceResponse(BaseModel):
    id: int
    client: int
    status: str
    jobs: list[int]
    lineItems: list[dict]
    subtotal: float
    taxRate: float
    taxAmount: float
    total: float
    invoiceDate: datetime
    dueDate: Optional[datetime] = None
    terms: Optional[str] = None
    notes: Optional[str] = None
    paidAmount: Optional[float] = None
    paidDate: Optional[datetime] = None


def get_invoice_service(db: Session = Depends(get_db)) -> InvoiceService:
    return InvoiceService(db)


def to_response(invoice: Invoice) -> InvoiceResponse:
    return InvoiceResponse(
        id=invoice.id,
        client=invoice.client_id,
        status=invoice.status,
        jobs=invoice.job_ids or [],
        lineItems=invoice.line_items or [],
        subtotal=invoice.subtotal,
        taxRate=invoice.tax_rate,
        taxAmount=invoice.tax_amount,
        total=invoice.total,
        invoiceDate=invoice.invoice_date,
        dueDate=invoice.due_date,
        terms=invoice.terms,
        notes=invoice.notes,
        paidAmount=invoice.paid_amount,
        paidDate=invoice.paid_date,
    )


@router.get("", response_model=list[InvoiceResponse])
async def get_invoices(
    status: Optional[str] = Query(None),
    client: Optional[int] = Query(None),
    current_user: User = Depends(require_admin),
    service: InvoiceService = Depends(get_invoice_service),
):
    return [to_response(i) for i in service.get_invoices(status, client)]


@router.get("/ready-to-invoice")
async def get_ready_to_invoice(
    current_user: User = Depends(require_admin),
    service: InvoiceService = Depends(get_invoice_service),
):
    """Completed jobs awaiting an invoice, grouped by client"""
    result = service.ready_to_invoice()
    return {
        "success": True,
        "totalJobs": result["totalJobs"],
        "clients": result["clients"],
        "jobsByClient": {
            client_id: [JobResponse(**job_to_document(job)) for job in jobs]
            for client_id, jobs in result["jobsByClient"].items()
        },
    }


@router.post("/generate", response_model=InvoiceResponse)
async def generate_invoice(
    data: GenerateInvoiceRequest,
    current_user: User = Depends(require_admin),
    service: InvoiceService = Depends(get_invoice_service),
):
    invoice = service.generate(data.jobIds, current_user.id)
    return to_response(invoice)


@router.post("/{invoice_id}/approve", response_model=InvoiceResponse)
async def approve_invoice(
    invoice_id: int,
    current_user: User = Depends(require_admin),
    service: InvoiceService = Depends(get_invoice_service),
):
    logger.info(f"📥 Invoice {invoice_id} approval by user {current_user.id}")
    return to_response(service.approve(invoice_id))


@router.post("/{invoice_id}/void", response_model=InvoiceResponse)
async def void_invoice(
    invoice_id: int,
    current_user: User = Depends(require_admin),
    service: InvoiceService = Depends(get_invoice_service),
):
    return to_response(service.void(invoice_id))
