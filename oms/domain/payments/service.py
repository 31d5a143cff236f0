"""
Payment service - deposit reconciliation

Bank deposits are imported (CSV or manual) as unmatched payments. For a
payment, find_candidates ranks the client's done + ready jobs by how close
their completion date is to the deposit date, showing the quoted total and
the difference. confirm_match invoices the chosen job and records the
payment against it.
"""

import csv
import logging
import re
from datetime import datetime, timezone
from io import StringIO
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Client, Job
from ...models_invoice import Payment
from ..invoices.service import InvoiceGenerationError, generate_invoice_from_jobs
from ..jobs.financials import client_tax_settings, load_products, price_line_items
from .repository import PaymentRepository
from .schemas import PaymentCreate

logger = logging.getLogger(__name__)

CANDIDATE_RESULT_LIMIT = 10

EPOCH = datetime(1970, 1, 1)

CSV_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%m/%d/%y", "%m-%d-%Y", "%Y/%m/%d", "%b %d %Y", "%d %b %Y")


def naive(value: Optional[datetime]) -> Optional[datetime]:
    """Drop tzinfo after converting to UTC; stored datetimes are naive UTC"""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def quoted_total(db: Session, job: Job, client: Optional[Client]) -> float:
    """Line items priced from the catalog plus client tax on the whole amount"""
    products = load_products(db, job.line_items)
    total = sum(line.amount for line in price_line_items(job.line_items, products, job.sq_ft))

    tax_rate, tax_exempt = client_tax_settings(client)
    if not tax_exempt and tax_rate > 0:
        total += total * tax_rate / 100
    return total


def payment_to_dict(payment: Payment) -> dict:
    return {
        "id": payment.id,
        "client": payment.client_id,
        "amount": payment.amount,
        "paymentDate": payment.payment_date,
        "referenceNumber": payment.reference_number,
        "source": payment.source,
        "status": payment.status,
        "matchedJob": payment.matched_job_id,
        "matchedInvoice": payment.matched_invoice_id,
        "notes": payment.notes,
    }


def parse_csv_amount(raw: Optional[str]) -> Optional[float]:
    cleaned = re.sub(r"[^0-9.\-]", "", raw or "")
    try:
        return float(cleaned)
    except ValueError:
        return None


def parse_csv_date(raw: Optional[str]) -> Optional[datetime]:
    value = (raw or "").strip()
    if not value:
        return None
    try:
        return naive(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        pass
    for fmt in CSV_DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None


def find_column(headers: list[str], *needles: str) -> int:
    for index, header in enumerate(headers):
        if any(needle in header for needle in needles):
            return index
    return -1


class PaymentService:
    """Service layer for payment business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PaymentRepository()

    def get_payments(self, status: Optional[str] = None, client_id: Optional[int] = None) -> list[Payment]:
        return self.repo.get_payments(self.db, status, client_id)

    def get_payment(self, payment_id: int) -> Payment:
        payment = self.repo.get_payment_by_id(self.db, payment_id)
        if not payment:
            raise HTTPException(status_code=404, detail="Payment not found")
        return payment

    def _get_client(self, client_id: int) -> Client:
        client = self.db.query(Client).filter(Client.id == client_id).first()
        if not client:
            raise HTTPException(status_code=404, detail="Client not found")
        return client

    def create_payment(self, data: PaymentCreate, user_id: Optional[int] = None) -> Payment:
        self._get_client(data.client)
        return self.repo.create_payment(
            self.db,
            client_id=data.client,
            amount=data.amount,
            payment_date=naive(data.paymentDate),
            reference_number=data.referenceNumber,
            notes=data.notes,
            source="manual",
            status="unmatched",
            imported_by_id=user_id,
        )

    def find_candidates(self, payment_id: int) -> list[dict]:
        """
        Jobs this payment most likely pays for, closest completion date first.

        delta = quotedTotal - paymentAmount, so a positive delta means the
        deposit is short of the quote.
        """
        payment = self.get_payment(payment_id)
        if payment.status != "unmatched":
            raise HTTPException(status_code=400, detail="Payment is already matched")

        client = self.db.query(Client).filter(Client.id == payment.client_id).first()
        jobs = self.repo.get_candidate_jobs(self.db, payment.client_id)
        payment_date = naive(payment.payment_date) or EPOCH

        scored = []
        for job in jobs:
            total = quoted_total(self.db, job, client)
            completed_at = naive(job.completed_at) or EPOCH
            scored.append(
                (
                    abs((payment_date - completed_at).total_seconds()),
                    {
                        "id": job.id,
                        "jobId": job.job_id,
                        "completedAt": job.completed_at,
                        "quotedTotal": round(total, 2),
                        "delta": round(total - payment.amount, 2),
                    },
                )
            )

        scored.sort(key=lambda pair: pair[0])
        return [candidate for _, candidate in scored[:CANDIDATE_RESULT_LIMIT]]

    def confirm_match(self, payment_id: int, job_pk: int, user_id: Optional[int] = None) -> dict:
        """Invoice the job, mark the invoice paid and link the payment to both"""
        payment = self.repo.get_payment_by_id(self.db, payment_id)
        if not payment or payment.status != "unmatched":
            raise HTTPException(status_code=400, detail="Payment not found or already matched")

        job = self.db.query(Job).filter(Job.id == job_pk).first()
        if not job:
            raise HTTPException(status_code=404, detail="Job not found")

        if str(payment.client_id) != str(job.client_id):
            raise HTTPException(status_code=400, detail="Payment and job belong to different clients")

        if job.status != "done" or job.invoice_status != "ready":
            raise HTTPException(status_code=400, detail="Job must have status=done and invoiceStatus=ready")

        try:
            invoice = generate_invoice_from_jobs(self.db, [job.id], user_id, commit=False)

            invoice.status = "paid"
            invoice.paid_amount = payment.amount
            invoice.paid_date = payment.payment_date

            payment.status = "matched"
            payment.matched_job_id = job.id
            payment.matched_invoice_id = invoice.id

            job.invoice_status = "paid"

            self.db.commit()
        except InvoiceGenerationError as e:
            self.db.rollback()
            raise HTTPException(status_code=400, detail=str(e)) from e
        except Exception as e:
            logger.error(f"❌ Error confirming payment {payment_id} against job {job_pk}: {str(e)}")
            self.db.rollback()
            raise HTTPException(status_code=500, detail="Failed to confirm match") from e

        logger.info(f"✅ Payment {payment.id} matched to job {job.job_id}, invoice {invoice.id}")
        return {
            "success": True,
            "invoice": {"id": invoice.id, "total": invoice.total},
            "payment": {"id": payment.id, "amount": payment.amount},
            "message": "Payment matched and invoice generated successfully",
        }

    def import_csv(self, csv_text: str, client_id: int, user_id: Optional[int] = None) -> dict:
        """
        Create unmatched payments from a bank export.

        Columns are located by header name (case-insensitive): amount/total,
        date, ref/check/number and note/memo/desc. Bad rows are reported and
        skipped; the rest are imported.
        """
        self._get_client(client_id)

        rows = [row for row in csv.reader(StringIO(csv_text)) if any(cell.strip() for cell in row)]
        if len(rows) < 2:
            raise HTTPException(
                status_code=400, detail="CSV must have a header row and at least one data row"
            )

        headers = [h.strip().lower() for h in rows[0]]
        amount_idx = find_column(headers, "amount", "total")
        date_idx = find_column(headers, "date")
        ref_idx = find_column(headers, "ref", "check", "number")
        notes_idx = find_column(headers, "note", "memo", "desc")

        if amount_idx < 0:
            raise HTTPException(status_code=400, detail="CSV must have an amount or total column")
        if date_idx < 0:
            raise HTTPException(status_code=400, detail="CSV must have a date column")

        def cell(values: list[str], index: int) -> str:
            return values[index].strip() if 0 <= index < len(values) else ""

        created = []
        errors = []
        for row_number, values in enumerate(rows[1:], start=2):
            raw_amount = cell(values, amount_idx)
            amount = parse_csv_amount(raw_amount)
            if amount is None or amount <= 0:
                errors.append(f'Row {row_number}: invalid amount "{raw_amount}"')
                continue

            raw_date = cell(values, date_idx)
            payment_date = parse_csv_date(raw_date)
            if payment_date is None:
                errors.append(f'Row {row_number}: invalid date "{raw_date}"')
                continue

            payment = self.repo.create_payment(
                self.db,
                commit=False,
                client_id=client_id,
                amount=amount,
                payment_date=payment_date,
                reference_number=cell(values, ref_idx),
                notes=cell(values, notes_idx),
                source="csv-import",
                status="unmatched",
                imported_by_id=user_id,
            )
            created.append(payment)

        self.db.commit()
        logger.info(f"📥 Imported {len(created)} payment(s) for client {client_id}, {len(errors)} error(s)")

        return {
            "success": True,
            "created": len(created),
            "errors": errors,
            "payments": [
                {"id": p.id, "amount": p.amount, "referenceNumber": p.reference_number or ""}
                for p in created
            ],
        }
