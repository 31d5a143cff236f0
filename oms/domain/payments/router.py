"""Payment router - deposit import and reconciliation endpoints"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...models import User
from .schemas import (
    CandidatesResponse,
    ConfirmMatchRequest,
    ConfirmMatchResponse,
    CsvImportResponse,
    PaymentCreate,
    PaymentResponse,
)
from .service import PaymentService, payment_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["Payments"])

MAX_CSV_BYTES = 2 * 1024 * 1024


def get_payment_service(db: Session = Depends(get_db)) -> PaymentService:
    """Dependency injection for PaymentService"""
    return PaymentService(db)


@router.get("", response_model=list[PaymentResponse])
async def get_payments(
    status: Optional[str] = Query(None),
    client: Optional[int] = Query(None),
    current_user: User = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service),
):
    return [PaymentResponse(**payment_to_dict(p)) for p in service.get_payments(status, client)]


@router.post("", response_model=PaymentResponse)
async def create_payment(
    data: PaymentCreate,
    current_user: User = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service),
):
    """Record a deposit manually"""
    return PaymentResponse(**payment_to_dict(service.create_payment(data, current_user.id)))


@router.get("/candidates", response_model=CandidatesResponse)
async def get_payment_candidates(
    paymentId: int = Query(...),
    current_user: User = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service),
):
    """Up to 10 jobs this payment may be for, closest completion date first"""
    return {"candidates": service.find_candidates(paymentId)}


@router.post("/confirm", response_model=ConfirmMatchResponse)
async def confirm_payment_match(
    data: ConfirmMatchRequest,
    current_user: User = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service),
):
    return service.confirm_match(data.paymentId, data.jobId, current_user.id)


@router.post("/import-csv", response_model=CsvImportResponse)
async def import_payments_csv(
    csv_file: UploadFile = File(..., alias="csv"),
    clientId: int = Form(...),
    current_user: User = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service),
):
    """Import a bank export as unmatched payments for one client"""
    content = await csv_file.read()
    if len(content) > MAX_CSV_BYTES:
        raise HTTPException(status_code=400, detail="CSV file is too large")
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise HTTPException(status_code=400, detail="CSV must be UTF-8 encoded") from e

    logger.info(f"📥 CSV payment import ({len(content)} bytes) for client {clientId}")
    return service.import_csv(text, clientId, current_user.id)
