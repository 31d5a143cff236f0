"""Payment domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator


class PaymentCreate(BaseModel):
    client: int
    amount: float
    paymentDate: datetime
    referenceNumber: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("amount")
    @classmethod
    def check_amount(cls, v):
        if v < 0:
            raise ValueError("amount cannot be negative")
        return v


class PaymentResponse(BaseModel):
    id: int
    client: int
    amount: float
    paymentDate: datetime
    referenceNumber: Optional[str] = None
    source: str
    status: str
    matchedJob: Optional[int] = None
    matchedInvoice: Optional[int] = None
    notes: Optional[str] = None


class PaymentCandidate(BaseModel):
    id: int
    jobId: str
    completedAt: Optional[datetime] = None
    quotedTotal: float
    delta: float


class CandidatesResponse(BaseModel):
    candidates: list[PaymentCandidate]


class ConfirmMatchRequest(BaseModel):
    paymentId: int
    jobId: int


class ConfirmMatchResponse(BaseModel):
    success: bool = True
    invoice: dict
    payment: dict
    message: str


class CsvImportResponse(BaseModel):
    success: bool = True
    created: int
    errors: list[str]
    payments: list[dict]
