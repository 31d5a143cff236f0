"""Job domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, field_validator

from ...models import INVOICE_STATUSES, JOB_STATUSES


class LineItem(BaseModel):
    product: Any
    quantity: Optional[float] = None


class ExternalExpense(BaseModel):
    description: Optional[str] = None
    supplier: Optional[str] = None
    amount: Any = 0
    paymentStatus: Optional[str] = None


class Discount(BaseModel):
    type: str = "none"  # none, fixed, percentage
    value: Any = 0
    amount: Optional[float] = None


class WorkflowStepState(BaseModel):
    stepName: str
    completed: bool = False
    completedAt: Optional[str] = None
    completedBy: Any = None
    notes: Optional[str] = ""


class JobBase(BaseModel):
    modelName: Optional[str] = None
    status: Optional[str] = None
    invoiceStatus: Optional[str] = None
    client: Any = None
    tech: Any = None
    captureAddress: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    sqFt: Optional[float] = None
    targetDate: Optional[datetime] = None
    scannedDate: Optional[datetime] = None
    completedAt: Optional[datetime] = None
    uploadLink: Optional[str] = None
    workflowTemplate: Any = None
    workflowSteps: Optional[list[WorkflowStepState]] = None
    lineItems: Optional[list[LineItem]] = None
    externalExpenses: Optional[list[ExternalExpense]] = None
    discount: Optional[Discount] = None
    vendorPrice: Optional[float] = None
    travelPayout: Optional[float] = None
    offHoursPayout: Optional[float] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v is not None and v not in JOB_STATUSES:
            raise ValueError(f"status must be one of {', '.join(JOB_STATUSES)}")
        return v

    @field_validator("invoiceStatus")
    @classmethod
    def validate_invoice_status(cls, v):
        if v is not None and v not in INVOICE_STATUSES:
            raise ValueError(f"invoiceStatus must be one of {', '.join(INVOICE_STATUSES)}")
        return v


class JobCreate(JobBase):
    """Schema for creating a job; jobId is generated when omitted"""

    jobId: Optional[str] = None


class JobUpdate(JobBase):
    """Schema for partial job updates; only fields that were sent are applied"""


class StepCompleteRequest(BaseModel):
    notes: Optional[str] = None


class JobNotifyRequest(BaseModel):
    notificationType: str
    customMessage: Optional[str] = None
    customSubject: Optional[str] = None
    customBody: Optional[str] = None


class JobResponse(BaseModel):
    id: int
    jobId: str
    modelName: Optional[str] = None
    status: str
    invoiceStatus: str
    invoice: Optional[int] = None
    invoicedAt: Optional[datetime] = None
    client: Optional[int] = None
    tech: Optional[int] = None
    captureAddress: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    sqFt: Optional[float] = None
    targetDate: Optional[datetime] = None
    scannedDate: Optional[datetime] = None
    completedAt: Optional[datetime] = None
    uploadLink: Optional[str] = None
    workflowTemplate: Optional[int] = None
    workflowSteps: list[dict] = []
    lineItems: list[dict] = []
    externalExpenses: list[dict] = []
    discount: Optional[dict] = None
    vendorPrice: Optional[float] = None
    travelPayout: Optional[float] = None
    offHoursPayout: Optional[float] = None
    subtotal: Optional[float] = None
    taxAmount: Optional[float] = None
    totalWithTax: Optional[float] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
