"""Workflow template schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...models import JOB_STATUSES

JOB_TYPES = ("outsourced-scan-only", "direct-scan-hosted", "direct-scan-floorplan", "custom")


class StepTriggers(BaseModel):
    sendNotification: bool = False
    notificationRecipients: list[str] = []
    notificationMessage: Optional[str] = None
    sendClientEmail: bool = False
    emailTemplate: Optional[str] = None
    createInvoice: bool = False
    createRecurringInvoice: bool = False
    recurringInvoiceDelay: Optional[int] = None
    recurringInvoiceAmount: Optional[float] = None


class TemplateStep(BaseModel):
    name: str
    description: Optional[str] = None
    order: int = 0
    statusMapping: Optional[str] = None
    requiredRole: Optional[str] = None
    actionLabel: Optional[str] = None
    requiresDeliverables: bool = False
    triggers: StepTriggers = StepTriggers()

    @field_validator("statusMapping")
    @classmethod
    def validate_status_mapping(cls, v):
        if v and v not in JOB_STATUSES:
            raise ValueError(f"statusMapping must be one of {', '.join(JOB_STATUSES)}")
        return v or None


class WorkflowTemplateCreate(BaseModel):
    name: str
    jobType: Optional[str] = None
    isActive: bool = True
    description: Optional[str] = None
    steps: list[TemplateStep] = []

    @field_validator("jobType")
    @classmethod
    def validate_job_type(cls, v):
        if v and v not in JOB_TYPES:
            raise ValueError(f"jobType must be one of {', '.join(JOB_TYPES)}")
        return v


class WorkflowTemplateUpdate(BaseModel):
    name: Optional[str] = None
    jobType: Optional[str] = None
    isActive: Optional[bool] = None
    description: Optional[str] = None
    steps: Optional[list[TemplateStep]] = None


class WorkflowTemplateResponse(BaseModel):
    id: int
    name: str
    jobType: Optional[str]
    isActive: bool
    description: Optional[str]
    steps: list[dict]
    created_at: Optional[datetime] = None
