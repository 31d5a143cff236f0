"""Client domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_email, validate_us_phone


class NotificationPreferences(BaseModel):
    enableNotifications: bool = False
    notificationEmail: Optional[str] = None
    notificationPhone: Optional[str] = None
    notifyOnScheduled: bool = True
    notifyOnCompleted: bool = True
    notifyOnDelivered: bool = True
    notifyOnScanCompleted: bool = False
    notifyOnUploadCompleted: bool = False
    notifyOnQcCompleted: bool = False
    notifyOnTransferCompleted: bool = False
    notifyOnFloorplanCompleted: bool = False
    notifyOnPhotosCompleted: bool = False
    notifyOnAsbuiltsCompleted: bool = False
    customMessage: Optional[str] = None

    @field_validator("notificationEmail")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("notificationPhone")
    @classmethod
    def check_phone(cls, v):
        if v:
            return validate_us_phone(v)
        return v


class InvoicingPreferences(BaseModel):
    terms: str = "net-30"
    taxRate: float = 0
    taxExempt: bool = False
    invoiceNotes: str = ""

    @field_validator("terms")
    @classmethod
    def check_terms(cls, v):
        allowed = ("due-on-receipt", "net-15", "net-30", "net-45", "net-60")
        if v not in allowed:
            raise ValueError(f"terms must be one of {', '.join(allowed)}")
        return v


class ClientCreate(BaseModel):
    """Schema for creating a new client"""

    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    companyName: Optional[str] = None
    clientType: Optional[str] = None
    billingAddress: Optional[str] = None
    notes: Optional[str] = None
    defaultWorkflow: Optional[int] = None
    invoicingPreferences: Optional[InvoicingPreferences] = None
    notificationPreferences: Optional[NotificationPreferences] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_us_phone(v)
        return v


class ClientUpdate(BaseModel):
    """Schema for updating an existing client"""

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    companyName: Optional[str] = None
    clientType: Optional[str] = None
    billingAddress: Optional[str] = None
    notes: Optional[str] = None
    defaultWorkflow: Optional[int] = None
    invoicingPreferences: Optional[InvoicingPreferences] = None
    notificationPreferences: Optional[NotificationPreferences] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_us_phone(v)
        return v


class ClientResponse(BaseModel):
    """Schema for client response"""

    id: int
    name: str
    email: Optional[str]
    phone: Optional[str]
    companyName: Optional[str]
    clientType: Optional[str]
    billingAddress: Optional[str]
    notes: Optional[str]
    defaultWorkflow: Optional[int]
    invoicingPreferences: dict
    notificationPreferences: dict
    created_at: Optional[datetime] = None
