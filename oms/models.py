from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

USER_ROLES = (
    "super-admin",
    "sales-admin",
    "ops-manager",
    "tech",
    "client-partner",
    "post-producer",
)

ADMIN_ROLES = ("super-admin", "sales-admin", "ops-manager")

JOB_STATUSES = ("request", "scheduled", "scanned", "qc", "done", "archived")

INVOICE_STATUSES = ("not-invoiced", "ready", "invoiced", "paid")


def default_notification_preferences() -> dict:
    return {
        "enableNotifications": False,
        "notificationEmail": None,
        "notificationPhone": None,
        "notifyOnScheduled": True,
        "notifyOnCompleted": True,
        "notifyOnDelivered": True,
        "notifyOnScanCompleted": False,
        "notifyOnUploadCompleted": False,
        "notifyOnQcCompleted": False,
        "notifyOnTransferCompleted": False,
        "notifyOnFloorplanCompleted": False,
        "notifyOnPhotosCompleted": False,
        "notifyOnAsbuiltsCompleted": False,
        "customMessage": None,
    }


def default_invoicing_preferences() -> dict:
    return {"terms": "net-30", "taxRate": 0, "taxExempt": False, "invoiceNotes": ""}


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    role = Column(String(50), nullable=False, default="tech")  # one of USER_ROLES
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    technician = relationship("Technician", back_populates="user", uselist=False)
    notifications = relationship("Notification", back_populates="user")


class Technician(Base):
    __tablename__ = "technicians"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    # Linked login account; notifications for the "tech" recipient go here
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="technician")
    jobs = relationship("Job", back_populates="tech")


class WorkflowTemplate(Base):
    __tablename__ = "workflow_templates"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    job_type = Column(String(50), nullable=True)  # outsourced-scan-only, direct-scan-hosted, ...
    is_active = Column(Boolean, default=True, nullable=False)
    description = Column(Text, nullable=True)
    # [{"name", "description", "order", "statusMapping", "requiredRole", "actionLabel",
    #   "requiresDeliverables", "triggers": {...}}]
    steps = Column(JSON, default=list, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    company_name = Column(String(255), nullable=True)
    client_type = Column(String(50), nullable=True)  # partner, direct, ...
    billing_address = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    default_workflow_id = Column(Integer, ForeignKey("workflow_templates.id"), nullable=True)
    invoicing_preferences = Column(JSON, default=default_invoicing_preferences, nullable=True)
    notification_preferences = Column(
        JSON, default=default_notification_preferences, nullable=True
    )
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    default_workflow = relationship("WorkflowTemplate")
    jobs = relationship("Job", back_populates="client")
    payments = relationship("Payment", back_populates="client")
    invoices = relationship("Invoice", back_populates="client")


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    base_price = Column(Float, default=0, nullable=False)
    unit_type = Column(String(20), default="flat", nullable=False)  # flat, per-sq-ft, hourly
    taxable = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class Job(Base):
    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(String(50), unique=True, index=True, nullable=False)  # e.g. JOB-1001
    model_name = Column(String(255), nullable=True)
    status = Column(String(20), default="request", nullable=False)
    invoice_status = Column(String(20), default="not-invoiced", nullable=False)
    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=True)
    invoiced_at = Column(DateTime, nullable=True)

    client_id = Column(Integer, ForeignKey("clients.id"), nullable=True, index=True)
    tech_id = Column(Integer, ForeignKey("technicians.id"), nullable=True)

    capture_address = Column(String(500), nullable=True)
    city = Column(String(255), nullable=True)
    state = Column(String(50), nullable=True)
    sq_ft = Column(Float, nullable=True)
    target_date = Column(DateTime, nullable=True)
    scanned_date = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    upload_link = Column(String(500), nullable=True)

    workflow_template_id = Column(Integer, ForeignKey("workflow_templates.id"), nullable=True)
    # [{"stepName", "completed", "completedAt", "completedBy", "notes"}]
    workflow_steps = Column(JSON, default=list, nullable=False)

    # Financial inputs
    line_items = Column(JSON, default=list, nullable=False)  # [{"product": id, "quantity": n}]
    external_expenses = Column(JSON, default=list, nullable=False)
    discount = Column(JSON, nullable=True)  # {"type": none|fixed|percentage, "value", "amount"}
    vendor_price = Column(Float, nullable=True)
    travel_payout = Column(Float, nullable=True)
    off_hours_payout = Column(Float, nullable=True)

    # Derived on every write
    subtotal = Column(Float, nullable=True)
    tax_amount = Column(Float, nullable=True)
    total_with_tax = Column(Float, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client = relationship("Client", back_populates="jobs")
    tech = relationship("Technician", back_populates="jobs")
    workflow_template = relationship("WorkflowTemplate")
    invoice = relationship("Invoice", foreign_keys=[invoice_id])


class Notification(Base):
    """In-app notification shown to staff users"""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String(50), default="info", nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=True)
    related_job_id = Column(Integer, ForeignKey("jobs.id"), nullable=True)
    action_url = Column(String(500), nullable=True)
    read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="notifications")


class NotificationTemplate(Base):
    """Client-facing email template for job notifications"""

    __tablename__ = "notification_templates"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    type = Column(String(50), nullable=False, index=True)  # scheduled, scan-completed, ...
    subject = Column(String(500), nullable=False)
    body = Column(Text, nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    default_template = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
