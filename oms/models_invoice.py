"""
Invoice and Payment Models for job invoicing and deposit reconciliation
"""

from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class Invoice(Base):
    """Invoice generated from one or more completed jobs"""

    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False)
    status = Column(String(20), default="draft", nullable=False)  # draft, approved, sent, paid, void

    job_ids = Column(JSON, default=list, nullable=False)
    # [{"description", "quantity", "rate", "amount", "taxable", "jobReference"}]
    line_items = Column(JSON, default=list, nullable=False)
    subtotal = Column(Float, default=0, nullable=False)
    tax_rate = Column(Float, default=0, nullable=False)
    tax_amount = Column(Float, default=0, nullable=False)
    total = Column(Float, default=0, nullable=False)

    invoice_date = Column(DateTime, nullable=False)
    due_date = Column(DateTime, nullable=True)
    terms = Column(String(20), default="net-30")
    notes = Column(Text, nullable=True)

    paid_amount = Column(Float, nullable=True)
    paid_date = Column(DateTime, nullable=True)

    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client = relationship("Client", back_populates="invoices")


class Payment(Base):
    """Bank deposit awaiting reconciliation against a completed job"""

    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    payment_date = Column(DateTime, nullable=False)
    reference_number = Column(String(255), nullable=True)
    source = Column(String(20), default="manual", nullable=False)  # csv-import, manual
    status = Column(String(20), default="unmatched", nullable=False)  # unmatched, matched
    matched_job_id = Column(Integer, ForeignKey("jobs.id"), nullable=True)
    matched_invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=True)
    notes = Column(Text, nullable=True)
    imported_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client = relationship("Client", back_populates="payments")
