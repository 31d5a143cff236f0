from datetime import timedelta

import pytest
from fastapi import HTTPException

from oms.domain.invoices.service import (
    InvoiceGenerationError,
    InvoiceService,
    calculate_invoice_totals,
    generate_invoice_from_jobs,
)
from oms.models_invoice import Invoice


@pytest.fixture
def billable(make_client, make_product, make_job):
    client = make_client(invoicing_preferences={"terms": "net-15", "taxRate": 10, "invoiceNotes": "Thanks!"})
    scan = make_product(name="Matterport Scan", base_price=300, taxable=True)
    travel = make_product(name="Travel", base_price=50, taxable=False)

    def _job(client_=None, **kwargs):
        kwargs.setdefault("status", "done")
        kwargs.setdefault("invoice_status", "ready")
        kwargs.setdefault(
            "line_items", [{"product": scan.id, "quantity": 1}, {"product": str(travel.id), "quantity": 2}]
        )
        return make_job(client=client_ or client, **kwargs)

    return client, _job


def test_totals_tax_only_taxable_lines():
    totals = calculate_invoice_totals(
        [{"amount": 300, "taxable": True}, {"amount": 100, "taxable": False}], tax_rate=8.25
    )
    assert totals == {"subtotal": 400, "taxAmount": 24.75, "total": 424.75}

    exempt = calculate_invoice_totals([{"amount": 300, "taxable": True}], tax_rate=8.25, tax_exempt=True)
    assert exempt == {"subtotal": 300, "taxAmount": 0, "total": 300}


def test_generate_invoice(db_session, billable, admin_user):
    client, make_billable_job = billable
    first = make_billable_job()
    second = make_billable_job()

    invoice = generate_invoice_from_jobs(db_session, [first.id, second.id], admin_user.id)

    assert invoice.status == "draft"
    assert invoice.client_id == client.id
    assert invoice.job_ids == [first.id, second.id]
    assert invoice.subtotal == 800
    assert invoice.tax_rate == 10
    assert invoice.tax_amount == 60
    assert invoice.total == 860
    assert invoice.terms == "net-15"
    assert invoice.notes == "Thanks!"
    assert invoice.due_date - invoice.invoice_date == timedelta(days=15)
    assert invoice.line_items[0]["description"] == f"Matterport Scan - Job #{first.job_id}"
    assert invoice.line_items[1]["taxable"] is False

    for job in (first, second):
        db_session.refresh(job)
        assert job.invoice_status == "invoiced"
        assert job.invoice_id == invoice.id
        assert job.invoiced_at is not None


def test_generate_rejects_mixed_clients(db_session, billable, make_client):
    _, make_billable_job = billable
    other = make_client(name="Other")

    with pytest.raises(InvoiceGenerationError, match="same client"):
        generate_invoice_from_jobs(db_session, [make_billable_job().id, make_billable_job(client_=other).id])


@pytest.mark.parametrize(
    "status, invoice_status",
    [("qc", "ready"), ("done", "not-invoiced"), ("done", "invoiced")],
)
def test_generate_rejects_unready_jobs(db_session, billable, status, invoice_status):
    _, make_billable_job = billable
    job = make_billable_job(status=status, invoice_status=invoice_status)

    with pytest.raises(InvoiceGenerationError, match=job.job_id):
        generate_invoice_from_jobs(db_session, [job.id])


def test_generate_rejects_missing_and_empty(db_session, billable):
    _, make_billable_job = billable

    with pytest.raises(InvoiceGenerationError, match="At least one"):
        generate_invoice_from_jobs(db_session, [])
    with pytest.raises(InvoiceGenerationError, match="not found"):
        generate_invoice_from_jobs(db_session, [9999])
    with pytest.raises(InvoiceGenerationError, match="No line items"):
        generate_invoice_from_jobs(db_session, [make_billable_job(line_items=[]).id])


def test_service_maps_generation_errors_to_400(db_session):
    with pytest.raises(HTTPException) as exc:
        InvoiceService(db_session).generate([9999], None)
    assert exc.value.status_code == 400


def test_approve_only_from_draft(db_session, billable):
    _, make_billable_job = billable
    invoice = generate_invoice_from_jobs(db_session, [make_billable_job().id])
    service = InvoiceService(db_session)

    assert service.approve(invoice.id).status == "approved"
    with pytest.raises(HTTPException) as exc:
        service.approve(invoice.id)
    assert exc.value.status_code == 400


def test_void_releases_jobs(db_session, billable):
    _, make_billable_job = billable
    job = make_billable_job()
    invoice = generate_invoice_from_jobs(db_session, [job.id])

    voided = InvoiceService(db_session).void(invoice.id)

    db_session.refresh(job)
    assert voided.status == "void"
    assert job.invoice_status == "ready"
    assert job.invoice_id is None
    assert job.invoiced_at is None


def test_paid_invoice_cannot_be_voided(db_session, billable):
    _, make_billable_job = billable
    invoice = generate_invoice_from_jobs(db_session, [make_billable_job().id])
    invoice.status = "paid"
    db_session.commit()

    with pytest.raises(HTTPException) as exc:
        InvoiceService(db_session).void(invoice.id)
    assert exc.value.status_code == 400


def test_ready_to_invoice_groups_by_client(db_session, billable, make_client):
    client, make_billable_job = billable
    other = make_client(name="Other")
    make_billable_job()
    make_billable_job()
    make_billable_job(client_=other)
    make_billable_job(invoice_status="invoiced")

    summary = InvoiceService(db_session).ready_to_invoice()

    assert summary["totalJobs"] == 3
    assert summary["clients"] == 2
    assert len(summary["jobsByClient"][str(client.id)]) == 2


def test_invoice_routes(api_client, db_session, billable):
    _, make_billable_job = billable
    job = make_billable_job()

    ready = api_client.get("/invoices/ready-to-invoice")
    assert ready.status_code == 200
    assert ready.json()["totalJobs"] == 1

    response = api_client.post("/invoices/generate", json={"jobIds": [job.id]})
    assert response.status_code == 200, response.text
    invoice_id = response.json()["id"]
    assert response.json()["total"] == 430

    assert api_client.post(f"/invoices/{invoice_id}/approve").json()["status"] == "approved"
    assert api_client.post(f"/invoices/{invoice_id}/void").json()["status"] == "void"
    assert db_session.query(Invoice).count() == 1

    missing = api_client.post("/invoices/generate", json={"jobIds": [9999]})
    assert missing.status_code == 400
