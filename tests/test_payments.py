from datetime import datetime

import pytest
from fastapi import HTTPException

from oms.domain.payments.service import PaymentService
from oms.models import Job
from oms.models_invoice import Invoice, Payment


@pytest.fixture
def payment_setup(db_session, make_client, make_product, make_job):
    client = make_client()
    product = make_product(name="Matterport Scan", base_price=500)

    def _payment(amount: float, payment_date=datetime(2026, 3, 10), client_=None) -> Payment:
        payment = Payment(
            client_id=(client_ or client).id,
            amount=amount,
            payment_date=payment_date,
            source="manual",
            status="unmatched",
        )
        db_session.add(payment)
        db_session.commit()
        db_session.refresh(payment)
        return payment

    def _done_job(completed_at=datetime(2026, 3, 8), client_=None, **kwargs) -> Job:
        return make_job(
            client=client_ or client,
            status="done",
            invoice_status="ready",
            completed_at=completed_at,
            line_items=[{"product": product.id, "quantity": 1}],
            **kwargs,
        )

    return client, _payment, _done_job


def test_exact_payment_has_zero_delta_and_confirms(db_session, payment_setup, admin_user):
    client, make_payment, make_done_job = payment_setup
    job = make_done_job()
    payment = make_payment(500)
    service = PaymentService(db_session)

    candidates = service.find_candidates(payment.id)

    assert candidates == [
        {
            "id": job.id,
            "jobId": job.job_id,
            "completedAt": job.completed_at,
            "quotedTotal": 500.0,
            "delta": 0.0,
        }
    ]

    result = service.confirm_match(payment.id, job.id, admin_user.id)

    db_session.refresh(payment)
    db_session.refresh(job)
    invoice = db_session.query(Invoice).one()
    assert result["invoice"] == {"id": invoice.id, "total": 500.0}
    assert payment.status == "matched"
    assert payment.matched_job_id == job.id
    assert payment.matched_invoice_id == invoice.id
    assert invoice.status == "paid"
    assert invoice.paid_amount == 500
    assert job.invoice_status == "paid"
    assert job.invoice_id == invoice.id


def test_delta_is_quote_minus_payment(db_session, payment_setup):
    _, make_payment, make_done_job = payment_setup
    make_done_job()
    payment = make_payment(450.255)

    [candidate] = PaymentService(db_session).find_candidates(payment.id)

    assert candidate["delta"] == pytest.approx(49.74, abs=0.01)


def test_quote_includes_client_tax_on_whole_amount(db_session, payment_setup, make_client):
    _, make_payment, make_done_job = payment_setup
    taxed = make_client(name="Taxed", invoicing_preferences={"taxRate": 10})
    make_done_job(client_=taxed)
    payment = make_payment(550, client_=taxed)

    [candidate] = PaymentService(db_session).find_candidates(payment.id)

    assert candidate["quotedTotal"] == 550
    assert candidate["delta"] == 0


def test_candidates_are_ranked_by_date_proximity(db_session, payment_setup, make_job):
    client, make_payment, make_done_job = payment_setup
    far = make_done_job(completed_at=datetime(2026, 1, 1))
    near = make_done_job(completed_at=datetime(2026, 3, 9))
    middle = make_done_job(completed_at=datetime(2026, 3, 1))
    make_job(client=client, status="done", invoice_status="invoiced")
    make_job(client=client, status="qc", invoice_status="ready")
    payment = make_payment(500, payment_date=datetime(2026, 3, 10))

    candidates = PaymentService(db_session).find_candidates(payment.id)

    assert [c["id"] for c in candidates] == [near.id, middle.id, far.id]


def test_candidates_capped_at_ten(db_session, payment_setup):
    _, make_payment, make_done_job = payment_setup
    for day in range(1, 13):
        make_done_job(completed_at=datetime(2026, 3, day))
    payment = make_payment(500)

    assert len(PaymentService(db_session).find_candidates(payment.id)) == 10


def test_candidates_for_matched_payment_rejected(db_session, payment_setup):
    _, make_payment, _ = payment_setup
    payment = make_payment(500)
    payment.status = "matched"
    db_session.commit()

    with pytest.raises(HTTPException) as exc:
        PaymentService(db_session).find_candidates(payment.id)
    assert exc.value.status_code == 400

    with pytest.raises(HTTPException) as exc:
        PaymentService(db_session).find_candidates(9999)
    assert exc.value.status_code == 404


def test_confirm_rejects_other_clients_job(db_session, payment_setup, make_client):
    _, make_payment, make_done_job = payment_setup
    other = make_client(name="Other")
    job = make_done_job(client_=other)
    payment = make_payment(500)

    with pytest.raises(HTTPException) as exc:
        PaymentService(db_session).confirm_match(payment.id, job.id)

    assert exc.value.status_code == 400
    assert db_session.query(Invoice).count() == 0


def test_confirm_rejects_job_not_ready(db_session, payment_setup, make_job):
    client, make_payment, _ = payment_setup
    job = make_job(client=client, status="done", invoice_status="not-invoiced")
    payment = make_payment(500)

    with pytest.raises(HTTPException) as exc:
        PaymentService(db_session).confirm_match(payment.id, job.id)
    assert exc.value.status_code == 400

    with pytest.raises(HTTPException) as exc:
        PaymentService(db_session).confirm_match(payment.id, 9999)
    assert exc.value.status_code == 404


def test_csv_import(db_session, payment_setup, admin_user):
    client, _, _ = payment_setup
    csv_text = (
        "Deposit Date,Amount,Check Number,Memo\n"
        '2026-03-10,"$1,250.00",1042,March scans\n'
        "03/12/2026,300,1043,\n"
        "2026-03-13,-5,1044,refund\n"
        "not a date,100,1045,\n"
        "\n"
    )

    result = PaymentService(db_session).import_csv(csv_text, client.id, admin_user.id)

    assert result["created"] == 2
    assert result["errors"] == [
        'Row 4: invalid amount "-5"',
        'Row 5: invalid date "not a date"',
    ]
    payments = db_session.query(Payment).order_by(Payment.id).all()
    assert [(p.amount, p.reference_number, p.source, p.status) for p in payments] == [
        (1250.0, "1042", "csv-import", "unmatched"),
        (300.0, "1043", "csv-import", "unmatched"),
    ]
    assert payments[0].payment_date == datetime(2026, 3, 10)
    assert payments[0].notes == "March scans"
    assert payments[0].imported_by_id == admin_user.id


def test_csv_import_requires_amount_and_date_columns(db_session, payment_setup):
    client, _, _ = payment_setup
    service = PaymentService(db_session)

    with pytest.raises(HTTPException) as exc:
        service.import_csv("Date,Memo\n2026-03-10,hi\n", client.id)
    assert "amount" in exc.value.detail

    with pytest.raises(HTTPException) as exc:
        service.import_csv("Amount,Memo\n10,hi\n", client.id)
    assert "date" in exc.value.detail

    with pytest.raises(HTTPException) as exc:
        service.import_csv("Amount,Date\n", client.id)
    assert exc.value.status_code == 400


def test_payment_routes(api_client, db_session, payment_setup):
    client, _, make_done_job = payment_setup
    job = make_done_job(completed_at=datetime(2026, 3, 9))

    upload = api_client.post(
        "/payments/import-csv",
        files={"csv": ("deposits.csv", b"Date,Amount,Reference\n2026-03-10,500.00,DEP-1\n", "text/csv")},
        data={"clientId": str(client.id)},
    )
    assert upload.status_code == 200, upload.text
    [imported] = upload.json()["payments"]
    assert imported["referenceNumber"] == "DEP-1"

    candidates = api_client.get("/payments/candidates", params={"paymentId": imported["id"]})
    assert candidates.json()["candidates"][0]["delta"] == 0

    confirmed = api_client.post("/payments/confirm", json={"paymentId": imported["id"], "jobId": job.id})
    assert confirmed.status_code == 200, confirmed.text
    assert confirmed.json()["success"] is True

    matched = api_client.get("/payments", params={"status": "matched"}).json()
    assert [p["matchedJob"] for p in matched] == [job.id]
