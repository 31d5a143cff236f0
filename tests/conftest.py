import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("RESEND_API_KEY", "re_test")
os.environ.setdefault("SERVER_URL", "http://oms.test")


import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from oms import models, models_invoice, models_outbox  # noqa: E402,F401
from oms.auth import get_current_user  # noqa: E402
from oms.database import Base, SessionLocal, engine  # noqa: E402
from oms.domain.workflows.context import JobChangeContext  # noqa: E402
from oms.models import (  # noqa: E402
    Client,
    Job,
    NotificationTemplate,
    Product,
    Technician,
    User,
    WorkflowTemplate,
    default_invoicing_preferences,
    default_notification_preferences,
)


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def make_user(db_session):
    counter = {"n": 0}

    def _make_user(role: str = "ops-manager", email: str = None, **kwargs) -> User:
        counter["n"] += 1
        user = User(
            email=email or f"user{counter['n']}@example.com",
            full_name=kwargs.pop("full_name", f"User {counter['n']}"),
            role=role,
            **kwargs,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def admin_user(make_user):
    return make_user(role="super-admin", email="admin@example.com")


@pytest.fixture
def make_technician(db_session):
    def _make_technician(name: str = "Tech One", user: User = None) -> Technician:
        tech = Technician(name=name, email=None, user_id=user.id if user else None)
        db_session.add(tech)
        db_session.commit()
        db_session.refresh(tech)
        return tech

    return _make_technician


@pytest.fixture
def make_template(db_session):
    def _make_template(name: str = "Standard Scan", steps: list = None, **kwargs) -> WorkflowTemplate:
        template = WorkflowTemplate(name=name, steps=steps or [], is_active=True, **kwargs)
        db_session.add(template)
        db_session.commit()
        db_session.refresh(template)
        return template

    return _make_template


@pytest.fixture
def make_client(db_session):
    def _make_client(
        name: str = "Acme Realty",
        email: str = "office@acme.example.com",
        default_workflow: WorkflowTemplate = None,
        notification_preferences: dict = None,
        invoicing_preferences: dict = None,
    ) -> Client:
        client = Client(
            name=name,
            email=email,
            default_workflow_id=default_workflow.id if default_workflow else None,
            notification_preferences={
                **default_notification_preferences(),
                **(notification_preferences or {}),
            },
            invoicing_preferences={
                **default_invoicing_preferences(),
                **(invoicing_preferences or {}),
            },
        )
        db_session.add(client)
        db_session.commit()
        db_session.refresh(client)
        return client

    return _make_client


@pytest.fixture
def make_product(db_session):
    def _make_product(
        name: str = "Matterport Scan", base_price: float = 100.0, unit_type: str = "flat", taxable: bool = True
    ) -> Product:
        product = Product(name=name, base_price=base_price, unit_type=unit_type, taxable=taxable)
        db_session.add(product)
        db_session.commit()
        db_session.refresh(product)
        return product

    return _make_product


@pytest.fixture
def make_job(db_session):
    counter = {"n": 1000}

    def _make_job(client: Client = None, **kwargs) -> Job:
        counter["n"] += 1
        job = Job(
            job_id=kwargs.pop("job_id", f"JOB-{counter['n']}"),
            model_name=kwargs.pop("model_name", "123 Main St"),
            client_id=client.id if client else None,
            status=kwargs.pop("status", "request"),
            invoice_status=kwargs.pop("invoice_status", "not-invoiced"),
            workflow_steps=kwargs.pop("workflow_steps", []),
            line_items=kwargs.pop("line_items", []),
            external_expenses=kwargs.pop("external_expenses", []),
            **kwargs,
        )
        db_session.add(job)
        db_session.commit()
        db_session.refresh(job)
        return job

    return _make_job


@pytest.fixture
def make_notification_template(db_session):
    def _make_notification_template(
        type: str = "scan-completed",
        subject: str = "Scan complete for {{jobNumber}}",
        body: str = "Hi {{clientName}}, {{location}} was scanned. {{customMessage}}",
        **kwargs,
    ) -> NotificationTemplate:
        template = NotificationTemplate(
            name=kwargs.pop("name", f"{type} template"),
            type=type,
            subject=subject,
            body=body,
            active=kwargs.pop("active", True),
            default_template=kwargs.pop("default_template", False),
        )
        db_session.add(template)
        db_session.commit()
        db_session.refresh(template)
        return template

    return _make_notification_template


@pytest.fixture
def update_ctx(db_session):
    def _update_ctx(original: dict, user: User = None) -> JobChangeContext:
        return JobChangeContext(db=db_session, operation="update", original=original, user=user)

    return _update_ctx


@pytest.fixture
def create_ctx(db_session):
    def _create_ctx(user: User = None) -> JobChangeContext:
        return JobChangeContext(db=db_session, operation="create", original=None, user=user)

    return _create_ctx


@pytest.fixture
def sent_emails(monkeypatch):
    """Capture outgoing email instead of calling Resend"""
    from oms import email_service

    sent = []

    async def fake_send_email(to, subject, mjml_content, from_address=None):
        sent.append({"to": to, "subject": subject})
        return {"id": f"email-{len(sent)}"}

    monkeypatch.setattr(email_service, "send_email", fake_send_email)
    return sent


@pytest.fixture
def api_client(db_session, admin_user):
    from oms.database import get_db
    from oms.main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: admin_user
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()

