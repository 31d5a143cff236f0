"""Client service - Business logic for client operations"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import (
    Client,
    WorkflowTemplate,
    default_invoicing_preferences,
    default_notification_preferences,
)
from .repository import ClientRepository
from .schemas import ClientCreate, ClientResponse, ClientUpdate

logger = logging.getLogger(__name__)


def to_response(client: Client) -> ClientResponse:
    return ClientResponse(
        id=client.id,
        name=client.name,
        email=client.email,
        phone=client.phone,
        companyName=client.company_name,
        clientType=client.client_type,
        billingAddress=client.billing_address,
        notes=client.notes,
        defaultWorkflow=client.default_workflow_id,
        invoicingPreferences={**default_invoicing_preferences(), **(client.invoicing_preferences or {})},
        notificationPreferences={
            **default_notification_preferences(),
            **(client.notification_preferences or {}),
        },
        created_at=client.created_at,
    )


class ClientService:
    """Service layer for client business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ClientRepository()

    def get_clients(self, search: Optional[str] = None) -> list[Client]:
        return self.repo.get_clients(self.db, search)

    def get_client(self, client_id: int) -> Client:
        client = self.repo.get_client_by_id(self.db, client_id)
        if not client:
            raise HTTPException(status_code=404, detail="Client not found")
        return client

    def _check_workflow(self, workflow_id: Optional[int]) -> None:
        if workflow_id is None:
            return
        exists = self.db.query(WorkflowTemplate.id).filter(WorkflowTemplate.id == workflow_id).first()
        if not exists:
            raise HTTPException(status_code=400, detail="Default workflow template not found")

    def create_client(self, data: ClientCreate) -> Client:
        """Create a new client with validation"""
        logger.info(f"📥 Creating client '{data.name}'")
        self._check_workflow(data.defaultWorkflow)

        client_data = {
            "name": data.name,
            "email": data.email,
            "phone": data.phone,
            "company_name": data.companyName,
            "client_type": data.clientType,
            "billing_address": data.billingAddress,
            "notes": data.notes,
            "default_workflow_id": data.defaultWorkflow,
            "invoicing_preferences": (
                data.invoicingPreferences.model_dump()
                if data.invoicingPreferences
                else default_invoicing_preferences()
            ),
            "notification_preferences": (
                data.notificationPreferences.model_dump()
                if data.notificationPreferences
                else default_notification_preferences()
            ),
        }
        return self.repo.create_client(self.db, **client_data)

    def update_client(self, client_id: int, data: ClientUpdate) -> Client:
        client = self.get_client(client_id)

        updates = {}
        if data.name is not None:
            updates["name"] = data.name
        if data.email is not None:
            updates["email"] = data.email
        if data.phone is not None:
            updates["phone"] = data.phone
        if data.companyName is not None:
            updates["company_name"] = data.companyName
        if data.clientType is not None:
            updates["client_type"] = data.clientType
        if data.billingAddress is not None:
            updates["billing_address"] = data.billingAddress
        if data.notes is not None:
            updates["notes"] = data.notes
        if data.defaultWorkflow is not None:
            self._check_workflow(data.defaultWorkflow)
            updates["default_workflow_id"] = data.defaultWorkflow
        if data.invoicingPreferences is not None:
            updates["invoicing_preferences"] = data.invoicingPreferences.model_dump()
        if data.notificationPreferences is not None:
            updates["notification_preferences"] = data.notificationPreferences.model_dump()

        # Clearing the default workflow is an explicit null
        if "defaultWorkflow" in data.model_fields_set and data.defaultWorkflow is None:
            client.default_workflow_id = None

        return self.repo.update_client(self.db, client, **updates)

    def delete_client(self, client_id: int) -> dict:
        client = self.get_client(client_id)

        job_count = self.repo.count_jobs(self.db, client.id)
        if job_count:
            raise HTTPException(
                status_code=400, detail=f"Client has {job_count} job(s) and cannot be deleted"
            )

        self.repo.delete_client(self.db, client)
        return {"message": "Client deleted"}
