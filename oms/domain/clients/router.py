"""Client router - FastAPI endpoints for client operations"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin
from ...database import get_db
from ...models import User
from .schemas import ClientCreate, ClientResponse, ClientUpdate
from .service import ClientService, to_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clients", tags=["Clients"])


def get_client_service(db: Session = Depends(get_db)) -> ClientService:
    """Dependency injection for ClientService"""
    return ClientService(db)


@router.get("", response_model=list[ClientResponse])
async def get_clients(
    search: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: ClientService = Depends(get_client_service),
):
    return [to_response(c) for c in service.get_clients(search)]


@router.get("/{client_id}", response_model=ClientResponse)
async def get_client(
    client_id: int,
    current_user: User = Depends(get_current_user),
    service: ClientService = Depends(get_client_service),
):
    return to_response(service.get_client(client_id))


@router.post("", response_model=ClientResponse)
async def create_client(
    data: ClientCreate,
    current_user: User = Depends(require_admin),
    service: ClientService = Depends(get_client_service),
):
    """Create a new client"""
    return to_response(service.create_client(data))


@router.patch("/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: int,
    data: ClientUpdate,
    current_user: User = Depends(require_admin),
    service: ClientService = Depends(get_client_service),
):
    """Update a client, including notification and invoicing preferences"""
    return to_response(service.update_client(client_id, data))


@router.delete("/{client_id}")
async def delete_client(
    client_id: int,
    current_user: User = Depends(require_admin),
    service: ClientService = Depends(get_client_service),
):
    return service.delete_client(client_id)
