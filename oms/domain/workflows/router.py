"""Workflow template router - FastAPI endpoints for workflow templates"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin
from ...database import get_db
from ...models import User, WorkflowTemplate
from .schemas import WorkflowTemplateCreate, WorkflowTemplateResponse, WorkflowTemplateUpdate
from .service import WorkflowTemplateService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workflow-templates", tags=["Workflow Templates"])


def get_workflow_service(db: Session = Depends(get_db)) -> WorkflowTemplateService:
    """Dependency injection for WorkflowTemplateService"""
    return WorkflowTemplateService(db)


def to_response(template: WorkflowTemplate) -> WorkflowTemplateResponse:
    return WorkflowTemplateResponse(
        id=template.id,
        name=template.name,
        jobType=template.job_type,
        isActive=template.is_active,
        description=template.description,
        steps=template.steps or [],
        created_at=template.created_at,
    )


@router.get("", response_model=list[WorkflowTemplateResponse])
async def get_templates(
    activeOnly: bool = Query(False),
    current_user: User = Depends(get_current_user),
    service: WorkflowTemplateService = Depends(get_workflow_service),
):
    return [to_response(t) for t in service.get_templates(activeOnly)]


@router.get("/{template_id}", response_model=WorkflowTemplateResponse)
async def get_template(
    template_id: int,
    current_user: User = Depends(get_current_user),
    service: WorkflowTemplateService = Depends(get_workflow_service),
):
    return to_response(service.get_template(template_id))


@router.post("", response_model=WorkflowTemplateResponse)
async def create_template(
    data: WorkflowTemplateCreate,
    current_user: User = Depends(require_admin),
    service: WorkflowTemplateService = Depends(get_workflow_service),
):
    return to_response(service.create_template(data))


@router.patch("/{template_id}", response_model=WorkflowTemplateResponse)
async def update_template(
    template_id: int,
    data: WorkflowTemplateUpdate,
    current_user: User = Depends(require_admin),
    service: WorkflowTemplateService = Depends(get_workflow_service),
):
    return to_response(service.update_template(template_id, data))


@router.delete("/{template_id}")
async def delete_template(
    template_id: int,
    current_user: User = Depends(require_admin),
    service: WorkflowTemplateService = Depends(get_workflow_service),
):
    return service.delete_template(template_id)
