"""Workflow template service - Business logic for workflow templates"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Client, Job, WorkflowTemplate
from .repository import WorkflowTemplateRepository
from .schemas import WorkflowTemplateCreate, WorkflowTemplateUpdate

logger = logging.getLogger(__name__)


class WorkflowTemplateService:
    """Service layer for workflow template business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = WorkflowTemplateRepository()

    def get_templates(self, active_only: bool = False) -> list[WorkflowTemplate]:
        return self.repo.get_templates(self.db, active_only)

    def get_template(self, template_id: int) -> WorkflowTemplate:
        template = self.repo.get_template_by_id(self.db, template_id)
        if not template:
            raise HTTPException(status_code=404, detail="Workflow template not found")
        return template

    def create_template(self, data: WorkflowTemplateCreate) -> WorkflowTemplate:
        logger.info(f"📥 Creating workflow template '{data.name}' with {len(data.steps)} steps")
        return self.repo.create_template(
            self.db,
            name=data.name,
            job_type=data.jobType,
            is_active=data.isActive,
            description=data.description,
            steps=[step.model_dump() for step in data.steps],
        )

    def update_template(self, template_id: int, data: WorkflowTemplateUpdate) -> WorkflowTemplate:
        """
        Update a template. Jobs that already materialized its steps keep the
        steps they were given.
        """
        template = self.get_template(template_id)
        updates = {
            "name": data.name,
            "job_type": data.jobType,
            "is_active": data.isActive,
            "description": data.description,
        }
        if data.steps is not None:
            updates["steps"] = [step.model_dump() for step in data.steps]
        return self.repo.update_template(self.db, template, **updates)

    def delete_template(self, template_id: int) -> dict:
        template = self.get_template(template_id)

        in_use = self.db.query(Client).filter(Client.default_workflow_id == template.id).count()
        if in_use:
            raise HTTPException(
                status_code=400,
                detail=f"Template is the default workflow for {in_use} client(s)",
            )

        job_count = self.db.query(Job).filter(Job.workflow_template_id == template.id).count()
        if job_count:
            raise HTTPException(
                status_code=400,
                detail=f"Template is assigned to {job_count} job(s)",
            )

        self.repo.delete_template(self.db, template)
        return {"message": "Workflow template deleted"}
