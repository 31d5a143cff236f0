"""Workflow template repository - Database operations for workflow templates"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import WorkflowTemplate


class WorkflowTemplateRepository:
    """Repository for workflow template database operations"""

    @staticmethod
    def get_templates(db: Session, active_only: bool = False) -> list[WorkflowTemplate]:
        query = db.query(WorkflowTemplate)
        if active_only:
            query = query.filter(WorkflowTemplate.is_active.is_(True))
        return query.order_by(WorkflowTemplate.name.asc()).all()

    @staticmethod
    def get_template_by_id(db: Session, template_id) -> Optional[WorkflowTemplate]:
        if template_id is None:
            return None
        try:
            template_id = int(template_id)
        except (TypeError, ValueError):
            return None
        return db.query(WorkflowTemplate).filter(WorkflowTemplate.id == template_id).first()

    @staticmethod
    def create_template(db: Session, **template_data) -> WorkflowTemplate:
        template = WorkflowTemplate(**template_data)
        db.add(template)
        db.commit()
        db.refresh(template)
        return template

    @staticmethod
    def update_template(db: Session, template: WorkflowTemplate, **updates) -> WorkflowTemplate:
        for key, value in updates.items():
            if value is not None and hasattr(template, key):
                setattr(template, key, value)
        db.commit()
        db.refresh(template)
        return template

    @staticmethod
    def delete_template(db: Session, template: WorkflowTemplate) -> None:
        db.delete(template)
        db.commit()


def sorted_steps(template: WorkflowTemplate) -> list[dict]:
    """Template steps in execution order"""
    return sorted(template.steps or [], key=lambda s: s.get("order") or 0)


def find_template_step(template: WorkflowTemplate, step_name: str) -> Optional[dict]:
    """First template step with this exact name (names are not enforced unique)"""
    for step in template.steps or []:
        if step.get("name") == step_name:
            return step
    return None
