"""Technician routes"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin
from ...database import get_db
from ...models import Technician, User
from ...shared.validators import validate_email, validate_us_phone

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/technicians", tags=["Technicians"])


class TechnicianCreate(BaseModel):
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    userId: Optional[int] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        if v:
            return validate_us_phone(v)
        return v


class TechnicianResponse(BaseModel):
    id: int
    name: str
    email: Optional[str]
    phone: Optional[str]
    userId: Optional[int]


def to_response(tech: Technician) -> TechnicianResponse:
    return TechnicianResponse(
        id=tech.id, name=tech.name, email=tech.email, phone=tech.phone, userId=tech.user_id
    )


@router.get("", response_model=list[TechnicianResponse])
async def get_technicians(
    current_user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    return [to_response(t) for t in db.query(Technician).order_by(Technician.name.asc()).all()]


@router.post("", response_model=TechnicianResponse)
async def create_technician(
    data: TechnicianCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if data.userId is not None:
        user = db.query(User).filter(User.id == data.userId).first()
        if not user:
            raise HTTPException(status_code=400, detail="Linked user not found")
        if user.technician:
            raise HTTPException(status_code=400, detail="User is already linked to a technician")

    tech = Technician(name=data.name, email=data.email, phone=data.phone, user_id=data.userId)
    db.add(tech)
    db.commit()
    db.refresh(tech)
    logger.info(f"✅ Created technician {tech.name} (id={tech.id})")
    return to_response(tech)
