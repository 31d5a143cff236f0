"""Product catalog routes"""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin
from ...database import get_db
from ...models import Product, User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["Products"])

UNIT_TYPES = ("flat", "per-sq-ft", "hourly")


class ProductCreate(BaseModel):
    name: str
    basePrice: float = 0
    unitType: str = "flat"
    taxable: bool = True

    @field_validator("basePrice")
    @classmethod
    def check_price(cls, v):
        if v < 0:
            raise ValueError("basePrice cannot be negative")
        return v

    @field_validator("unitType")
    @classmethod
    def check_unit_type(cls, v):
        if v not in UNIT_TYPES:
            raise ValueError(f"unitType must be one of {', '.join(UNIT_TYPES)}")
        return v


class ProductResponse(BaseModel):
    id: int
    name: str
    basePrice: float
    unitType: str
    taxable: bool


def to_response(product: Product) -> ProductResponse:
    return ProductResponse(
        id=product.id,
        name=product.name,
        basePrice=product.base_price,
        unitType=product.unit_type,
        taxable=product.taxable,
    )


@router.get("", response_model=list[ProductResponse])
async def get_products(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [to_response(p) for p in db.query(Product).order_by(Product.name.asc()).all()]


@router.post("", response_model=ProductResponse)
async def create_product(
    data: ProductCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    product = Product(
        name=data.name, base_price=data.basePrice, unit_type=data.unitType, taxable=data.taxable
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    return to_response(product)
