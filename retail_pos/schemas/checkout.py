from decimal import Decimal
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, field_validator

TargetKind = Literal["product_stock", "ingredient_stock"]


class CartLineInput(BaseModel):
    item_id: UUID
    quantity: int = 1

    @field_validator("quantity")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("quantity must be at least 1")
        return v


class CheckoutRequest(BaseModel):
    lines: List[CartLineInput]
    payment_method: Optional[Literal["Cash", "Card"]] = None


class TargetRead(BaseModel):
    kind: TargetKind
    target_id: UUID
    quantity: Decimal


class FailedTargetRead(TargetRead):
    reason: str


class CheckoutResponse(BaseModel):
    success: bool
    applied_targets: List[TargetRead]
    failed_targets: List[FailedTargetRead] = []
    total_amount: Decimal
    cost_amount: Decimal
    sale_id: Optional[UUID] = None
