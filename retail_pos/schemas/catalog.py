from decimal import Decimal
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, field_validator, model_validator


class CategoryCreate(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v


class CategoryRead(BaseModel):
    id: UUID
    name: str


class IngredientCreate(BaseModel):
    name: str
    unit_of_measurement: str
    cost_per_unit: Decimal
    stock_quantity: Decimal = Decimal("0")
    low_stock_threshold: Decimal = Decimal("10")

    @field_validator("name", "unit_of_measurement")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v

    @field_validator("cost_per_unit", "stock_quantity", "low_stock_threshold")
    @classmethod
    def _non_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("must not be negative")
        return v


class IngredientUpdate(BaseModel):
    name: Optional[str] = None
    unit_of_measurement: Optional[str] = None
    cost_per_unit: Optional[Decimal] = None
    stock_quantity: Optional[Decimal] = None
    low_stock_threshold: Optional[Decimal] = None

    @field_validator("name", "unit_of_measurement")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("field must not be empty")
        return v

    @field_validator("cost_per_unit", "stock_quantity", "low_stock_threshold")
    @classmethod
    def _non_negative(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is not None and v < 0:
            raise ValueError("must not be negative")
        return v


class IngredientRead(BaseModel):
    id: UUID
    name: str
    unit_of_measurement: str
    cost_per_unit: Decimal
    low_stock_threshold: Decimal
    stock_quantity: Decimal


class BundleComponentInput(BaseModel):
    item_product_id: UUID
    quantity: int = 1

    @field_validator("quantity")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("quantity must be at least 1")
        return v


class RecipeItemInput(BaseModel):
    ingredient_id: UUID
    quantity: Decimal

    @field_validator("quantity")
    @classmethod
    def _positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("quantity must be positive")
        return v


class ProductCreate(BaseModel):
    name: str
    selling_price: Decimal
    category_id: Optional[UUID] = None
    description: Optional[str] = None
    is_bundle: bool = False
    stock: int = 0
    items: List[BundleComponentInput] = []
    recipe_items: List[RecipeItemInput] = []

    @field_validator("name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v

    @field_validator("selling_price")
    @classmethod
    def _price(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("selling_price must not be negative")
        return v

    @field_validator("stock")
    @classmethod
    def _stock(cls, v: int) -> int:
        if v < 0:
            raise ValueError("stock must not be negative")
        return v

    @model_validator(mode="after")
    def _validate_composition(self):
        if self.is_bundle:
            if not self.items:
                raise ValueError("a bundle needs at least one item")
            if self.recipe_items:
                raise ValueError("a bundle cannot have a recipe")
            # bundles never hold stock of their own
            self.stock = 0
        elif self.items:
            raise ValueError("only bundles can have items")

        component_ids = [i.item_product_id for i in self.items]
        if len(set(component_ids)) != len(component_ids):
            raise ValueError("bundle items must be unique")
        ingredient_ids = [r.ingredient_id for r in self.recipe_items]
        if len(set(ingredient_ids)) != len(ingredient_ids):
            raise ValueError("recipe ingredients must be unique")
        return self


class ProductUpdate(ProductCreate):
    """Full replacement, composition included."""


class ProductRead(BaseModel):
    id: UUID
    name: str
    category_id: Optional[UUID] = None
    selling_price: Decimal
    is_bundle: bool
    stock: int


class CatalogItemRead(BaseModel):
    id: UUID
    name: str
    category: Optional[str] = None
    is_bundle: bool
    selling_price: Decimal
    cost: Optional[Decimal] = None
    margin_percent: Optional[Decimal] = None
    stock: Optional[int] = None
    error: Optional[str] = None


class CostLineRead(BaseModel):
    kind: Literal["ingredient", "component"]
    ref_id: UUID
    name: str
    quantity: Decimal
    unit: str
    unit_cost: Decimal
    line_cost: Decimal


class CostBreakdownRead(BaseModel):
    item_id: UUID
    name: str
    is_bundle: bool
    cost: Decimal
    lines: List[CostLineRead]


class LowStockAlertRead(BaseModel):
    kind: Literal["product_stock", "ingredient_stock"]
    target_id: UUID
    name: str
    stock: Decimal
    threshold: Decimal
