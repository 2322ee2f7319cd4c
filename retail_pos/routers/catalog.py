from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError

from ..core.checkout import CheckoutService
from ..core.errors import CatalogError
from ..db.store import SqlCatalogStore
from ..schemas.catalog import (
    CatalogItemRead,
    CategoryCreate,
    CategoryRead,
    CostBreakdownRead,
    IngredientCreate,
    IngredientRead,
    IngredientUpdate,
    LowStockAlertRead,
    ProductCreate,
    ProductRead,
    ProductUpdate,
)
from .dependencies import get_catalog_store, get_checkout_service, http_error

router = APIRouter()


@router.get("/items", response_model=List[CatalogItemRead])
async def list_items(service: CheckoutService = Depends(get_checkout_service)):
    """All items with their current production cost and gross margin"""
    try:
        overview = await service.catalog_overview()
    except CatalogError as e:
        raise http_error(e)
    return [
        CatalogItemRead(
            id=o.item_id,
            name=o.name,
            category=o.category,
            is_bundle=o.is_composite,
            selling_price=o.selling_price,
            cost=o.cost,
            margin_percent=o.margin_percent,
            stock=o.stock,
            error=o.error,
        )
        for o in overview
    ]


@router.get("/items/{item_id}/cost", response_model=CostBreakdownRead)
async def get_item_cost(item_id: UUID, service: CheckoutService = Depends(get_checkout_service)):
    """Production cost of one item with its recipe or bundle lines"""
    try:
        b = await service.cost_breakdown(item_id)
    except CatalogError as e:
        raise http_error(e)
    return CostBreakdownRead(
        item_id=b.item_id,
        name=b.name,
        is_bundle=b.is_composite,
        cost=b.cost,
        lines=[
            {
                "kind": line.kind,
                "ref_id": line.ref_id,
                "name": line.name,
                "quantity": line.quantity,
                "unit": line.unit,
                "unit_cost": line.unit_cost,
                "line_cost": line.line_cost,
            }
            for line in b.lines
        ],
    )


@router.get("/low-stock", response_model=List[LowStockAlertRead])
async def get_low_stock(service: CheckoutService = Depends(get_checkout_service)):
    try:
        alerts = await service.low_stock()
    except CatalogError as e:
        raise http_error(e)
    return [
        LowStockAlertRead(
            kind=a.target.kind.value,
            target_id=a.target.target_id,
            name=a.name,
            stock=a.stock,
            threshold=a.threshold,
        )
        for a in alerts
    ]


@router.post("/categories", response_model=CategoryRead, status_code=status.HTTP_201_CREATED)
async def create_category(payload: CategoryCreate, store: SqlCatalogStore = Depends(get_catalog_store)):
    try:
        category = await store.create_category(payload.name)
    except IntegrityError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Category '{payload.name}' already exists")
    return CategoryRead(**category.to_schema)


@router.post("/ingredients", response_model=IngredientRead, status_code=status.HTTP_201_CREATED)
async def create_ingredient(payload: IngredientCreate, store: SqlCatalogStore = Depends(get_catalog_store)):
    try:
        ingredient = await store.create_ingredient(**payload.model_dump())
    except IntegrityError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Ingredient '{payload.name}' already exists")
    return IngredientRead(**ingredient.to_schema)


@router.patch("/categories/{category_id}", response_model=CategoryRead)
async def update_category(
    category_id: UUID, payload: CategoryCreate, store: SqlCatalogStore = Depends(get_catalog_store)
):
    try:
        category = await store.update_category(category_id, payload.name)
    except CatalogError as e:
        raise http_error(e)
    except IntegrityError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Category '{payload.name}' already exists")
    return CategoryRead(**category.to_schema)


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(category_id: UUID, store: SqlCatalogStore = Depends(get_catalog_store)):
    """Delete a category; its products are kept without a category"""
    try:
        await store.delete_category(category_id)
    except CatalogError as e:
        raise http_error(e)


@router.patch("/ingredients/{ingredient_id}", response_model=IngredientRead)
async def update_ingredient(
    ingredient_id: UUID, payload: IngredientUpdate, store: SqlCatalogStore = Depends(get_catalog_store)
):
    """
    Update an ingredient. Only the fields sent are changed.

    - `stock_quantity` sets the on-hand level (restocking or a stock count).
    """
    try:
        ingredient = await store.update_ingredient(ingredient_id, **payload.model_dump(exclude_unset=True))
    except CatalogError as e:
        raise http_error(e)
    except IntegrityError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Ingredient '{payload.name}' already exists")
    return IngredientRead(**ingredient.to_schema)


@router.delete("/ingredients/{ingredient_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_ingredient(ingredient_id: UUID, store: SqlCatalogStore = Depends(get_catalog_store)):
    """Delete an ingredient; 409 while a recipe still uses it"""
    try:
        await store.delete_ingredient(ingredient_id)
    except CatalogError as e:
        raise http_error(e)


def _product_fields(payload: ProductCreate) -> dict:
    return {
        "name": payload.name,
        "selling_price": payload.selling_price,
        "is_bundle": payload.is_bundle,
        "stock": payload.stock,
        "category_id": payload.category_id,
        "description": payload.description,
        "components": [(i.item_product_id, i.quantity) for i in payload.items],
        "recipe": [(r.ingredient_id, r.quantity) for r in payload.recipe_items],
    }


def _product_read(product) -> ProductRead:
    return ProductRead(
        id=product.id,
        name=product.name,
        category_id=product.category_id,
        selling_price=product.selling_price,
        is_bundle=product.is_bundle,
        stock=product.stock,
    )


@router.post("/products", response_model=ProductRead, status_code=status.HTTP_201_CREATED)
async def create_product(payload: ProductCreate, store: SqlCatalogStore = Depends(get_catalog_store)):
    """Create a product, a bundle of products, or a product made from a recipe"""
    try:
        product = await store.create_product(**_product_fields(payload))
    except CatalogError as e:
        raise http_error(e)
    except IntegrityError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Error creating product: {e.orig}")
    return _product_read(product)


@router.put("/products/{product_id}", response_model=ProductRead)
async def update_product(
    product_id: UUID, payload: ProductUpdate, store: SqlCatalogStore = Depends(get_catalog_store)
):
    """Replace a product, including its bundle items or recipe"""
    try:
        product = await store.update_product(product_id, **_product_fields(payload))
    except CatalogError as e:
        raise http_error(e)
    except IntegrityError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Error updating product: {e.orig}")
    return _product_read(product)


@router.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(product_id: UUID, store: SqlCatalogStore = Depends(get_catalog_store)):
    """Delete a product; 409 while a bundle still contains it"""
    try:
        await store.delete_product(product_id)
    except CatalogError as e:
        raise http_error(e)
