"""SQLAlchemy implementation of the catalog store.

Stock decrements are single conditional UPDATE statements, each in its own
session, so concurrent checkouts can never push a counter below zero:

    UPDATE products SET stock = stock - :q WHERE id = :id AND stock >= :q

A decrement succeeded iff exactly one row changed.

Ingredient stock is compared and written rounded to the column's scale.
SQLite keeps NUMERIC values as binary floats, and without the rounding
repeated fractional decrements drift until an exact-remainder request fails.
"""

import logging
import uuid
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from ..core.errors import CompositionInvariantError, DataIntegrityError, ItemNotFoundError
from ..core.graph import (
    BundleRow,
    CatalogSnapshot,
    IngredientRecord,
    IntegrityFault,
    ItemRecord,
    RecipeRow,
    to_decimal,
)
from ..core.inventory import SaleRecord
from .category import Category
from .ingredient import Ingredient, IngredientStock
from .product import BundleItem, Product, RecipeItem
from .sale import Sale, SaleItem

logger = logging.getLogger(__name__)

STOCK_SCALE = 3
STOCK_QUANTUM = Decimal("0.001")

Components = List[Tuple[UUID, int]]
Recipe = List[Tuple[UUID, Decimal]]


def _rounded(expr):
    return func.round(expr, STOCK_SCALE, type_=IngredientStock.stock_quantity.type)


class SqlCatalogStore:
    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def load_catalog(self) -> CatalogSnapshot:
        async with self._session_maker() as db:
            products = (
                await db.execute(select(Product).options(selectinload(Product.category)))
            ).scalars().all()
            ingredients = (
                await db.execute(select(Ingredient).options(selectinload(Ingredient.stock)))
            ).scalars().all()
            bundle_items = (await db.execute(select(BundleItem))).scalars().all()
            recipe_items = (await db.execute(select(RecipeItem))).scalars().all()

        return CatalogSnapshot(
            items=tuple(
                ItemRecord(
                    id=p.id,
                    name=p.name,
                    selling_price=Decimal(p.selling_price or 0),
                    is_composite=bool(p.is_bundle),
                    stock=0 if p.is_bundle else int(p.stock or 0),
                    category=p.category.name if p.category else None,
                )
                for p in products
            ),
            ingredients=tuple(
                IngredientRecord(
                    id=i.id,
                    name=i.name,
                    unit=i.unit_of_measurement,
                    cost_per_unit=Decimal(i.cost_per_unit or 0),
                    stock_quantity=Decimal(i.stock.stock_quantity) if i.stock else Decimal("0"),
                    low_stock_threshold=Decimal(i.low_stock_threshold or 0),
                )
                for i in ingredients
            ),
            bundle_rows=tuple(
                BundleRow(b.bundle_product_id, b.item_product_id, int(b.quantity)) for b in bundle_items
            ),
            recipe_rows=tuple(
                RecipeRow(r.product_id, r.ingredient_id, Decimal(r.quantity)) for r in recipe_items
            ),
        )

    async def decrement_product_stock(self, item_id: UUID, quantity: int) -> bool:
        stmt = (
            update(Product)
            .where(Product.id == item_id)
            .where(Product.is_bundle.is_(False))
            .where(Product.stock >= quantity)
            .values(stock=Product.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        async with self._session_maker() as db:
            res = await db.execute(stmt)
            await db.commit()
        return res.rowcount == 1

    async def decrement_ingredient_stock(self, ingredient_id: UUID, quantity: Decimal) -> bool:
        quantity = to_decimal(quantity).quantize(STOCK_QUANTUM)
        stmt = (
            update(IngredientStock)
            .where(IngredientStock.ingredient_id == ingredient_id)
            .where(_rounded(IngredientStock.stock_quantity) >= quantity)
            .values(stock_quantity=_rounded(IngredientStock.stock_quantity - quantity))
            .execution_options(synchronize_session=False)
        )
        async with self._session_maker() as db:
            res = await db.execute(stmt)
            await db.commit()
        return res.rowcount == 1

    async def record_sale(self, sale: SaleRecord) -> UUID:
        sale_id = uuid.uuid4()
        async with self._session_maker() as db:
            db.add(
                Sale(
                    id=sale_id,
                    total_amount=sale.total_amount,
                    cost_amount=sale.cost_amount,
                    payment_method=sale.payment_method,
                )
            )
            for line in sale.lines:
                db.add(
                    SaleItem(
                        sale_id=sale_id,
                        product_id=line.item_id,
                        quantity=line.quantity,
                        price_at_sale=line.price_at_sale,
                    )
                )
            await db.commit()
        return sale_id

    # Catalog management. Bundle and recipe invariants are enforced here, at
    # write time; the graph builder checks them again on every load.

    async def create_category(self, name: str) -> Category:
        async with self._session_maker() as db:
            category = Category(name=name)
            db.add(category)
            await db.commit()
            return category

    async def update_category(self, category_id: UUID, name: str) -> Category:
        async with self._session_maker() as db:
            category = await db.get(Category, category_id)
            if category is None:
                raise ItemNotFoundError(category_id, kind="Category")
            category.name = name
            await db.commit()
            return category

    async def delete_category(self, category_id: UUID) -> None:
        """Delete a category; its products stay, uncategorised."""
        async with self._session_maker() as db:
            category = await db.get(Category, category_id)
            if category is None:
                raise ItemNotFoundError(category_id, kind="Category")
            await db.execute(
                update(Product).where(Product.category_id == category_id).values(category_id=None)
            )
            await db.execute(delete(Category).where(Category.id == category_id))
            await db.commit()

    async def create_ingredient(
        self,
        *,
        name: str,
        unit_of_measurement: str,
        cost_per_unit: Decimal,
        stock_quantity: Decimal = Decimal("0"),
        low_stock_threshold: Decimal = Decimal("10"),
    ) -> Ingredient:
        async with self._session_maker() as db:
            ingredient = Ingredient(
                name=name,
                unit_of_measurement=unit_of_measurement,
                cost_per_unit=cost_per_unit,
                low_stock_threshold=low_stock_threshold,
                stock=IngredientStock(stock_quantity=stock_quantity),
            )
            db.add(ingredient)
            await db.commit()
            return ingredient

    async def update_ingredient(
        self,
        ingredient_id: UUID,
        *,
        name: Optional[str] = None,
        unit_of_measurement: Optional[str] = None,
        cost_per_unit: Optional[Decimal] = None,
        stock_quantity: Optional[Decimal] = None,
        low_stock_threshold: Optional[Decimal] = None,
    ) -> Ingredient:
        """Update the fields given; ``stock_quantity`` sets the on-hand level (restock or count)."""
        async with self._session_maker() as db:
            res = await db.execute(
                select(Ingredient).options(selectinload(Ingredient.stock)).where(Ingredient.id == ingredient_id)
            )
            ingredient = res.scalar_one_or_none()
            if ingredient is None:
                raise ItemNotFoundError(ingredient_id, kind="Ingredient")

            if name is not None:
                ingredient.name = name
            if unit_of_measurement is not None:
                ingredient.unit_of_measurement = unit_of_measurement
            if cost_per_unit is not None:
                ingredient.cost_per_unit = cost_per_unit
            if low_stock_threshold is not None:
                ingredient.low_stock_threshold = low_stock_threshold
            if stock_quantity is not None:
                if ingredient.stock is None:
                    ingredient.stock = IngredientStock(stock_quantity=stock_quantity)
                else:
                    ingredient.stock.stock_quantity = stock_quantity

            await db.commit()
            logger.info("Updated ingredient %s (%s)", ingredient.name, ingredient_id)
            return ingredient

    async def delete_ingredient(self, ingredient_id: UUID) -> None:
        async with self._session_maker() as db:
            ingredient = await db.get(Ingredient, ingredient_id)
            if ingredient is None:
                raise ItemNotFoundError(ingredient_id, kind="Ingredient")
            res = await db.execute(select(RecipeItem.product_id).where(RecipeItem.ingredient_id == ingredient_id))
            users = res.scalars().all()
            if users:
                raise DataIntegrityError(
                    [IntegrityFault(p, f"recipe still uses ingredient {ingredient_id}") for p in users]
                )
            await db.execute(delete(IngredientStock).where(IngredientStock.ingredient_id == ingredient_id))
            await db.execute(delete(Ingredient).where(Ingredient.id == ingredient_id))
            await db.commit()

    async def create_product(
        self,
        *,
        name: str,
        selling_price: Decimal,
        is_bundle: bool = False,
        stock: int = 0,
        category_id: Optional[UUID] = None,
        description: Optional[str] = None,
        components: Iterable[Tuple[UUID, int]] = (),
        recipe: Iterable[Tuple[UUID, Decimal]] = (),
    ) -> Product:
        components = list(components)
        recipe = list(recipe)
        product_id = uuid.uuid4()

        async with self._session_maker() as db:
            await self._check_composition(db, product_id, is_bundle, components, recipe)
            if is_bundle:
                stock = 0

            product = Product(
                id=product_id,
                name=name,
                description=description,
                category_id=category_id,
                selling_price=selling_price,
                is_bundle=is_bundle,
                stock=stock,
            )
            db.add(product)
            await db.flush()
            self._add_composition(db, product_id, components, recipe)
            await db.commit()
            logger.info("Created product %s (%s)", name, product_id)
            return product

    async def update_product(
        self,
        product_id: UUID,
        *,
        name: str,
        selling_price: Decimal,
        is_bundle: bool = False,
        stock: int = 0,
        category_id: Optional[UUID] = None,
        description: Optional[str] = None,
        components: Iterable[Tuple[UUID, int]] = (),
        recipe: Iterable[Tuple[UUID, Decimal]] = (),
    ) -> Product:
        """Replace a product's fields and its whole bundle or recipe composition."""
        components = list(components)
        recipe = list(recipe)

        async with self._session_maker() as db:
            product = await db.get(Product, product_id)
            if product is None:
                raise ItemNotFoundError(product_id, kind="Product")

            await self._check_composition(db, product_id, is_bundle, components, recipe)
            if is_bundle:
                parent = await self._parent_bundle(db, product_id)
                if parent is not None:
                    raise CompositionInvariantError(parent, product_id)
                stock = 0

            product.name = name
            product.description = description
            product.category_id = category_id
            product.selling_price = selling_price
            product.is_bundle = is_bundle
            product.stock = stock

            await db.execute(delete(BundleItem).where(BundleItem.bundle_product_id == product_id))
            await db.execute(delete(RecipeItem).where(RecipeItem.product_id == product_id))
            self._add_composition(db, product_id, components, recipe)
            await db.commit()
            logger.info("Updated product %s (%s)", name, product_id)
            return product

    async def delete_product(self, product_id: UUID) -> None:
        """Delete a product with its own bundle/recipe rows; past sale lines keep no reference."""
        async with self._session_maker() as db:
            product = await db.get(Product, product_id)
            if product is None:
                raise ItemNotFoundError(product_id, kind="Product")
            parent = await self._parent_bundle(db, product_id)
            if parent is not None:
                raise DataIntegrityError([IntegrityFault(parent, f"bundle still contains product {product_id}")])

            await db.execute(delete(BundleItem).where(BundleItem.bundle_product_id == product_id))
            await db.execute(delete(RecipeItem).where(RecipeItem.product_id == product_id))
            await db.execute(update(SaleItem).where(SaleItem.product_id == product_id).values(product_id=None))
            await db.execute(delete(Product).where(Product.id == product_id))
            await db.commit()
            logger.info("Deleted product %s", product_id)

    @staticmethod
    def _add_composition(db: AsyncSession, product_id: UUID, components: Components, recipe: Recipe) -> None:
        for component_id, quantity in components:
            db.add(BundleItem(bundle_product_id=product_id, item_product_id=component_id, quantity=quantity))
        for ingredient_id, quantity in recipe:
            db.add(RecipeItem(product_id=product_id, ingredient_id=ingredient_id, quantity=quantity))

    async def _parent_bundle(self, db: AsyncSession, product_id: UUID) -> Optional[UUID]:
        res = await db.execute(
            select(BundleItem.bundle_product_id).where(BundleItem.item_product_id == product_id).limit(1)
        )
        return res.scalar_one_or_none()

    async def _check_composition(
        self, db: AsyncSession, product_id: UUID, is_bundle: bool, components: Components, recipe: Recipe
    ) -> None:
        if is_bundle:
            if recipe:
                raise DataIntegrityError([IntegrityFault(product_id, "a bundle cannot have a recipe")])
            if not components:
                raise DataIntegrityError([IntegrityFault(product_id, "bundle has no components")])
            await self._check_components(db, product_id, components)
        else:
            if components:
                raise DataIntegrityError([IntegrityFault(product_id, "only bundles can have components")])
            await self._check_recipe(db, product_id, recipe)

    async def _check_components(self, db: AsyncSession, bundle_id: UUID, components: Components) -> None:
        ids = [c for c, _ in components]
        if len(set(ids)) != len(ids):
            raise DataIntegrityError([IntegrityFault(bundle_id, "bundle lists a component twice")])
        if bundle_id in ids:
            raise CompositionInvariantError(bundle_id, bundle_id)
        res = await db.execute(select(Product.id, Product.is_bundle).where(Product.id.in_(ids)))
        found = {row[0]: row[1] for row in res.all()}
        missing = [IntegrityFault(bundle_id, f"bundle component {c} does not exist") for c in ids if c not in found]
        if missing:
            raise DataIntegrityError(missing)
        for component_id in ids:
            if found[component_id]:
                raise CompositionInvariantError(bundle_id, component_id)

    async def _check_recipe(self, db: AsyncSession, product_id: UUID, recipe: Recipe) -> None:
        ids = [i for i, _ in recipe]
        if len(set(ids)) != len(ids):
            raise DataIntegrityError([IntegrityFault(product_id, "recipe lists an ingredient twice")])
        if not ids:
            return
        res = await db.execute(select(Ingredient.id).where(Ingredient.id.in_(ids)))
        found = {row[0] for row in res.all()}
        missing = [IntegrityFault(product_id, f"recipe ingredient {i} does not exist") for i in ids if i not in found]
        if missing:
            raise DataIntegrityError(missing)
