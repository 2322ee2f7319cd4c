"""Catalog store kept in process memory.

Implements the same contract as the SQL store: every decrement is a single
conditional subtraction that either leaves the counter >= 0 or changes
nothing. Used by the test-suite and for running the engine without a database.
"""

import asyncio
from dataclasses import replace
from decimal import Decimal
from typing import Any, Dict, Iterable, List

from .graph import (
    BundleRow,
    CatalogSnapshot,
    IngredientRecord,
    ItemRecord,
    RecipeRow,
    to_decimal,
)
from .inventory import SaleRecord


class InMemoryCatalogStore:
    def __init__(
        self,
        items: Iterable[ItemRecord] = (),
        ingredients: Iterable[IngredientRecord] = (),
        bundle_rows: Iterable[BundleRow] = (),
        recipe_rows: Iterable[RecipeRow] = (),
    ):
        self.items: Dict[Any, ItemRecord] = {i.id: i for i in items}
        self.ingredients: Dict[Any, IngredientRecord] = {i.id: i for i in ingredients}
        self.bundle_rows: List[BundleRow] = list(bundle_rows)
        self.recipe_rows: List[RecipeRow] = list(recipe_rows)
        self.sales: List[SaleRecord] = []
        self._lock = asyncio.Lock()

    async def load_catalog(self) -> CatalogSnapshot:
        return CatalogSnapshot(
            items=tuple(self.items.values()),
            ingredients=tuple(self.ingredients.values()),
            bundle_rows=tuple(self.bundle_rows),
            recipe_rows=tuple(self.recipe_rows),
        )

    async def decrement_product_stock(self, item_id, quantity: int) -> bool:
        # yield first so concurrent checkouts interleave like remote calls would
        await asyncio.sleep(0)
        async with self._lock:
            item = self.items.get(item_id)
            if item is None or item.is_composite or item.stock < quantity:
                return False
            self.items[item_id] = replace(item, stock=item.stock - quantity)
            return True

    async def decrement_ingredient_stock(self, ingredient_id, quantity: Decimal) -> bool:
        await asyncio.sleep(0)
        async with self._lock:
            ing = self.ingredients.get(ingredient_id)
            quantity = to_decimal(quantity)
            if ing is None or ing.stock_quantity < quantity:
                return False
            self.ingredients[ingredient_id] = replace(ing, stock_quantity=ing.stock_quantity - quantity)
            return True

    async def record_sale(self, sale: SaleRecord) -> int:
        self.sales.append(sale)
        return len(self.sales)

    # catalog management helpers

    def set_ingredient_cost(self, ingredient_id, cost_per_unit) -> None:
        ing = self.ingredients[ingredient_id]
        self.ingredients[ingredient_id] = replace(ing, cost_per_unit=to_decimal(cost_per_unit))

    def set_recipe(self, item_id, rows: Iterable[RecipeRow]) -> None:
        self.recipe_rows = [r for r in self.recipe_rows if r.item_id != item_id] + list(rows)

    def product_stock(self, item_id) -> int:
        return self.items[item_id].stock

    def ingredient_stock(self, ingredient_id) -> Decimal:
        return self.ingredients[ingredient_id].stock_quantity
