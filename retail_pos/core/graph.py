"""In-memory catalog graph.

The store hands over flat records (items, ingredients, bundle rows, recipe
rows); ``build_catalog_graph`` validates the references between them and
indexes everything by id. Items are exposed as one of two variants:

- ``SimpleItem``: own stock counter, optional recipe of ingredients
- ``CompositeItem``: a bundle of simple items, no counter of its own
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from .errors import DataIntegrityError, ItemNotFoundError

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None:
        return ZERO
    # str() keeps floats coming from the driver from leaking binary noise
    return Decimal(str(value))


@dataclass(frozen=True)
class ItemRecord:
    id: Any
    name: str
    selling_price: Decimal
    is_composite: bool = False
    stock: int = 0
    category: Optional[str] = None


@dataclass(frozen=True)
class IngredientRecord:
    id: Any
    name: str
    unit: str
    cost_per_unit: Decimal
    stock_quantity: Decimal = ZERO
    low_stock_threshold: Decimal = Decimal("10")


@dataclass(frozen=True)
class BundleRow:
    bundle_id: Any
    component_id: Any
    quantity: int


@dataclass(frozen=True)
class RecipeRow:
    item_id: Any
    ingredient_id: Any
    quantity: Decimal


@dataclass(frozen=True)
class CatalogSnapshot:
    """Raw catalog records as read from the store in one bulk load."""

    items: Tuple[ItemRecord, ...] = ()
    ingredients: Tuple[IngredientRecord, ...] = ()
    bundle_rows: Tuple[BundleRow, ...] = ()
    recipe_rows: Tuple[RecipeRow, ...] = ()


@dataclass(frozen=True)
class IntegrityFault:
    item_id: Any
    reason: str

    def __str__(self) -> str:
        if self.item_id is None:
            return self.reason
        return f"item {self.item_id!r}: {self.reason}"


@dataclass(frozen=True)
class SimpleItem:
    record: ItemRecord
    recipe: Tuple[RecipeRow, ...] = ()

    is_composite = False

    @property
    def id(self):
        return self.record.id

    @property
    def name(self) -> str:
        return self.record.name


@dataclass(frozen=True)
class CompositeItem:
    record: ItemRecord
    components: Tuple[BundleRow, ...] = ()

    is_composite = True

    @property
    def id(self):
        return self.record.id

    @property
    def name(self) -> str:
        return self.record.name


CatalogItem = Union[SimpleItem, CompositeItem]


@dataclass
class CatalogGraph:
    items: Dict[Any, CatalogItem] = field(default_factory=dict)
    ingredients: Dict[Any, IngredientRecord] = field(default_factory=dict)
    faults: List[IntegrityFault] = field(default_factory=list)

    def __post_init__(self):
        self._faults_by_item: Dict[Any, List[IntegrityFault]] = defaultdict(list)
        for fault in self.faults:
            if fault.item_id is not None:
                self._faults_by_item[fault.item_id].append(fault)

    def has_item(self, item_id) -> bool:
        return item_id in self.items

    def is_quarantined(self, item_id) -> bool:
        return item_id in self._faults_by_item

    def item(self, item_id) -> CatalogItem:
        """Return the item variant, refusing items with integrity faults."""
        try:
            node = self.items[item_id]
        except KeyError:
            raise ItemNotFoundError(item_id) from None
        if item_id in self._faults_by_item:
            raise DataIntegrityError(self._faults_by_item[item_id])
        return node

    def ingredient(self, ingredient_id) -> IngredientRecord:
        try:
            return self.ingredients[ingredient_id]
        except KeyError:
            raise DataIntegrityError(
                [IntegrityFault(None, f"unknown ingredient {ingredient_id!r}")]
            ) from None

    def components(self, item_id) -> Tuple[BundleRow, ...]:
        node = self.item(item_id)
        return node.components if isinstance(node, CompositeItem) else ()

    def recipe(self, item_id) -> Tuple[RecipeRow, ...]:
        node = self.item(item_id)
        return node.recipe if isinstance(node, SimpleItem) else ()


def _is_integral(value) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, Decimal) and value == value.to_integral_value()


def build_catalog_graph(snapshot: CatalogSnapshot, strict: bool = True) -> CatalogGraph:
    """Index a catalog snapshot, surfacing every integrity fault found.

    With ``strict`` any fault raises ``DataIntegrityError`` for the whole load.
    Otherwise the graph is built and the faulty items are quarantined:
    ``CatalogGraph.item`` raises for them, everything else stays usable.
    """
    faults: List[IntegrityFault] = []

    item_records: Dict[Any, ItemRecord] = {}
    for rec in snapshot.items:
        if rec.id in item_records:
            faults.append(IntegrityFault(rec.id, "duplicate item id"))
            continue
        price = to_decimal(rec.selling_price)
        if price < 0:
            faults.append(IntegrityFault(rec.id, f"negative selling price {price}"))
        if not rec.is_composite and rec.stock < 0:
            faults.append(IntegrityFault(rec.id, f"negative stock {rec.stock}"))
        if price != rec.selling_price:
            rec = ItemRecord(rec.id, rec.name, price, rec.is_composite, rec.stock, rec.category)
        item_records[rec.id] = rec

    ingredients: Dict[Any, IngredientRecord] = {}
    broken_ingredients = set()
    for ing in snapshot.ingredients:
        ing = IngredientRecord(
            id=ing.id,
            name=ing.name,
            unit=ing.unit,
            cost_per_unit=to_decimal(ing.cost_per_unit),
            stock_quantity=to_decimal(ing.stock_quantity),
            low_stock_threshold=to_decimal(ing.low_stock_threshold),
        )
        if ing.cost_per_unit < 0:
            broken_ingredients.add(ing.id)
            faults.append(IntegrityFault(None, f"ingredient {ing.id!r} has negative cost {ing.cost_per_unit}"))
        ingredients[ing.id] = ing

    components: Dict[Any, List[BundleRow]] = defaultdict(list)
    for row in snapshot.bundle_rows:
        owner = item_records.get(row.bundle_id)
        if owner is None:
            faults.append(IntegrityFault(None, f"bundle row references missing bundle {row.bundle_id!r}"))
            continue
        if not owner.is_composite:
            faults.append(IntegrityFault(owner.id, "has bundle components but is not a bundle"))
            continue
        if row.component_id not in item_records:
            faults.append(IntegrityFault(owner.id, f"bundle component {row.component_id!r} does not exist"))
            continue
        if not _is_integral(row.quantity) or row.quantity < 1:
            faults.append(IntegrityFault(owner.id, f"invalid quantity {row.quantity} for component {row.component_id!r}"))
            continue
        if any(r.component_id == row.component_id for r in components[owner.id]):
            faults.append(IntegrityFault(owner.id, f"component {row.component_id!r} listed twice"))
            continue
        components[owner.id].append(BundleRow(row.bundle_id, row.component_id, int(row.quantity)))

    # a bundle without components would sell without touching any counter
    for rec in item_records.values():
        if rec.is_composite and not components.get(rec.id):
            faults.append(IntegrityFault(rec.id, "bundle has no components"))

    recipes: Dict[Any, List[RecipeRow]] = defaultdict(list)
    for row in snapshot.recipe_rows:
        owner = item_records.get(row.item_id)
        if owner is None:
            faults.append(IntegrityFault(None, f"recipe row references missing item {row.item_id!r}"))
            continue
        if owner.is_composite:
            faults.append(IntegrityFault(owner.id, "is a bundle but has a recipe"))
            continue
        if row.ingredient_id not in ingredients:
            faults.append(IntegrityFault(owner.id, f"recipe ingredient {row.ingredient_id!r} does not exist"))
            continue
        if row.ingredient_id in broken_ingredients:
            faults.append(IntegrityFault(owner.id, f"recipe ingredient {row.ingredient_id!r} is invalid"))
            continue
        quantity = to_decimal(row.quantity)
        if quantity <= 0:
            faults.append(IntegrityFault(owner.id, f"invalid quantity {quantity} for ingredient {row.ingredient_id!r}"))
            continue
        if any(r.ingredient_id == row.ingredient_id for r in recipes[owner.id]):
            faults.append(IntegrityFault(owner.id, f"ingredient {row.ingredient_id!r} listed twice in recipe"))
            continue
        recipes[owner.id].append(RecipeRow(row.item_id, row.ingredient_id, quantity))

    if faults and strict:
        raise DataIntegrityError(faults)
    for fault in faults:
        logger.warning("Catalog integrity fault: %s", fault)

    items: Dict[Any, CatalogItem] = {}
    for item_id, rec in item_records.items():
        if rec.is_composite:
            items[item_id] = CompositeItem(rec, tuple(components.get(item_id, ())))
        else:
            items[item_id] = SimpleItem(rec, tuple(recipes.get(item_id, ())))

    return CatalogGraph(items=items, ingredients=ingredients, faults=faults)


def snapshot_from_records(
    items: Iterable[ItemRecord] = (),
    ingredients: Iterable[IngredientRecord] = (),
    bundle_rows: Iterable[BundleRow] = (),
    recipe_rows: Iterable[RecipeRow] = (),
) -> CatalogSnapshot:
    return CatalogSnapshot(tuple(items), tuple(ingredients), tuple(bundle_rows), tuple(recipe_rows))
