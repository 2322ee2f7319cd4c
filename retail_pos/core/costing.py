"""Production cost of catalog items.

Bundles cost the sum of their components' costs, manufactured items the sum of
their recipe lines, and resale items without a recipe cost nothing. Bundles are
one level deep, so resolution never recurses further than bundle → component.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, Optional, Tuple

from .errors import CompositionInvariantError
from .graph import ZERO, CatalogGraph, CompositeItem

CENT = Decimal("0.01")


@dataclass(frozen=True)
class CostLine:
    kind: str  # 'ingredient' | 'component'
    ref_id: Any
    name: str
    quantity: Decimal
    unit: str
    unit_cost: Decimal
    line_cost: Decimal


@dataclass(frozen=True)
class CostBreakdown:
    item_id: Any
    name: str
    is_composite: bool
    cost: Decimal
    lines: Tuple[CostLine, ...]


@dataclass(frozen=True)
class CartTotals:
    subtotal: Decimal
    cost: Decimal

    @property
    def profit(self) -> Decimal:
        return self.subtotal - self.cost


class CostResolver:
    """Resolve item costs against one catalog graph.

    Nothing is cached between calls; build a new graph (and resolver) after the
    catalog changes.
    """

    def __init__(self, graph: CatalogGraph):
        self.graph = graph

    def resolve(self, item_id, _bundle_id=None) -> Decimal:
        node = self.graph.item(item_id)
        if isinstance(node, CompositeItem):
            if _bundle_id is not None:
                raise CompositionInvariantError(_bundle_id, item_id)
            total = ZERO
            for row in node.components:
                total += self.resolve(row.component_id, _bundle_id=item_id) * row.quantity
            return total

        total = ZERO
        for row in node.recipe:
            total += self.graph.ingredient(row.ingredient_id).cost_per_unit * row.quantity
        return total

    def breakdown(self, item_id) -> CostBreakdown:
        node = self.graph.item(item_id)
        lines = []
        if isinstance(node, CompositeItem):
            for row in node.components:
                component = self.graph.item(row.component_id)
                unit_cost = self.resolve(row.component_id, _bundle_id=item_id)
                quantity = Decimal(row.quantity)
                lines.append(
                    CostLine(
                        kind="component",
                        ref_id=component.id,
                        name=component.name,
                        quantity=quantity,
                        unit="unit",
                        unit_cost=unit_cost,
                        line_cost=unit_cost * quantity,
                    )
                )
        else:
            for row in node.recipe:
                ing = self.graph.ingredient(row.ingredient_id)
                lines.append(
                    CostLine(
                        kind="ingredient",
                        ref_id=ing.id,
                        name=ing.name,
                        quantity=row.quantity,
                        unit=ing.unit,
                        unit_cost=ing.cost_per_unit,
                        line_cost=ing.cost_per_unit * row.quantity,
                    )
                )
        cost = sum((line.line_cost for line in lines), ZERO)
        return CostBreakdown(node.id, node.name, node.is_composite, cost, tuple(lines))

    def cart_totals(self, lines: Iterable) -> CartTotals:
        """Selling subtotal (no tax) and production cost of a cart."""
        subtotal = ZERO
        cost = ZERO
        for line in lines:
            node = self.graph.item(line.item_id)
            subtotal += node.record.selling_price * line.quantity
            cost += self.resolve(line.item_id) * line.quantity
        return CartTotals(subtotal=subtotal, cost=cost)


def resolve_cost(graph: CatalogGraph, item_id) -> Decimal:
    return CostResolver(graph).resolve(item_id)


def gross_margin(price: Optional[Decimal], cost: Decimal) -> Decimal:
    """Margin as a percentage of the selling price, 0 for free items."""
    if not price:
        return ZERO.quantize(CENT)
    return ((price - cost) / price * 100).quantize(CENT)
