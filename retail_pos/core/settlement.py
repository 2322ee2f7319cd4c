"""Checkout settlement planning.

A cart is expanded into the leaf stock counters it consumes:

- bundle lines decrement the product stock of each component
- manufactured lines decrement the stock of each recipe ingredient
- plain resale lines decrement their own product stock

Contributions to the same counter are summed, so a plan holds exactly one
entry per counter no matter how many cart lines reach it.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, NamedTuple, Tuple, Union

from .errors import CheckoutIntegrityError, CompositionInvariantError
from .graph import CatalogGraph, CompositeItem

logger = logging.getLogger(__name__)

Quantity = Union[int, Decimal]


class TargetKind(str, Enum):
    PRODUCT = "product_stock"
    INGREDIENT = "ingredient_stock"


class LeafTarget(NamedTuple):
    kind: TargetKind
    target_id: Any

    @classmethod
    def product(cls, item_id) -> "LeafTarget":
        return cls(TargetKind.PRODUCT, item_id)

    @classmethod
    def ingredient(cls, ingredient_id) -> "LeafTarget":
        return cls(TargetKind.INGREDIENT, ingredient_id)

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.target_id}"


@dataclass(frozen=True)
class CartLine:
    item_id: Any
    quantity: int

    def __post_init__(self):
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise TypeError(f"cart quantity must be an integer, got {self.quantity!r}")
        if self.quantity < 1:
            raise ValueError(f"cart quantity must be positive, got {self.quantity}")


def merge_cart(lines: Iterable[CartLine]) -> List[CartLine]:
    """Collapse repeated items into one line each, keeping first-seen order."""
    totals: Dict[Any, int] = {}
    for line in lines:
        totals[line.item_id] = totals.get(line.item_id, 0) + line.quantity
    return [CartLine(item_id, qty) for item_id, qty in totals.items()]


class DecrementPlan:
    """Total quantity to subtract per leaf target."""

    def __init__(self, totals: Dict[LeafTarget, Quantity] = None):
        self._totals: Dict[LeafTarget, Quantity] = {}
        for target, quantity in (totals or {}).items():
            self.add(target, quantity)

    def add(self, target: LeafTarget, quantity: Quantity) -> None:
        if quantity < 0:
            raise ValueError(f"cannot plan a negative decrement for {target}")
        self._totals[target] = self._totals.get(target, 0) + quantity

    def get(self, target: LeafTarget, default=None):
        return self._totals.get(target, default)

    def items(self) -> Iterator[Tuple[LeafTarget, Quantity]]:
        return iter(self._totals.items())

    @property
    def targets(self) -> List[LeafTarget]:
        return list(self._totals)

    def as_dict(self) -> Dict[LeafTarget, Quantity]:
        return dict(self._totals)

    def __getitem__(self, target: LeafTarget) -> Quantity:
        return self._totals[target]

    def __contains__(self, target) -> bool:
        return target in self._totals

    def __iter__(self):
        return iter(self._totals)

    def __len__(self) -> int:
        return len(self._totals)

    def __eq__(self, other) -> bool:
        if not isinstance(other, DecrementPlan):
            return NotImplemented
        return self._totals == other._totals

    def __repr__(self) -> str:
        entries = ", ".join(f"{t}={q}" for t, q in self._totals.items())
        return f"DecrementPlan({entries})"


def plan_settlement(cart: Iterable[CartLine], graph: CatalogGraph) -> DecrementPlan:
    """Expand a cart into its aggregated decrement plan.

    Raises ``CheckoutIntegrityError`` before planning anything if a line names
    an unknown item. Stock levels are not consulted here.
    """
    lines = merge_cart(cart)
    unknown = [line.item_id for line in lines if not graph.has_item(line.item_id)]
    if unknown:
        raise CheckoutIntegrityError(unknown)

    plan = DecrementPlan()
    for line in lines:
        node = graph.item(line.item_id)
        if isinstance(node, CompositeItem):
            for row in node.components:
                if graph.item(row.component_id).is_composite:
                    raise CompositionInvariantError(node.id, row.component_id)
                plan.add(LeafTarget.product(row.component_id), row.quantity * line.quantity)
        elif node.recipe:
            for row in node.recipe:
                plan.add(LeafTarget.ingredient(row.ingredient_id), row.quantity * line.quantity)
        else:
            plan.add(LeafTarget.product(node.id), line.quantity)

    logger.debug("Planned %d decrements for %d cart lines", len(plan), len(lines))
    return plan
