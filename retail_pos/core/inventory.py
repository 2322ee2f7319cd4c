"""Applying decrement plans against the store's stock counters.

The store owns the counters and the atomicity: each call is a single
"subtract if the result stays >= 0" operation. The applier never reads a stock
level to decide anything; it issues one conditional decrement per leaf target,
concurrently, and reports which ones went through.

There is no transaction spanning several targets. When some decrements fail
the ones that succeeded stay applied and the caller gets a
``PartialSettlementError`` listing both sides.
"""

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, List, Optional, Protocol, Tuple

from .errors import PartialSettlementError
from .graph import CatalogGraph, CatalogSnapshot, CompositeItem
from .settlement import DecrementPlan, LeafTarget, Quantity, TargetKind

logger = logging.getLogger(__name__)

INSUFFICIENT_STOCK = "insufficient_stock"
STORE_ERROR = "error"


@dataclass(frozen=True)
class SaleLine:
    item_id: Any
    quantity: int
    price_at_sale: Decimal


@dataclass(frozen=True)
class SaleRecord:
    lines: Tuple[SaleLine, ...]
    total_amount: Decimal
    cost_amount: Decimal
    payment_method: Optional[str] = None


class CatalogStore(Protocol):
    async def load_catalog(self) -> CatalogSnapshot:
        ...

    async def decrement_product_stock(self, item_id, quantity: int) -> bool:
        ...

    async def decrement_ingredient_stock(self, ingredient_id, quantity: Decimal) -> bool:
        ...

    async def record_sale(self, sale: SaleRecord) -> Any:
        ...


@dataclass(frozen=True)
class AppliedDecrement:
    target: LeafTarget
    quantity: Quantity


@dataclass(frozen=True)
class FailedDecrement:
    target: LeafTarget
    quantity: Quantity
    reason: str


@dataclass(frozen=True)
class SettlementOutcome:
    applied_targets: Tuple[AppliedDecrement, ...] = ()
    failed_targets: Tuple[FailedDecrement, ...] = ()

    @property
    def success(self) -> bool:
        return not self.failed_targets

    def as_dict(self) -> dict:
        return {
            "success": self.success,
            "applied_targets": [
                {"kind": a.target.kind.value, "target_id": a.target.target_id, "quantity": a.quantity}
                for a in self.applied_targets
            ],
            "failed_targets": [
                {"kind": f.target.kind.value, "target_id": f.target.target_id, "quantity": f.quantity, "reason": f.reason}
                for f in self.failed_targets
            ],
        }


class DecrementApplier:
    def __init__(self, store: CatalogStore):
        self.store = store

    async def apply(self, plan: DecrementPlan) -> SettlementOutcome:
        entries = list(plan.items())
        if not entries:
            return SettlementOutcome()

        results = await asyncio.gather(
            *(self._decrement(target, quantity) for target, quantity in entries),
            return_exceptions=True,
        )

        applied: List[AppliedDecrement] = []
        failed: List[FailedDecrement] = []
        for (target, quantity), result in zip(entries, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.error("Store error while decrementing %s by %s", target, quantity, exc_info=result)
                failed.append(FailedDecrement(target, quantity, STORE_ERROR))
            elif result:
                applied.append(AppliedDecrement(target, quantity))
            else:
                logger.warning("Insufficient stock for %s (requested %s)", target, quantity)
                failed.append(FailedDecrement(target, quantity, INSUFFICIENT_STOCK))

        outcome = SettlementOutcome(tuple(applied), tuple(failed))
        if failed:
            logger.error(
                "Partial settlement: %d applied, %d failed",
                len(applied),
                len(failed),
                extra={"extra": outcome.as_dict()},
            )
            raise PartialSettlementError(outcome)
        return outcome

    async def _decrement(self, target: LeafTarget, quantity: Quantity) -> bool:
        if target.kind is TargetKind.PRODUCT:
            return await self.store.decrement_product_stock(target.target_id, quantity)
        return await self.store.decrement_ingredient_stock(target.target_id, quantity)


@dataclass(frozen=True)
class LowStockAlert:
    target: LeafTarget
    name: str
    stock: Quantity
    threshold: Quantity


def low_stock_alerts(graph: CatalogGraph, product_threshold: int) -> List[LowStockAlert]:
    """Counters below their threshold, as seen in the graph's snapshot.

    Bundles have no counter of their own and never alert.
    """
    alerts: List[LowStockAlert] = []
    for node in graph.items.values():
        if isinstance(node, CompositeItem):
            continue
        if node.record.stock < product_threshold:
            alerts.append(
                LowStockAlert(LeafTarget.product(node.id), node.name, node.record.stock, product_threshold)
            )
    for ing in graph.ingredients.values():
        if ing.stock_quantity < ing.low_stock_threshold:
            alerts.append(
                LowStockAlert(LeafTarget.ingredient(ing.id), ing.name, ing.stock_quantity, ing.low_stock_threshold)
            )
    return alerts
