"""Entry points used by the API layer: cost lookups and checkout settlement."""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, List, Optional

from .config import settings
from .costing import CostBreakdown, CostResolver, gross_margin
from .errors import CatalogError
from .graph import CatalogGraph, CompositeItem, build_catalog_graph
from .inventory import (
    CatalogStore,
    DecrementApplier,
    LowStockAlert,
    SaleLine,
    SaleRecord,
    SettlementOutcome,
    low_stock_alerts,
)
from .settlement import CartLine, merge_cart, plan_settlement

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ItemOverview:
    item_id: Any
    name: str
    category: Optional[str]
    is_composite: bool
    selling_price: Decimal
    cost: Optional[Decimal]
    margin_percent: Optional[Decimal]
    stock: Optional[int]
    error: Optional[str] = None


@dataclass(frozen=True)
class CheckoutResult:
    outcome: SettlementOutcome
    total_amount: Decimal
    cost_amount: Decimal
    sale_id: Any = None

    @property
    def success(self) -> bool:
        return self.outcome.success


class CheckoutService:
    """Builds a fresh catalog graph for every operation; nothing is cached."""

    def __init__(self, store: CatalogStore, strict: Optional[bool] = None):
        self.store = store
        self.strict = settings.catalog_strict if strict is None else strict
        self.applier = DecrementApplier(store)

    async def load_graph(self) -> CatalogGraph:
        snapshot = await self.store.load_catalog()
        return build_catalog_graph(snapshot, strict=self.strict)

    async def resolve_cost(self, item_id) -> Decimal:
        graph = await self.load_graph()
        return CostResolver(graph).resolve(item_id)

    async def cost_breakdown(self, item_id) -> CostBreakdown:
        graph = await self.load_graph()
        return CostResolver(graph).breakdown(item_id)

    async def catalog_overview(self) -> List[ItemOverview]:
        graph = await self.load_graph()
        resolver = CostResolver(graph)
        out: List[ItemOverview] = []
        for item_id, node in graph.items.items():
            rec = node.record
            stock = None if isinstance(node, CompositeItem) else rec.stock
            try:
                cost = resolver.resolve(item_id)
            except CatalogError as e:
                # one broken item must not hide the rest of the catalog
                logger.warning("Cannot cost item %r: %s", item_id, e)
                out.append(ItemOverview(item_id, rec.name, rec.category, rec.is_composite,
                                        rec.selling_price, None, None, stock, error=str(e)))
                continue
            out.append(ItemOverview(item_id, rec.name, rec.category, rec.is_composite,
                                    rec.selling_price, cost, gross_margin(rec.selling_price, cost), stock))
        return out

    async def low_stock(self) -> List[LowStockAlert]:
        graph = await self.load_graph()
        return low_stock_alerts(graph, settings.product_low_stock_threshold)

    async def settle_checkout(self, cart: Iterable[CartLine], payment_method: Optional[str] = None) -> CheckoutResult:
        """Plan and apply the stock decrements of a cart.

        An empty cart is a no-op. Unknown items abort before anything is
        written (``CheckoutIntegrityError``); insufficient stock on any target
        raises ``PartialSettlementError`` with the applied/failed split. The
        sale is recorded only when every decrement went through.
        """
        lines = merge_cart(cart)
        if not lines:
            return CheckoutResult(SettlementOutcome(), Decimal("0"), Decimal("0"))

        graph = await self.load_graph()
        plan = plan_settlement(lines, graph)
        totals = CostResolver(graph).cart_totals(lines)

        outcome = await self.applier.apply(plan)

        sale = SaleRecord(
            lines=tuple(
                SaleLine(line.item_id, line.quantity, graph.item(line.item_id).record.selling_price)
                for line in lines
            ),
            total_amount=totals.subtotal,
            cost_amount=totals.cost,
            payment_method=payment_method,
        )
        try:
            sale_id = await self.store.record_sale(sale)
        except Exception:
            # stock is already gone at this point; leave enough to reconcile by hand
            logger.exception(
                "Stock decremented but the sale could not be recorded",
                extra={"extra": outcome.as_dict()},
            )
            raise
        logger.info(
            "Checkout settled: %d lines, %d targets, total %s",
            len(lines),
            len(outcome.applied_targets),
            totals.subtotal,
            extra={"extra": {"sale_id": str(sale_id), "payment_method": payment_method}},
        )
        return CheckoutResult(outcome, totals.subtotal, totals.cost, sale_id)
