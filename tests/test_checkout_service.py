import asyncio
import logging
from dataclasses import replace
from decimal import Decimal

import pytest

from retail_pos.core.checkout import CheckoutService
from retail_pos.core.errors import (
    CheckoutIntegrityError,
    DataIntegrityError,
    PartialSettlementError,
)
from retail_pos.core.graph import BundleRow
from retail_pos.core.settlement import CartLine, LeafTarget

from .catalog_data import BREAD, BURGER, COMBO, FLOUR, FRIES, JUICE, UNKNOWN


class TestSettleCheckout:
    def test_successful_checkout_records_sale(self, store):
        service = CheckoutService(store)
        result = asyncio.run(service.settle_checkout([CartLine(COMBO, 2)], payment_method="Card"))

        assert result.success
        assert result.total_amount == Decimal("24.00")
        assert result.cost_amount == Decimal("10.00")
        assert result.sale_id == 1
        assert store.product_stock(BURGER) == 18
        assert store.product_stock(FRIES) == 46

        (sale,) = store.sales
        assert sale.payment_method == "Card"
        assert [(line.item_id, line.quantity, line.price_at_sale) for line in sale.lines] == [
            (COMBO, 2, Decimal("12.00"))
        ]

    def test_repeated_lines_are_recorded_once(self, store):
        service = CheckoutService(store)
        asyncio.run(service.settle_checkout([CartLine(JUICE, 1), CartLine(JUICE, 2)]))
        (sale,) = store.sales
        assert [(line.item_id, line.quantity) for line in sale.lines] == [(JUICE, 3)]
        assert store.product_stock(JUICE) == 2

    def test_empty_cart_is_noop(self, store):
        result = asyncio.run(CheckoutService(store).settle_checkout([]))
        assert result.success
        assert result.total_amount == 0
        assert result.sale_id is None
        assert store.sales == []

    def test_unknown_item_changes_nothing(self, store):
        with pytest.raises(CheckoutIntegrityError):
            asyncio.run(CheckoutService(store).settle_checkout([CartLine(JUICE, 1), CartLine(UNKNOWN, 1)]))
        assert store.product_stock(JUICE) == 5
        assert store.sales == []

    def test_partial_settlement_records_no_sale(self, store):
        store.ingredients[FLOUR] = replace(store.ingredients[FLOUR], stock_quantity=Decimal("0.3"))
        with pytest.raises(PartialSettlementError) as exc:
            asyncio.run(CheckoutService(store).settle_checkout([CartLine(BREAD, 1)]))

        assert [f.target for f in exc.value.failed_targets] == [LeafTarget.ingredient(FLOUR)]
        assert store.sales == []
        assert store.ingredient_stock(FLOUR) == Decimal("0.3")

    def test_strict_mode_rejects_faulty_catalog(self, store):
        store.bundle_rows.append(BundleRow(COMBO, UNKNOWN, 1))
        with pytest.raises(DataIntegrityError):
            asyncio.run(CheckoutService(store, strict=True).settle_checkout([CartLine(JUICE, 1)]))
        assert store.product_stock(JUICE) == 5

    def test_lenient_mode_sells_unaffected_items(self, store):
        store.bundle_rows.append(BundleRow(COMBO, UNKNOWN, 1))
        service = CheckoutService(store, strict=False)

        result = asyncio.run(service.settle_checkout([CartLine(JUICE, 1)]))
        assert result.success

        with pytest.raises(DataIntegrityError):
            asyncio.run(service.settle_checkout([CartLine(COMBO, 1)]))


    def test_sale_write_failure_after_decrements_is_logged_and_raised(self, store, monkeypatch, caplog):
        async def failing_record_sale(sale):
            raise RuntimeError("sales table unavailable")

        monkeypatch.setattr(store, "record_sale", failing_record_sale)
        with caplog.at_level(logging.ERROR, logger="retail_pos.core.checkout"):
            with pytest.raises(RuntimeError, match="sales table unavailable"):
                asyncio.run(CheckoutService(store).settle_checkout([CartLine(COMBO, 1)]))

        # stock stays decremented; the log carries what was applied
        assert store.product_stock(BURGER) == 19
        assert store.product_stock(FRIES) == 48
        (record,) = [r for r in caplog.records if r.name == "retail_pos.core.checkout"]
        assert record.exc_info[0] is RuntimeError
        applied = {(t["target_id"], t["quantity"]) for t in record.extra["applied_targets"]}
        assert {(BURGER, 1), (FRIES, 2)} <= applied
        assert record.extra["failed_targets"] == []


class TestCatalogQueries:
    def test_costs_are_recomputed_on_every_call(self, store):
        service = CheckoutService(store)
        assert asyncio.run(service.resolve_cost(BREAD)) == Decimal("1.00")
        store.set_ingredient_cost(FLOUR, "4.00")
        assert asyncio.run(service.resolve_cost(BREAD)) == Decimal("2.00")

    def test_cost_breakdown(self, store):
        breakdown = asyncio.run(CheckoutService(store).cost_breakdown(COMBO))
        assert breakdown.cost == Decimal("5.00")
        assert len(breakdown.lines) == 2

    def test_catalog_overview(self, store):
        overview = {o.item_id: o for o in asyncio.run(CheckoutService(store).catalog_overview())}

        bread = overview[BREAD]
        assert bread.cost == Decimal("1.00")
        assert bread.margin_percent == Decimal("80.00")
        assert bread.stock == 30
        assert bread.category == "Bakery"

        combo = overview[COMBO]
        assert combo.is_composite
        assert combo.stock is None
        assert combo.cost == Decimal("5.00")

    def test_overview_reports_broken_items_alongside_the_rest(self, store):
        store.bundle_rows.append(BundleRow(COMBO, UNKNOWN, 1))
        overview = {o.item_id: o for o in asyncio.run(CheckoutService(store, strict=False).catalog_overview())}

        assert overview[COMBO].cost is None
        assert overview[COMBO].error
        assert overview[BREAD].error is None
        assert overview[BREAD].cost == Decimal("1.00")

    def test_low_stock(self, store):
        alerts = asyncio.run(CheckoutService(store).low_stock())
        assert LeafTarget.product(JUICE) in {a.target for a in alerts}
