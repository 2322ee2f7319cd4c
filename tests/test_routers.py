"""Route handlers called directly with their dependencies injected."""

import asyncio
import uuid
from dataclasses import replace
from decimal import Decimal

import pytest
from fastapi import HTTPException

from retail_pos.core.checkout import CheckoutService
from retail_pos.routers import catalog, checkout
from retail_pos.schemas.catalog import (
    CategoryCreate,
    IngredientCreate,
    IngredientUpdate,
    ProductCreate,
    ProductUpdate,
)
from retail_pos.schemas.checkout import CheckoutRequest

from .catalog_data import BREAD, BURGER, COMBO, FLOUR, FRIES, JUICE, UNKNOWN


@pytest.fixture
def service(store):
    return CheckoutService(store, strict=False)


class TestCatalogRoutes:
    def test_list_items(self, service):
        items = {i.id: i for i in asyncio.run(catalog.list_items(service=service))}
        assert items[COMBO].is_bundle
        assert items[COMBO].cost == Decimal("5.00")
        assert items[BREAD].margin_percent == Decimal("80.00")

    def test_item_cost(self, service):
        body = asyncio.run(catalog.get_item_cost(COMBO, service=service))
        assert body.cost == Decimal("5.00")
        assert [line.ref_id for line in body.lines] == [BURGER, FRIES]

    def test_item_cost_unknown_is_404(self, service):
        with pytest.raises(HTTPException) as exc:
            asyncio.run(catalog.get_item_cost(UNKNOWN, service=service))
        assert exc.value.status_code == 404

    def test_low_stock(self, service):
        alerts = asyncio.run(catalog.get_low_stock(service=service))
        assert [(a.kind, a.target_id) for a in alerts] == [("product_stock", JUICE)]


class TestCheckoutRoute:
    def test_checkout(self, store, service):
        req = CheckoutRequest(lines=[{"item_id": COMBO, "quantity": 2}], payment_method="Cash")
        body = asyncio.run(checkout.checkout(req, service=service))

        assert body.success
        assert body.total_amount == Decimal("24.00")
        assert {(t.target_id, t.quantity) for t in body.applied_targets} == {(BURGER, 2), (FRIES, 4)}
        assert body.failed_targets == []
        assert store.product_stock(FRIES) == 46

    def test_unknown_item_is_422(self, service):
        req = CheckoutRequest(lines=[{"item_id": UNKNOWN, "quantity": 1}])
        with pytest.raises(HTTPException) as exc:
            asyncio.run(checkout.checkout(req, service=service))
        assert exc.value.status_code == 422
        assert exc.value.detail["unknown_item_ids"] == [str(UNKNOWN)]

    def test_insufficient_stock_is_409_with_targets(self, store, service):
        store.ingredients[FLOUR] = replace(store.ingredients[FLOUR], stock_quantity=Decimal("0.3"))
        req = CheckoutRequest(lines=[{"item_id": BREAD, "quantity": 1}, {"item_id": JUICE, "quantity": 1}])

        with pytest.raises(HTTPException) as exc:
            asyncio.run(checkout.checkout(req, service=service))

        assert exc.value.status_code == 409
        detail = exc.value.detail
        assert detail["success"] is False
        assert [t["target_id"] for t in detail["applied_targets"]] == [JUICE]
        assert [(t["target_id"], t["reason"]) for t in detail["failed_targets"]] == [(FLOUR, "insufficient_stock")]


class TestCatalogWriteRoutes:
    def test_create_catalog_entries(self, sql_store):
        async def scenario():
            category = await catalog.create_category(CategoryCreate(name="Bakery"), store=sql_store)
            flour = await catalog.create_ingredient(
                IngredientCreate(name="Flour", unit_of_measurement="kg", cost_per_unit="2.00", stock_quantity="50"),
                store=sql_store,
            )
            bread = await catalog.create_product(
                ProductCreate(
                    name="Bread",
                    selling_price="5.00",
                    category_id=category.id,
                    stock=12,
                    recipe_items=[{"ingredient_id": flour.id, "quantity": "0.5"}],
                ),
                store=sql_store,
            )
            cost = await catalog.get_item_cost(bread.id, service=CheckoutService(sql_store))
            return flour, bread, cost

        flour, bread, cost = asyncio.run(scenario())
        assert flour.stock_quantity == Decimal("50")
        assert bread.stock == 12
        assert not bread.is_bundle
        assert cost.cost == Decimal("1.00")

    def test_duplicate_category_is_409(self, sql_store):
        async def scenario():
            await catalog.create_category(CategoryCreate(name="Drinks"), store=sql_store)
            await catalog.create_category(CategoryCreate(name="Drinks"), store=sql_store)

        with pytest.raises(HTTPException) as exc:
            asyncio.run(scenario())
        assert exc.value.status_code == 409

    def test_nested_bundle_is_409(self, sql_store):
        async def scenario():
            fries = await catalog.create_product(ProductCreate(name="Fries", selling_price="3"), store=sql_store)
            combo = await catalog.create_product(
                ProductCreate(name="Combo", selling_price="10", is_bundle=True, items=[{"item_product_id": fries.id}]),
                store=sql_store,
            )
            await catalog.create_product(
                ProductCreate(name="Mega", selling_price="20", is_bundle=True, items=[{"item_product_id": combo.id}]),
                store=sql_store,
            )

        with pytest.raises(HTTPException) as exc:
            asyncio.run(scenario())
        assert exc.value.status_code == 409
        assert "nested" in exc.value.detail

    def test_restock_ingredient(self, sql_store):
        async def scenario():
            flour = await catalog.create_ingredient(
                IngredientCreate(name="Flour", unit_of_measurement="kg", cost_per_unit="2.00", stock_quantity="1"),
                store=sql_store,
            )
            return await catalog.update_ingredient(
                flour.id, IngredientUpdate(stock_quantity="30"), store=sql_store
            )

        flour = asyncio.run(scenario())
        assert flour.stock_quantity == Decimal("30")
        assert flour.cost_per_unit == Decimal("2.00")

    def test_replace_bundle_composition(self, sql_store):
        async def scenario():
            fries = await catalog.create_product(ProductCreate(name="Fries", selling_price="3"), store=sql_store)
            juice = await catalog.create_product(ProductCreate(name="Juice", selling_price="2"), store=sql_store)
            combo = await catalog.create_product(
                ProductCreate(name="Combo", selling_price="10", is_bundle=True, items=[{"item_product_id": fries.id}]),
                store=sql_store,
            )
            updated = await catalog.update_product(
                combo.id,
                ProductUpdate(
                    name="Combo",
                    selling_price="11",
                    is_bundle=True,
                    items=[{"item_product_id": fries.id}, {"item_product_id": juice.id, "quantity": 2}],
                ),
                store=sql_store,
            )
            snapshot = await sql_store.load_catalog()
            return juice, updated, snapshot

        juice, updated, snapshot = asyncio.run(scenario())
        assert updated.selling_price == Decimal("11")
        assert updated.stock == 0
        assert (juice.id, 2) in {(r.component_id, r.quantity) for r in snapshot.bundle_rows}

    def test_delete_component_in_use_is_409(self, sql_store):
        async def scenario():
            fries = await catalog.create_product(ProductCreate(name="Fries", selling_price="3"), store=sql_store)
            await catalog.create_product(
                ProductCreate(name="Combo", selling_price="10", is_bundle=True, items=[{"item_product_id": fries.id}]),
                store=sql_store,
            )
            await catalog.delete_product(fries.id, store=sql_store)

        with pytest.raises(HTTPException) as exc:
            asyncio.run(scenario())
        assert exc.value.status_code == 409

    def test_delete_entries(self, sql_store):
        async def scenario():
            category = await catalog.create_category(CategoryCreate(name="Drinks"), store=sql_store)
            salt = await catalog.create_ingredient(
                IngredientCreate(name="Salt", unit_of_measurement="kg", cost_per_unit="0.5"), store=sql_store
            )
            juice = await catalog.create_product(
                ProductCreate(name="Juice", selling_price="2", category_id=category.id), store=sql_store
            )
            await catalog.delete_product(juice.id, store=sql_store)
            await catalog.delete_ingredient(salt.id, store=sql_store)
            await catalog.delete_category(category.id, store=sql_store)
            return await sql_store.load_catalog()

        snapshot = asyncio.run(scenario())
        assert snapshot.items == ()
        assert snapshot.ingredients == ()

    @pytest.mark.parametrize(
        "call",
        [
            lambda s, i: catalog.update_category(i, CategoryCreate(name="X"), store=s),
            lambda s, i: catalog.delete_category(i, store=s),
            lambda s, i: catalog.update_ingredient(i, IngredientUpdate(name="X"), store=s),
            lambda s, i: catalog.delete_ingredient(i, store=s),
            lambda s, i: catalog.update_product(i, ProductUpdate(name="X", selling_price="1"), store=s),
            lambda s, i: catalog.delete_product(i, store=s),
        ],
    )
    def test_unknown_ids_are_404(self, sql_store, call):
        with pytest.raises(HTTPException) as exc:
            asyncio.run(call(sql_store, uuid.uuid4()))
        assert exc.value.status_code == 404
