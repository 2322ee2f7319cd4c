import uuid
from decimal import Decimal

import pytest
from pydantic import ValidationError

from retail_pos.schemas.catalog import CategoryCreate, IngredientCreate, IngredientUpdate, ProductCreate
from retail_pos.schemas.checkout import CheckoutRequest

BURGER = uuid.uuid4()
FRIES = uuid.uuid4()
FLOUR = uuid.uuid4()


class TestProductCreate:
    def test_bundle_stock_is_ignored(self):
        p = ProductCreate(
            name="ComboMeal",
            selling_price=Decimal("12.00"),
            is_bundle=True,
            stock=40,
            items=[{"item_product_id": BURGER, "quantity": 1}, {"item_product_id": FRIES, "quantity": 2}],
        )
        assert p.stock == 0
        assert [i.quantity for i in p.items] == [1, 2]

    def test_bundle_needs_items(self):
        with pytest.raises(ValidationError, match="at least one item"):
            ProductCreate(name="Empty", selling_price=Decimal("1"), is_bundle=True)

    def test_bundle_cannot_have_recipe(self):
        with pytest.raises(ValidationError, match="recipe"):
            ProductCreate(
                name="Odd",
                selling_price=Decimal("1"),
                is_bundle=True,
                items=[{"item_product_id": BURGER}],
                recipe_items=[{"ingredient_id": FLOUR, "quantity": "0.5"}],
            )

    def test_items_only_on_bundles(self):
        with pytest.raises(ValidationError, match="only bundles"):
            ProductCreate(name="Burger", selling_price=Decimal("8"), items=[{"item_product_id": FRIES}])

    def test_duplicate_components(self):
        with pytest.raises(ValidationError, match="unique"):
            ProductCreate(
                name="Combo",
                selling_price=Decimal("10"),
                is_bundle=True,
                items=[{"item_product_id": FRIES}, {"item_product_id": FRIES}],
            )

    def test_duplicate_recipe_ingredients(self):
        with pytest.raises(ValidationError, match="unique"):
            ProductCreate(
                name="Bread",
                selling_price=Decimal("5"),
                recipe_items=[
                    {"ingredient_id": FLOUR, "quantity": "0.5"},
                    {"ingredient_id": FLOUR, "quantity": "0.1"},
                ],
            )

    @pytest.mark.parametrize("field,value", [("selling_price", "-1"), ("stock", -1), ("name", "  ")])
    def test_rejects_invalid_fields(self, field, value):
        data = {"name": "Bread", "selling_price": "5", field: value}
        with pytest.raises(ValidationError):
            ProductCreate(**data)

    def test_component_quantity_at_least_one(self):
        with pytest.raises(ValidationError):
            ProductCreate(
                name="Combo", selling_price="10", is_bundle=True, items=[{"item_product_id": FRIES, "quantity": 0}]
            )

    def test_recipe_quantity_positive(self):
        with pytest.raises(ValidationError):
            ProductCreate(name="Bread", selling_price="5", recipe_items=[{"ingredient_id": FLOUR, "quantity": "0"}])


class TestIngredientCreate:
    def test_strips_names(self):
        ing = IngredientCreate(name="  Flour ", unit_of_measurement=" kg", cost_per_unit="2.00")
        assert ing.name == "Flour"
        assert ing.unit_of_measurement == "kg"
        assert ing.low_stock_threshold == Decimal("10")

    def test_negative_cost(self):
        with pytest.raises(ValidationError, match="negative"):
            IngredientCreate(name="Flour", unit_of_measurement="kg", cost_per_unit="-0.01")

    def test_category_name_required(self):
        with pytest.raises(ValidationError):
            CategoryCreate(name="")


class TestIngredientUpdate:
    def test_only_sent_fields_are_set(self):
        update = IngredientUpdate(stock_quantity="40", name=" Rye flour ")
        assert update.model_dump(exclude_unset=True) == {"stock_quantity": Decimal("40"), "name": "Rye flour"}

    @pytest.mark.parametrize("field", ["cost_per_unit", "stock_quantity", "low_stock_threshold"])
    def test_negative_amounts(self, field):
        with pytest.raises(ValidationError, match="negative"):
            IngredientUpdate(**{field: "-1"})

    def test_blank_name(self):
        with pytest.raises(ValidationError, match="empty"):
            IngredientUpdate(name="   ")


class TestCheckoutRequest:
    def test_valid_cart(self):
        req = CheckoutRequest(lines=[{"item_id": BURGER, "quantity": 2}], payment_method="Card")
        assert req.lines[0].quantity == 2

    def test_quantity_must_be_positive(self):
        with pytest.raises(ValidationError):
            CheckoutRequest(lines=[{"item_id": BURGER, "quantity": 0}])

    def test_unknown_payment_method(self):
        with pytest.raises(ValidationError):
            CheckoutRequest(lines=[], payment_method="Bitcoin")
