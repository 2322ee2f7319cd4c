"""
Seed a small demo catalog.

Creates:
- ingredients Flour (2.00/kg), Beef patty (3.00/unit), Potatoes (2.00/kg)
- Bread made from 0.5 kg Flour, priced 5.00
- Burger (1 patty) and Fries (0.5 kg potatoes), both stocked
- ComboMeal bundle = 1x Burger + 2x Fries

Safe to re-run: does nothing when a product named "ComboMeal" already exists.

Run:
  python -m retail_pos.scripts.seed_demo_data
"""

from __future__ import annotations

import asyncio
from decimal import Decimal

from sqlalchemy import select

from retail_pos.core.checkout import CheckoutService
from retail_pos.core.log_config import configure_logging
from retail_pos.db.database import async_session_maker, create_db_and_tables
from retail_pos.db.product import Product
from retail_pos.db.store import SqlCatalogStore


async def main() -> None:
    configure_logging()
    await create_db_and_tables()

    async with async_session_maker() as db:
        existing = (await db.execute(select(Product.id).where(Product.name == "ComboMeal"))).first()
    if existing:
        print("Demo catalog already present, nothing to do.")
        return

    store = SqlCatalogStore(async_session_maker)

    bakery = await store.create_category("Bakery")
    kitchen = await store.create_category("Kitchen")
    meals = await store.create_category("Meals")

    flour = await store.create_ingredient(
        name="Flour", unit_of_measurement="kg", cost_per_unit=Decimal("2.00"), stock_quantity=Decimal("100")
    )
    patty = await store.create_ingredient(
        name="Beef patty", unit_of_measurement="unit", cost_per_unit=Decimal("3.00"), stock_quantity=Decimal("40")
    )
    potatoes = await store.create_ingredient(
        name="Potatoes", unit_of_measurement="kg", cost_per_unit=Decimal("2.00"), stock_quantity=Decimal("25")
    )

    await store.create_product(
        name="Bread",
        selling_price=Decimal("5.00"),
        stock=30,
        category_id=bakery.id,
        recipe=[(flour.id, Decimal("0.5"))],
    )
    burger = await store.create_product(
        name="Burger",
        selling_price=Decimal("8.50"),
        stock=20,
        category_id=kitchen.id,
        recipe=[(patty.id, Decimal("1"))],
    )
    fries = await store.create_product(
        name="Fries",
        selling_price=Decimal("3.00"),
        stock=50,
        category_id=kitchen.id,
        recipe=[(potatoes.id, Decimal("0.5"))],
    )
    await store.create_product(
        name="ComboMeal",
        selling_price=Decimal("12.00"),
        is_bundle=True,
        category_id=meals.id,
        components=[(burger.id, 1), (fries.id, 2)],
    )

    service = CheckoutService(store)
    for item in await service.catalog_overview():
        print(f"{item.name:<12} price={item.selling_price} cost={item.cost} margin={item.margin_percent}%")
    print("Done.")


if __name__ == "__main__":
    asyncio.run(main())
