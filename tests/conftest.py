import asyncio

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from retail_pos.core.graph import build_catalog_graph
from retail_pos.core.memory_store import InMemoryCatalogStore
from retail_pos.db.database import Base
from retail_pos.db.store import SqlCatalogStore

from .catalog_data import (
    catalog_bundle_rows,
    catalog_ingredients,
    catalog_items,
    catalog_recipe_rows,
)


@pytest.fixture
def store():
    return InMemoryCatalogStore(
        items=catalog_items(),
        ingredients=catalog_ingredients(),
        bundle_rows=catalog_bundle_rows(),
        recipe_rows=catalog_recipe_rows(),
    )


@pytest.fixture
def snapshot(store):
    return asyncio.run(store.load_catalog())


@pytest.fixture
def graph(snapshot):
    return build_catalog_graph(snapshot)


@pytest.fixture
def session_maker(tmp_path):
    """Session factory bound to a fresh SQLite file with all tables created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'pos.db'}", poolclass=NullPool)

    async def create_tables():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(create_tables())
    yield async_sessionmaker(engine, expire_on_commit=False)
    asyncio.run(engine.dispose())


@pytest.fixture
def sql_store(session_maker):
    return SqlCatalogStore(session_maker)
