"""
Tests for the initial schema migration.
"""
from unittest.mock import patch

import pytest
from sqlalchemy import inspect

from bikeshop_backend.core.database import Base
from bikeshop_backend.migrations import initial_schema


@pytest.mark.asyncio
async def test_creates_tables_and_active_alert_index(engine):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    with patch.object(initial_schema, "engine", engine):
        await initial_schema.run_migration()

    async with engine.connect() as conn:
        tables = await conn.run_sync(lambda c: set(inspect(c).get_table_names()))
        indexes = await conn.run_sync(lambda c: {i["name"]: i for i in inspect(c).get_indexes("alerts")})

    assert {"categories", "products", "alerts", "stock_movements"} <= tables
    assert indexes["uq_alerts_product_type_active"]["unique"]
