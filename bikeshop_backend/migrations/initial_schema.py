#!/usr/bin/env python3
"""
Bike Shop ERP - Initial Schema Migration

This migration creates:
1. categories and products
2. alerts, including the partial unique index on (product_id, type)
   for active alerts
3. stock_movements with the (product_id, created_at) index

Safe to re-run: existing tables are left untouched.

Run with: python -m bikeshop_backend.migrations.initial_schema
"""
import asyncio

from bikeshop_backend.core.database import Base, engine
import bikeshop_backend.models  # noqa: F401  registers the tables on Base.metadata


async def run_migration():
    """Create every table and index that does not exist yet."""
    async with engine.begin() as conn:
        print("=" * 70)
        print("BIKE SHOP ERP - INITIAL SCHEMA MIGRATION")
        print("=" * 70)

        await conn.run_sync(Base.metadata.create_all)

        for table in Base.metadata.sorted_tables:
            print(f"  + {table.name}")
            for index in sorted(table.indexes, key=lambda i: i.name):
                print(f"      index {index.name}")

    print("\nMigration complete.")


async def main():
    try:
        await run_migration()
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
