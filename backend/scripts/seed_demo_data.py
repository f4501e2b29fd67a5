"""
Seed demo catalog + inventory.

Run locally:
  cd backend && python -m scripts.seed_demo_data

Uses the same DATABASE_URL as the API (dotenv supported by core.config).
Idempotent: existing categories/products/warehouses/inventory rows are kept.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select

from core.config import settings
from core.errors import ConflictError
from core.logging import configure_logging, get_logger
from db.category import Category
from db.database import Database
from db.inventory import InventoryLedger
from db.product import Product
from db.warehouse import Warehouse

logger = get_logger(__name__)


@dataclass(frozen=True)
class SeedProduct:
    sku: str
    name: str
    category: str
    unit_of_measure: str = "piece"


@dataclass(frozen=True)
class SeedStock:
    sku: str
    warehouse: str
    quantity: int
    min_threshold: int = 0
    max_threshold: Optional[int] = None


SEED_CATEGORIES = ["Electronics", "Office Supplies", "Furniture"]

SEED_WAREHOUSES = [
    ("Main Warehouse", "1 Harbour Road"),
    ("Secondary Warehouse", "22 Industrial Park"),
]

SEED_PRODUCTS = [
    SeedProduct(sku="EL-USB-C-1M", name="USB-C Cable 1m", category="Electronics"),
    SeedProduct(sku="EL-MOUSE-WL", name="Wireless Mouse", category="Electronics"),
    SeedProduct(sku="OF-A4-500", name="A4 Paper (500 sheets)", category="Office Supplies", unit_of_measure="ream"),
    SeedProduct(sku="FU-CHAIR-ERG", name="Ergonomic Chair", category="Furniture"),
]

SEED_STOCK = [
    SeedStock(sku="EL-USB-C-1M", warehouse="Main Warehouse", quantity=250, min_threshold=50, max_threshold=1000),
    SeedStock(sku="EL-MOUSE-WL", warehouse="Main Warehouse", quantity=12, min_threshold=20),
    SeedStock(sku="OF-A4-500", warehouse="Main Warehouse", quantity=80, min_threshold=30),
    SeedStock(sku="OF-A4-500", warehouse="Secondary Warehouse", quantity=0, min_threshold=10),
    SeedStock(sku="FU-CHAIR-ERG", warehouse="Secondary Warehouse", quantity=15, min_threshold=5, max_threshold=40),
]


async def main() -> None:
    configure_logging(settings.log_level, json=settings.log_json)
    database = Database(settings.database_url, echo=settings.database_echo)
    database.connect()
    await database.create_all()
    ledger = InventoryLedger(database, lock_timeout=settings.lock_timeout_seconds)

    try:
        async with database.session_maker() as db:
            # 1) Categories + warehouses (by name)
            categories: dict[str, Category] = {}
            for name in SEED_CATEGORIES:
                m = (await db.execute(select(Category).where(Category.name == name))).scalars().first()
                if m is None:
                    m = Category(name=name)
                    db.add(m)
                categories[name] = m

            warehouses: dict[str, Warehouse] = {}
            for name, address in SEED_WAREHOUSES:
                m = (await db.execute(select(Warehouse).where(Warehouse.name == name))).scalars().first()
                if m is None:
                    m = Warehouse(name=name, address=address)
                    db.add(m)
                warehouses[name] = m
            await db.flush()

            # 2) Products (by SKU)
            products: dict[str, Product] = {}
            for sp in SEED_PRODUCTS:
                m = (await db.execute(select(Product).where(Product.sku == sp.sku))).scalar_one_or_none()
                if m is None:
                    m = Product(
                        sku=sp.sku,
                        name=sp.name,
                        unit_of_measure=sp.unit_of_measure,
                        category_id=categories[sp.category].id,
                    )
                    db.add(m)
                products[sp.sku] = m
            await db.commit()

        # 3) Inventory through the ledger
        created = 0
        for st in SEED_STOCK:
            try:
                await ledger.create(
                    product_id=products[st.sku].id,
                    warehouse_id=warehouses[st.warehouse].id,
                    quantity=st.quantity,
                    min_threshold=st.min_threshold,
                    max_threshold=st.max_threshold,
                )
                created += 1
            except ConflictError:
                continue

        logger.info("Seed complete", inventory_created=created, inventory_total=len(SEED_STOCK))
    finally:
        await database.dispose()


if __name__ == "__main__":
    asyncio.run(main())
