from __future__ import annotations

import asyncio

from stockbook.config import Settings, settings
from stockbook.entities import Category, Price, Product
from stockbook.services.inventory_coordinator import InventoryCoordinator
from stockbook.services.provider_factory import get_snapshot_backend
from stockbook.services.scalar_store import ScalarStore
from stockbook.services.structured_store import StructuredStore

DEMO_CATEGORIES = [
    Category(id='cat-drinks', name='Drinks'),
    Category(id='cat-snacks', name='Snacks'),
    Category(id='cat-household', name='Household'),
]

DEMO_PRODUCTS = [
    Product(id='prd-cola', name='Cola 1L', price=Price.parse('120/100'), quantity=24, category_id='cat-drinks', barcode='6130000000011'),
    Product(id='prd-water', name='Mineral Water 1.5L', price=Price.parse('40/32'), quantity=48, category_id='cat-drinks', barcode='6130000000028'),
    Product(id='prd-chips', name='Salted Chips', price=Price.parse('60'), quantity=30, category_id='cat-snacks', barcode='6130000000035'),
    Product(id='prd-soap', name='Dish Soap', price=Price.parse('180/150'), quantity=12, category_id='cat-household', barcode='6130000000042'),
]


async def seed(cfg: Settings = settings) -> tuple[int, int]:
    structured_store = StructuredStore(cfg.structured_store_url_normalized)
    scalar_store = ScalarStore(cfg.scalar_store_url_normalized, key_prefix=cfg.scalar_key_prefix)
    coordinator = InventoryCoordinator(
        structured_store=structured_store,
        scalar_store=scalar_store,
        snapshot_backend=get_snapshot_backend(cfg, scalar_store),
    )
    try:
        await coordinator.initialize()
        existing_categories = {category.id for category in coordinator.categories}
        existing_products = {product.id for product in coordinator.products}
        created_categories = 0
        created_products = 0
        for category in DEMO_CATEGORIES:
            if category.id not in existing_categories:
                await coordinator.upsert_category(category)
                created_categories += 1
        for product in DEMO_PRODUCTS:
            if product.id not in existing_products:
                await coordinator.upsert_product(product)
                created_products += 1
        return created_categories, created_products
    finally:
        await coordinator.close()
        await structured_store.close()
        scalar_store.close()


if __name__ == '__main__':
    categories_created, products_created = asyncio.run(seed())
    print(f'Seed data inserted/verified: categories={categories_created}, products={products_created}')
