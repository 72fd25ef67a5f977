from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from stockbook.entities import Product, SaleRecord
from stockbook.services.sort_utils import product_name_sort_key


def total_inventory_value(products: Iterable[Product]) -> Decimal:
    return sum((product.price.retail * product.quantity for product in products), Decimal('0'))


def sales_total(sales: Iterable[SaleRecord]) -> Decimal:
    return sum((sale.amount for sale in sales), Decimal('0'))


def filter_products(
    products: Iterable[Product],
    *,
    category_id: str | None = None,
    query: str = '',
    descending: bool = False,
) -> list[Product]:
    matches = list(products)
    if category_id:
        matches = [product for product in matches if product.category_id == category_id]
    needle = query.strip().lower()
    if needle:
        matches = [
            product
            for product in matches
            if needle in product.name.lower() or needle in product.barcode.lower()
        ]
    return sorted(matches, key=product_name_sort_key, reverse=descending)
