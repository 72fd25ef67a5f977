from __future__ import annotations

from stockbook.entities import Product


def normalize_sort_text(value: str | None) -> str:
    return (value or '').strip().casefold()


def product_name_sort_key(product: Product) -> tuple[str, str, str]:
    # Codepoint ordering on the folded name, then the raw name and id so ties are total.
    return (normalize_sort_text(product.name), product.name, product.id)
