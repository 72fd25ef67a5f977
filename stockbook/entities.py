"""Domain value types shared by the stores, the coordinator and the wire codec.

All types are frozen so a value handed across a boundary can never be mutated by the
receiver; collections are exchanged as tuples.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum

_AMOUNT_NOISE = re.compile(r'[^\d.]')


def parse_amount(text: str | None) -> Decimal | None:
    cleaned = _AMOUNT_NOISE.sub('', text or '')
    if not cleaned:
        return None
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def format_amount(value: Decimal) -> str:
    return format(value, 'f')


@dataclass(frozen=True)
class Price:
    retail: Decimal = Decimal('0')
    wholesale: Decimal | None = None

    @classmethod
    def parse(cls, text: str | None) -> Price:
        # "retail[/wholesale]"; a malformed retail part is worth zero.
        retail_text, _, wholesale_text = (text or '').partition('/')
        retail = parse_amount(retail_text)
        wholesale = parse_amount(wholesale_text) if wholesale_text.strip() else None
        return cls(retail=retail if retail is not None else Decimal('0'), wholesale=wholesale)

    def format(self) -> str:
        if self.wholesale is None:
            return format_amount(self.retail)
        return f'{format_amount(self.retail)}/{format_amount(self.wholesale)}'


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    image: str = ''


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    price: Price = field(default_factory=Price)
    quantity: int = 0
    category_id: str = ''
    barcode: str = ''
    image: str = ''


@dataclass(frozen=True)
class SaleRecord:
    id: str
    product_id: str
    product_name: str
    product_image: str
    quantity: int
    sold_at_price: Decimal
    timestamp: int

    @property
    def amount(self) -> Decimal:
        return self.sold_at_price * self.quantity


@dataclass(frozen=True)
class Identity:
    email: str
    name: str = ''
    picture: str = ''

    @property
    def scope(self) -> str:
        return self.email.strip().lower()


class ViewState(str, Enum):
    HOME = 'HOME'
    CATEGORY_DETAIL = 'CATEGORY_DETAIL'
    SEARCH = 'SEARCH'
    ADD_PRODUCT = 'ADD_PRODUCT'
    ADD_CATEGORY = 'ADD_CATEGORY'
    SALE = 'SALE'
    SALES_LOG = 'SALES_LOG'


@dataclass(frozen=True)
class NavigationState:
    view: ViewState = ViewState.HOME
    selected_category_id: str | None = None
    search_query: str = ''


@dataclass(frozen=True)
class StateBundle:
    categories: tuple[Category, ...] = ()
    products: tuple[Product, ...] = ()
    sales: tuple[SaleRecord, ...] = ()
    earnings: Decimal = Decimal('0')
    last_updated: int | None = None
