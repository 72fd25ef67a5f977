from __future__ import annotations

from decimal import Decimal
from typing import Annotated

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, PlainSerializer, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from stockbook.entities import (
    Category,
    Identity,
    NavigationState,
    Price,
    Product,
    SaleRecord,
    StateBundle,
    ViewState,
)
from stockbook.errors import ValidationFailure


def money_to_json(value: Decimal) -> float | str:
    # A JSON number when a float carries the amount exactly, otherwise its decimal text.
    as_float = float(value)
    if Decimal(repr(as_float)) == value:
        return as_float
    return format(value, 'f')


Money = Annotated[Decimal, PlainSerializer(money_to_json, return_type=float | str, when_used='json')]


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra='ignore',
    )


class CategoryPayload(WireModel):
    id: str
    name: str = ''
    image: str = ''

    @classmethod
    def from_entity(cls, category: Category) -> CategoryPayload:
        return cls(id=category.id, name=category.name, image=category.image)

    def to_entity(self) -> Category:
        return Category(id=self.id, name=self.name, image=self.image)


class ProductPayload(WireModel):
    id: str
    name: str = ''
    price: str = ''
    quantity: int = Field(default=0, ge=0)
    category_id: str = ''
    barcode: str = ''
    image: str = ''

    @classmethod
    def from_entity(cls, product: Product) -> ProductPayload:
        return cls(
            id=product.id,
            name=product.name,
            price=product.price.format(),
            quantity=product.quantity,
            category_id=product.category_id,
            barcode=product.barcode,
            image=product.image,
        )

    def to_entity(self) -> Product:
        return Product(
            id=self.id,
            name=self.name,
            price=Price.parse(self.price),
            quantity=self.quantity,
            category_id=self.category_id,
            barcode=self.barcode,
            image=self.image,
        )


class SalePayload(WireModel):
    id: str
    product_id: str
    product_name: str = ''
    product_image: str = ''
    quantity: int = Field(gt=0)
    sold_at_price: Money
    timestamp: int

    @classmethod
    def from_entity(cls, sale: SaleRecord) -> SalePayload:
        return cls(
            id=sale.id,
            product_id=sale.product_id,
            product_name=sale.product_name,
            product_image=sale.product_image,
            quantity=sale.quantity,
            sold_at_price=sale.sold_at_price,
            timestamp=sale.timestamp,
        )

    def to_entity(self) -> SaleRecord:
        return SaleRecord(
            id=self.id,
            product_id=self.product_id,
            product_name=self.product_name,
            product_image=self.product_image,
            quantity=self.quantity,
            sold_at_price=self.sold_at_price,
            timestamp=self.timestamp,
        )


class IdentityPayload(WireModel):
    email: str = Field(min_length=1)
    name: str = ''
    picture: str = ''

    @classmethod
    def from_entity(cls, identity: Identity) -> IdentityPayload:
        return cls(email=identity.email, name=identity.name, picture=identity.picture)

    def to_entity(self) -> Identity:
        return Identity(email=self.email, name=self.name, picture=self.picture)


class NavigationPayload(WireModel):
    view: ViewState = ViewState.HOME
    selected_category_id: str | None = None
    search_query: str = ''

    @classmethod
    def from_entity(cls, navigation: NavigationState) -> NavigationPayload:
        return cls(
            view=navigation.view,
            selected_category_id=navigation.selected_category_id,
            search_query=navigation.search_query,
        )

    def to_entity(self) -> NavigationState:
        return NavigationState(
            view=self.view,
            selected_category_id=self.selected_category_id or None,
            search_query=self.search_query,
        )


class BundlePayload(WireModel):
    categories: list[CategoryPayload] = Field(default_factory=list)
    products: list[ProductPayload] = Field(default_factory=list)
    sales: list[SalePayload] = Field(default_factory=list)
    # Older exports call the running total "totalEarnings".
    earnings: Money = Field(default=Decimal('0'), validation_alias=AliasChoices('earnings', 'totalEarnings'))
    last_updated: int | None = None

    @field_validator('categories', 'products', 'sales', mode='before')
    @classmethod
    def _null_collection_is_empty(cls, value):
        return [] if value is None else value

    @field_validator('earnings', mode='before')
    @classmethod
    def _null_earnings_is_zero(cls, value):
        return Decimal('0') if value is None else value

    @classmethod
    def from_entity(cls, bundle: StateBundle) -> BundlePayload:
        return cls(
            categories=[CategoryPayload.from_entity(item) for item in bundle.categories],
            products=[ProductPayload.from_entity(item) for item in bundle.products],
            sales=[SalePayload.from_entity(item) for item in bundle.sales],
            earnings=bundle.earnings,
            last_updated=bundle.last_updated,
        )

    def to_entity(self) -> StateBundle:
        return StateBundle(
            categories=tuple(item.to_entity() for item in self.categories),
            products=tuple(item.to_entity() for item in self.products),
            sales=tuple(item.to_entity() for item in self.sales),
            earnings=self.earnings,
            last_updated=self.last_updated,
        )


class SaleRequest(WireModel):
    product_id: str
    quantity: int
    unit_price: Money


class RestoreRequest(WireModel):
    confirm: bool = False
    bundle: BundlePayload


class ScanRequest(WireModel):
    code: str


class StatePayload(WireModel):
    loaded: bool
    categories: list[CategoryPayload]
    products: list[ProductPayload]
    sales: list[SalePayload]
    earnings: Money
    inventory_value: Money
    navigation: NavigationPayload
    identity: IdentityPayload | None = None
    last_synced_at: int | None = None


def _invalid(kind: str, exc: ValidationError) -> ValidationFailure:
    return ValidationFailure(f'Invalid {kind}: {exc.error_count()} error(s); first: {exc.errors()[0]["msg"]}')


def bundle_to_json(bundle: StateBundle, *, indent: int | None = None) -> str:
    return BundlePayload.from_entity(bundle).model_dump_json(by_alias=True, indent=indent)


def bundle_from_json(text: str | bytes) -> StateBundle:
    try:
        return BundlePayload.model_validate_json(text).to_entity()
    except ValidationError as exc:
        raise _invalid('state bundle', exc) from exc


def identity_to_json(identity: Identity) -> str:
    return IdentityPayload.from_entity(identity).model_dump_json(by_alias=True)


def identity_from_json(text: str) -> Identity:
    try:
        return IdentityPayload.model_validate_json(text).to_entity()
    except ValidationError as exc:
        raise _invalid('identity', exc) from exc


def navigation_to_json(navigation: NavigationState) -> str:
    return NavigationPayload.from_entity(navigation).model_dump_json(by_alias=True)


def navigation_from_json(text: str) -> NavigationState:
    try:
        return NavigationPayload.model_validate_json(text).to_entity()
    except ValidationError as exc:
        raise _invalid('navigation state', exc) from exc
