from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable, Iterable
from dataclasses import replace
from decimal import Decimal, InvalidOperation

from stockbook.entities import (
    Category,
    Identity,
    NavigationState,
    Product,
    SaleRecord,
    StateBundle,
    ViewState,
)
from stockbook.errors import PartialSaleFailure, ValidationFailure, WriteFailure
from stockbook.services.clock import Debouncer, LoopScheduler, Scheduler, now_ms
from stockbook.services.inventory_queries import filter_products, sales_total, total_inventory_value
from stockbook.services.scalar_store import ScalarStore
from stockbook.services.snapshot_provider import SnapshotBackend
from stockbook.services.structured_store import CATEGORIES, PRODUCTS, SALES, StructuredStore

logger = logging.getLogger(__name__)

SALE_STEP_RECORD = 'sale_record'
SALE_STEP_STOCK = 'stock_update'


def _new_id() -> str:
    return uuid.uuid4().hex


def _require_id(entity_id: str, kind: str) -> None:
    if not isinstance(entity_id, str) or not entity_id.strip():
        raise ValidationFailure(f'{kind} id is required')


def _is_count(value, *, minimum: int) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= minimum


def _to_unit_price(value) -> Decimal:
    try:
        price = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise ValidationFailure(f'Invalid unit price {value!r}') from None
    if not price.is_finite() or price < 0:
        raise ValidationFailure(f'Invalid unit price {value!r}')
    return price


def _merge_by_id(items: list, item) -> list:
    for index, existing in enumerate(items):
        if existing.id == item.id:
            return [*items[:index], item, *items[index + 1 :]]
    return [*items, item]


def _check_unique(kind: str, ids: Iterable[str]) -> None:
    seen: set[str] = set()
    for entity_id in ids:
        _require_id(entity_id, kind)
        if entity_id in seen:
            raise ValidationFailure(f'Duplicate {kind.lower()} id {entity_id!r}')
        seen.add(entity_id)


def _oldest_first(sales: Iterable[SaleRecord]) -> list[SaleRecord]:
    # Bundles list sales newest first; store them oldest first so reload order matches.
    return sorted(reversed(list(sales)), key=lambda sale: sale.timestamp)


def validate_bundle(bundle: StateBundle) -> None:
    _check_unique('Category', (category.id for category in bundle.categories))
    _check_unique('Product', (product.id for product in bundle.products))
    _check_unique('Sale', (sale.id for sale in bundle.sales))
    for product in bundle.products:
        if not _is_count(product.quantity, minimum=0):
            raise ValidationFailure(f'Product {product.id!r} has an invalid quantity')
    for sale in bundle.sales:
        if not _is_count(sale.quantity, minimum=1):
            raise ValidationFailure(f'Sale {sale.id!r} has an invalid quantity')
    if not bundle.earnings.is_finite():
        raise ValidationFailure('Earnings must be a finite number')


class InventoryCoordinator:
    """Owns the in-memory inventory and keeps it consistent with the durable stores.

    Every mutation is serialized through one lock and written to the stores before the
    in-memory copy changes. After any state change a backup push is debounced; it only
    fires once the coordinator is loaded and an identity is signed in.
    """

    def __init__(
        self,
        *,
        structured_store: StructuredStore,
        scalar_store: ScalarStore,
        snapshot_backend: SnapshotBackend,
        scheduler: Scheduler | None = None,
        autosync_delay: float = 7.0,
        clock: Callable[[], int] = now_ms,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._store = structured_store
        self._scalars = scalar_store
        self._snapshots = snapshot_backend
        self._clock = clock
        self._new_id = id_factory
        self._lock = asyncio.Lock()
        self._autosync = Debouncer(scheduler or LoopScheduler(), autosync_delay, self._autosync_push)

        self._loaded = False
        self._categories: list[Category] = []
        self._products: list[Product] = []
        self._sales: list[SaleRecord] = []
        self._earnings = Decimal('0')
        self._navigation = NavigationState()
        self._identity: Identity | None = None
        self._last_synced_at: int | None = None

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def categories(self) -> tuple[Category, ...]:
        return tuple(self._categories)

    @property
    def products(self) -> tuple[Product, ...]:
        return tuple(self._products)

    @property
    def sales(self) -> tuple[SaleRecord, ...]:
        return tuple(self._sales)

    @property
    def earnings(self) -> Decimal:
        return self._earnings

    @property
    def navigation(self) -> NavigationState:
        return self._navigation

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def last_synced_at(self) -> int | None:
        return self._last_synced_at

    @property
    def autosync_pending(self) -> bool:
        return self._autosync.pending

    def get_product(self, product_id: str) -> Product | None:
        for product in self._products:
            if product.id == product_id:
                return product
        return None

    async def initialize(self) -> None:
        await self._store.open()
        await self._load_from_stores()
        self._identity = self._scalars.get_identity()
        self._navigation = self._scalars.get_navigation() or NavigationState()
        self._loaded = True
        logger.info(
            'Loaded %s categories, %s products, %s sales',
            len(self._categories),
            len(self._products),
            len(self._sales),
        )

    async def close(self) -> None:
        self._autosync.cancel()
        self._loaded = False

    async def _load_from_stores(self) -> None:
        categories, products, sales = await asyncio.gather(
            self._store.get_all(CATEGORIES),
            self._store.get_all(PRODUCTS),
            self._store.get_all(SALES),
        )
        self._categories = list(categories)
        self._products = list(products)
        # Rows come back in insertion order, so a later row wins a timestamp tie.
        ordered = sorted(enumerate(sales), key=lambda item: (item[1].timestamp, item[0]), reverse=True)
        self._sales = [sale for _, sale in ordered]
        self._earnings = self._scalars.get_earnings()

    def _state_changed(self) -> None:
        if self._loaded and self._identity is not None:
            self._autosync.trigger()

    async def _autosync_push(self) -> None:
        identity = self._identity
        if not self._loaded or identity is None:
            return
        await self.push_snapshot(identity)
        logger.info('Automatic backup pushed for %s', identity.scope)

    async def wait_for_autosync(self) -> None:
        await self._autosync.wait_idle()

    async def upsert_category(self, category: Category) -> Category:
        _require_id(category.id, 'Category')
        async with self._lock:
            await self._store.upsert(CATEGORIES, category)
            self._categories = _merge_by_id(self._categories, category)
        self._state_changed()
        return category

    async def upsert_product(self, product: Product) -> Product:
        _require_id(product.id, 'Product')
        if not _is_count(product.quantity, minimum=0):
            raise ValidationFailure('Product quantity must be a whole number of zero or more')
        async with self._lock:
            await self._store.upsert(PRODUCTS, product)
            self._products = _merge_by_id(self._products, product)
        self._state_changed()
        return product

    async def delete_product(self, product_id: str) -> bool:
        async with self._lock:
            await self._store.delete(PRODUCTS, product_id)
            remaining = [product for product in self._products if product.id != product_id]
            removed = len(remaining) != len(self._products)
            self._products = remaining
        if removed:
            self._state_changed()
        return removed

    async def record_sale(self, product_id: str, quantity: int, unit_price) -> SaleRecord | None:
        """Sell ``quantity`` units; the product is removed once its stock runs out.

        Returns ``None`` when the product no longer exists. The sale record and the stock
        change are committed together; the earnings total is a separate scalar write, so
        a failure there raises ``PartialSaleFailure`` naming the steps already saved.
        """
        if not _is_count(quantity, minimum=1):
            raise ValidationFailure('Sale quantity must be a positive whole number')
        price = _to_unit_price(unit_price)

        async with self._lock:
            product = self.get_product(product_id)
            if product is None:
                logger.info('Ignoring sale for missing product %s', product_id)
                return None

            sale = SaleRecord(
                id=self._new_id(),
                product_id=product.id,
                product_name=product.name,
                product_image=product.image,
                quantity=quantity,
                sold_at_price=price,
                timestamp=self._clock(),
            )
            remaining = product.quantity - quantity
            restocked = replace(product, quantity=remaining) if remaining > 0 else None
            try:
                await self._store.commit_sale(
                    sale,
                    product=restocked,
                    removed_product_id=None if restocked else product.id,
                )
            except WriteFailure as exc:
                logger.error('Sale of %s x%s was not saved; no steps completed', product.id, quantity)
                raise PartialSaleFailure('Sale could not be recorded') from exc

            self._sales.insert(0, sale)
            if restocked is None:
                self._products = [item for item in self._products if item.id != product.id]
            else:
                self._products = _merge_by_id(self._products, restocked)

            current = self._earnings if self._earnings.is_finite() else Decimal('0')
            new_earnings = current + price * quantity
            try:
                self._scalars.save_earnings(new_earnings)
            except WriteFailure as exc:
                completed = (SALE_STEP_RECORD, SALE_STEP_STOCK)
                logger.error(
                    'Sale %s saved but earnings were not updated; completed steps: %s',
                    sale.id,
                    ', '.join(completed),
                )
                self._state_changed()
                raise PartialSaleFailure('Sale saved but earnings were not updated', completed_steps=completed) from exc
            self._earnings = new_earnings

        self._state_changed()
        return sale

    async def restore_full_state(self, bundle: StateBundle) -> None:
        """Replace every collection and the earnings total, then reload from the stores.

        Callers are expected to have confirmed the overwrite with the user.
        """
        validate_bundle(bundle)
        async with self._lock:
            try:
                await self._store.replace_all(
                    {
                        CATEGORIES: bundle.categories,
                        PRODUCTS: bundle.products,
                        SALES: _oldest_first(bundle.sales),
                    }
                )
                self._scalars.save_earnings(bundle.earnings)
            finally:
                await self._load_from_stores()
        logger.info(
            'Restored %s categories, %s products, %s sales',
            len(bundle.categories),
            len(bundle.products),
            len(bundle.sales),
        )
        self._state_changed()

    async def reset_earnings(self) -> None:
        async with self._lock:
            await self._store.replace_all({SALES: ()})
            self._sales = []
            self._scalars.save_earnings(Decimal('0'))
            self._earnings = Decimal('0')
        logger.info('Earnings and sales log reset')
        self._state_changed()

    async def reconcile_earnings(self) -> Decimal:
        async with self._lock:
            total = sales_total(self._sales)
            if total != self._earnings:
                logger.warning('Earnings %s drifted from sales log total %s; resetting', self._earnings, total)
            self._scalars.save_earnings(total)
            self._earnings = total
        self._state_changed()
        return total

    def snapshot(self) -> StateBundle:
        return StateBundle(
            categories=tuple(self._categories),
            products=tuple(self._products),
            sales=tuple(self._sales),
            earnings=self._earnings,
        )

    async def push_snapshot(self, identity: Identity | None = None) -> StateBundle:
        target = identity or self._identity
        if target is None:
            raise ValidationFailure('Sign in before backing up')
        pushed = await self._snapshots.push(target, self.snapshot())
        self._last_synced_at = pushed.last_updated
        return pushed

    async def pull_snapshot(self, identity: Identity | None = None) -> StateBundle | None:
        target = identity or self._identity
        if target is None:
            raise ValidationFailure('Sign in before restoring a backup')
        return await self._snapshots.pull(target)

    async def sign_in(self, identity: Identity) -> StateBundle | None:
        """Remember ``identity`` and return its cloud backup, if one exists."""
        if not identity.scope:
            raise ValidationFailure('An email is required to sign in')
        self._scalars.save_identity(identity)
        self._identity = identity
        self._state_changed()
        return await self.pull_snapshot(identity)

    def sign_out(self) -> None:
        self._autosync.cancel()
        self._scalars.clear_identity()
        self._identity = None

    def set_navigation(self, navigation: NavigationState) -> None:
        self._navigation = navigation
        if self._loaded:
            self._scalars.save_navigation(navigation)

    def apply_scan(self, code: str) -> NavigationState:
        navigation = replace(self._navigation, view=ViewState.SEARCH, search_query=code.strip())
        self.set_navigation(navigation)
        return navigation

    def total_inventory_value(self) -> Decimal:
        return total_inventory_value(self._products)

    def sales_total(self) -> Decimal:
        return sales_total(self._sales)

    def filtered_products(
        self,
        *,
        category_id: str | None = None,
        query: str = '',
        descending: bool = False,
    ) -> list[Product]:
        return filter_products(self._products, category_id=category_id, query=query, descending=descending)
