from __future__ import annotations

import itertools
import tempfile
from collections.abc import Callable
from pathlib import Path

from stockbook.entities import Category, Price, Product
from stockbook.services.clock import ManualScheduler
from stockbook.services.inventory_coordinator import InventoryCoordinator
from stockbook.services.local_snapshot_backend import MemorySnapshotBackend
from stockbook.services.scalar_store import ScalarStore
from stockbook.services.structured_store import StructuredStore


class TickClock:
    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.value = start

    def __call__(self) -> int:
        self.value += 1
        return self.value


class StoreFixture:
    def __init__(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.structured_path = self.root / 'inventory.sqlite3'
        self.scalar_path = self.root / 'scalars.sqlite3'
        self.structured_url = f'sqlite+aiosqlite:///{self.structured_path}'
        self.scalar_url = f'sqlite:///{self.scalar_path}'
        self.structured_store = StructuredStore(self.structured_url)
        self.scalar_store = ScalarStore(self.scalar_url)
        self.scheduler = ManualScheduler()
        self.snapshots = MemorySnapshotBackend(clock=TickClock())
        self._ids = itertools.count(1)
        self._extra_stores: list[StructuredStore] = []

    def coordinator(
        self,
        *,
        structured_store: StructuredStore | None = None,
        clock: Callable[[], int] | None = None,
    ) -> InventoryCoordinator:
        return InventoryCoordinator(
            structured_store=structured_store or self.structured_store,
            scalar_store=self.scalar_store,
            snapshot_backend=self.snapshots,
            scheduler=self.scheduler,
            autosync_delay=7.0,
            clock=clock or TickClock(),
            id_factory=lambda: f'sale-{next(self._ids)}',
        )

    async def reopened_coordinator(self) -> InventoryCoordinator:
        store = StructuredStore(self.structured_url)
        coordinator = self.coordinator(structured_store=store)
        await coordinator.initialize()
        self._extra_stores.append(store)
        return coordinator

    async def close(self) -> None:
        for store in self._extra_stores:
            await store.close()
        await self.structured_store.close()
        self.scalar_store.close()
        self._tmp.cleanup()


def widget(*, quantity: int = 5, price: str = '100/80', product_id: str = 'p1') -> Product:
    return Product(
        id=product_id,
        name='Widget',
        price=Price.parse(price),
        quantity=quantity,
        category_id='c1',
        barcode='111',
        image='',
    )


def category(category_id: str = 'c1', name: str = 'Tools') -> Category:
    return Category(id=category_id, name=name, image='')
