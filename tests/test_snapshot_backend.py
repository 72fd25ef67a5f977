from __future__ import annotations

import unittest
from decimal import Decimal

from stockbook.config import Settings
from stockbook.entities import Identity, StateBundle
from stockbook.errors import ValidationFailure
from stockbook.services.local_snapshot_backend import LocalSnapshotBackend, MemorySnapshotBackend
from stockbook.services.provider_factory import get_snapshot_backend
from stockbook.services.snapshot_provider import snapshot_key

from support import StoreFixture, TickClock, category, widget


class SnapshotKeyTests(unittest.TestCase):
    def test_key_is_scoped_by_lowercased_email(self) -> None:
        self.assertEqual(snapshot_key(Identity(email='  Owner@Shop.Test ')), 'cloud-scope:owner@shop.test')


class LocalSnapshotBackendTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.fixture = StoreFixture()
        self.backend = LocalSnapshotBackend(self.fixture.scalar_store, latency_seconds=0, clock=TickClock(100))

    async def asyncTearDown(self) -> None:
        await self.fixture.close()

    async def test_push_then_pull_returns_stamped_bundle(self) -> None:
        bundle = StateBundle(categories=(category(),), products=(widget(),), earnings=Decimal('12.5'))

        pushed = await self.backend.push(Identity(email='Owner@Shop.test'), bundle)
        pulled = await self.backend.pull(Identity(email='owner@shop.test'))

        self.assertEqual(pushed.last_updated, 101)
        self.assertEqual(pulled, pushed)
        self.assertIsNotNone(self.fixture.scalar_store.get_scalar('cloud-scope:owner@shop.test'))

    async def test_large_amounts_are_kept_exactly(self) -> None:
        identity = Identity(email='owner@shop.test')
        await self.backend.push(identity, StateBundle(earnings=Decimal('12345678901234567.89')))

        pulled = await self.backend.pull(identity)

        self.assertEqual(pulled.earnings, Decimal('12345678901234567.89'))

    async def test_pull_without_backup_is_none(self) -> None:
        self.assertIsNone(await self.backend.pull(Identity(email='nobody@shop.test')))

    async def test_unreadable_backup_is_treated_as_missing(self) -> None:
        self.fixture.scalar_store.set_scalar('cloud-scope:owner@shop.test', '[1, 2')

        with self.assertLogs('stockbook.services.local_snapshot_backend', level='ERROR'):
            self.assertIsNone(await self.backend.pull(Identity(email='owner@shop.test')))

    async def test_blank_email_is_rejected(self) -> None:
        with self.assertRaises(ValidationFailure):
            await self.backend.push(Identity(email='  '), StateBundle())


class MemorySnapshotBackendTests(unittest.IsolatedAsyncioTestCase):
    async def test_bundles_are_kept_per_scope(self) -> None:
        backend = MemorySnapshotBackend(clock=TickClock(0))

        await backend.push(Identity(email='a@shop.test'), StateBundle(earnings=Decimal('1')))
        await backend.push(Identity(email='b@shop.test'), StateBundle(earnings=Decimal('2')))

        self.assertEqual((await backend.pull(Identity(email='A@shop.test'))).earnings, Decimal('1'))
        self.assertEqual(sorted(backend.bundles), ['cloud-scope:a@shop.test', 'cloud-scope:b@shop.test'])


class ProviderFactoryTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.fixture = StoreFixture()

    async def asyncTearDown(self) -> None:
        await self.fixture.close()

    async def test_backend_selection(self) -> None:
        memory = get_snapshot_backend(Settings(snapshot_backend=' Memory '), self.fixture.scalar_store)
        local = get_snapshot_backend(
            Settings(snapshot_backend='local', snapshot_latency_seconds=0.25), self.fixture.scalar_store
        )

        self.assertIsInstance(memory, MemorySnapshotBackend)
        self.assertIsInstance(local, LocalSnapshotBackend)
        self.assertEqual(local.latency_seconds, 0.25)


if __name__ == '__main__':
    unittest.main()
