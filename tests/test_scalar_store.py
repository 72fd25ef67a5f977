from __future__ import annotations

import unittest
from decimal import Decimal

from stockbook.entities import Identity, NavigationState, ViewState
from stockbook.services.scalar_store import APP_STATE, TOTAL_EARNINGS, USER, ScalarStore, parse_earnings

from support import StoreFixture


class ParseEarningsTests(unittest.TestCase):
    def test_unparseable_values_clamp_to_zero(self) -> None:
        for raw in (None, '', 'abc', 'NaN', 'Infinity'):
            self.assertEqual(parse_earnings(raw), Decimal('0'), raw)

    def test_parses_decimal_text(self) -> None:
        self.assertEqual(parse_earnings(' 1250.75 '), Decimal('1250.75'))


class ScalarStoreTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.fixture = StoreFixture()
        self.scalars = self.fixture.scalar_store

    async def asyncTearDown(self) -> None:
        await self.fixture.close()

    async def test_set_get_delete(self) -> None:
        self.assertIsNone(self.scalars.get_scalar('missing'))
        self.scalars.set_scalar('k', 'one')
        self.scalars.set_scalar('k', 'two')
        self.assertEqual(self.scalars.get_scalar('k'), 'two')
        self.scalars.delete_scalar('k')
        self.assertIsNone(self.scalars.get_scalar('k'))

    async def test_earnings_round_trip_and_nan_guard(self) -> None:
        self.scalars.save_earnings(Decimal('200.50'))
        self.assertEqual(self.scalars.get_scalar(TOTAL_EARNINGS), '200.50')
        self.assertEqual(self.scalars.get_earnings(), Decimal('200.50'))

        self.scalars.save_earnings(Decimal('NaN'))
        self.assertEqual(self.scalars.get_earnings(), Decimal('0'))

        self.scalars.set_scalar(TOTAL_EARNINGS, 'garbage')
        self.assertEqual(self.scalars.get_earnings(), Decimal('0'))

    async def test_identity_and_navigation(self) -> None:
        identity = Identity(email='owner@shop.test', name='Owner', picture='https://example.test/me.png')
        navigation = NavigationState(view=ViewState.SEARCH, search_query='cola')

        self.scalars.save_identity(identity)
        self.scalars.save_navigation(navigation)

        self.assertEqual(self.scalars.get_identity(), identity)
        self.assertEqual(self.scalars.get_navigation(), navigation)
        self.scalars.clear_identity()
        self.assertIsNone(self.scalars.get_identity())

    async def test_unreadable_structured_values_are_ignored(self) -> None:
        self.scalars.set_scalar(USER, '{not json')
        self.scalars.set_scalar(APP_STATE, '{"view": "NOWHERE"}')

        with self.assertLogs('stockbook.services.scalar_store', level='WARNING'):
            self.assertIsNone(self.scalars.get_identity())
            self.assertIsNone(self.scalars.get_navigation())

    async def test_key_prefix_applies_to_app_keys(self) -> None:
        prefixed = ScalarStore(self.fixture.scalar_url, key_prefix='Shop_')
        try:
            prefixed.save_earnings(Decimal('5'))
            self.assertEqual(self.scalars.get_scalar('Shop_TOTAL_EARNINGS'), '5')
            self.assertIsNone(self.scalars.get_scalar(TOTAL_EARNINGS))
        finally:
            prefixed.close()


if __name__ == '__main__':
    unittest.main()
