from __future__ import annotations

import json
import unittest
from datetime import date
from decimal import Decimal

from stockbook.entities import Price, Product, SaleRecord, StateBundle
from stockbook.errors import ValidationFailure
from stockbook.schemas import bundle_from_json, bundle_to_json
from stockbook.services.export_service import export_bundle, export_filename, parse_import
from stockbook.services.inventory_queries import filter_products, sales_total, total_inventory_value

from support import category, widget


def _product(product_id: str, name: str, *, barcode: str = '', category_id: str = 'c1') -> Product:
    return Product(id=product_id, name=name, price=Price.parse('1'), quantity=1, category_id=category_id, barcode=barcode)


class PriceTests(unittest.TestCase):
    def test_parse_retail_and_wholesale(self) -> None:
        self.assertEqual(Price.parse('$1,200.50 / 900'), Price(Decimal('1200.50'), Decimal('900')))
        self.assertEqual(Price.parse('12'), Price(Decimal('12'), None))
        self.assertEqual(Price.parse('12/'), Price(Decimal('12'), None))

    def test_malformed_retail_is_zero(self) -> None:
        for text in ('', None, 'abc', '1.2.3/5'):
            self.assertEqual(Price.parse(text).retail, Decimal('0'), text)

    def test_only_digits_and_dots_are_kept(self) -> None:
        # Commas read as thousands separators, and a second dot makes the amount malformed.
        self.assertEqual(Price.parse('12,50').retail, Decimal('1250'))
        self.assertEqual(Price.parse('1.2.3').retail, Decimal('0'))
        self.assertEqual(Price.parse('USD 4.5').retail, Decimal('4.5'))

    def test_format(self) -> None:
        self.assertEqual(Price(Decimal('100'), Decimal('80')).format(), '100/80')
        self.assertEqual(Price(Decimal('9.99')).format(), '9.99')


class BundleCodecTests(unittest.TestCase):
    def test_json_uses_camel_case_and_numeric_money(self) -> None:
        sale = SaleRecord('s1', 'p1', 'Widget', '', 2, Decimal('12.5'), 1_700_000_000_000)
        bundle = StateBundle(categories=(category(),), products=(widget(),), sales=(sale,), earnings=Decimal('25'))

        document = json.loads(bundle_to_json(bundle))

        self.assertEqual(document['earnings'], 25)
        self.assertEqual(document['products'][0]['categoryId'], 'c1')
        self.assertEqual(document['products'][0]['price'], '100/80')
        self.assertEqual(document['sales'][0]['soldAtPrice'], 12.5)
        self.assertEqual(bundle_from_json(bundle_to_json(bundle)), bundle)

    def test_money_beyond_float_precision_survives_a_round_trip(self) -> None:
        bundle = StateBundle(earnings=Decimal('12345678901234567.89'))

        document = json.loads(bundle_to_json(bundle))

        self.assertEqual(document['earnings'], '12345678901234567.89')
        self.assertEqual(bundle_from_json(bundle_to_json(bundle)).earnings, Decimal('12345678901234567.89'))
        self.assertEqual(json.loads(bundle_to_json(StateBundle(earnings=Decimal('19.99'))))['earnings'], 19.99)

    def test_accepts_legacy_earnings_name_and_null_collections(self) -> None:
        bundle = bundle_from_json('{"categories": null, "products": null, "sales": null, "totalEarnings": 42.5}')

        self.assertEqual(bundle, StateBundle(earnings=Decimal('42.5')))

    def test_missing_earnings_defaults_to_zero(self) -> None:
        self.assertEqual(bundle_from_json('{"earnings": null}').earnings, Decimal('0'))

    def test_invalid_documents_raise_validation_failure(self) -> None:
        for text in ('not json', '{"products": [{"name": "no id"}]}', '{"sales": [{"id": "s", "productId": "p", "quantity": 0, "soldAtPrice": 1, "timestamp": 1}]}'):
            with self.assertRaises(ValidationFailure, msg=text):
                bundle_from_json(text)


class ExportTests(unittest.TestCase):
    def test_filename_carries_the_date(self) -> None:
        self.assertEqual(export_filename(today=date(2026, 10, 18)), 'stockbook_backup_2026-10-18.json')
        self.assertEqual(export_filename(prefix='shop', today=date(2026, 1, 2)), 'shop_2026-01-02.json')

    def test_export_is_indented_and_reimportable(self) -> None:
        bundle = StateBundle(categories=(category(),), products=(widget(),), earnings=Decimal('3'))

        text = export_bundle(bundle)

        self.assertIn('\n  "categories"', text)
        self.assertEqual(parse_import(text), bundle)
        self.assertEqual(parse_import(text.encode()), bundle)


class InventoryQueryTests(unittest.TestCase):
    def test_totals(self) -> None:
        products = [widget(quantity=3, price='10/5'), widget(quantity=0, price='99', product_id='p2')]
        sales = [
            SaleRecord('s1', 'p1', 'Widget', '', 2, Decimal('10'), 1),
            SaleRecord('s2', 'p1', 'Widget', '', 1, Decimal('0.5'), 2),
        ]

        self.assertEqual(total_inventory_value(products), Decimal('30'))
        self.assertEqual(total_inventory_value([]), Decimal('0'))
        self.assertEqual(sales_total(sales), Decimal('20.5'))

    def test_filter_matches_name_or_barcode_case_insensitively(self) -> None:
        products = [
            _product('1', 'Cola', barcode='500'),
            _product('2', 'apple juice', barcode='123COLA'),
            _product('3', 'Bread', category_id='c2'),
        ]

        self.assertEqual([p.id for p in filter_products(products, query='cola')], ['2', '1'])
        self.assertEqual([p.id for p in filter_products(products, query=' 500 ')], ['1'])
        self.assertEqual([p.id for p in filter_products(products, category_id='c2')], ['3'])

    def test_sort_ignores_case_and_is_total(self) -> None:
        products = [_product('b', 'beta'), _product('a2', 'Alpha'), _product('a1', 'alpha'), _product('z', 'Zed')]

        ascending = [p.id for p in filter_products(products)]
        descending = [p.id for p in filter_products(products, descending=True)]

        self.assertEqual(ascending, ['a2', 'a1', 'b', 'z'])
        self.assertEqual(descending, list(reversed(ascending)))


if __name__ == '__main__':
    unittest.main()
