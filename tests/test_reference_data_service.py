from __future__ import annotations

import unittest
from decimal import Decimal

from ledger_fixtures import make_session_factory, seed_catalog

from warehouse_ledger.db import session_scope
from warehouse_ledger.errors import InvalidArgument, NotFound
from warehouse_ledger.services import reference_data_service as refs


class ReferenceDataServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.factory = make_session_factory()
        with session_scope(self.factory) as db:
            self.catalog = seed_catalog(db)

    def test_new_products_get_code_and_zero_price(self) -> None:
        with session_scope(self.factory) as db:
            detail = refs.get_product_detail(db, product_id=self.catalog.milk_id)

        self.assertRegex(detail['product_code'], r'^P-\d+-\d{4}$')
        self.assertEqual(detail['current_sale_price'], Decimal('0'))
        self.assertEqual(detail['category_name'], 'Groceries')
        self.assertEqual(detail['supplier_name'], 'Acme Foods')

    def test_update_product_and_list_active(self) -> None:
        with session_scope(self.factory) as db:
            refs.update_product(
                db,
                product_id=self.catalog.bread_id,
                name='Rye Bread',
                category_id=self.catalog.category_id,
                unit_id=self.catalog.unit_id,
                supplier_id=self.catalog.supplier_id,
                active=False,
                current_sale_price=Decimal('2.75'),
            )

        with session_scope(self.factory) as db:
            active = refs.list_active_products(db)
            bread = refs.get_product_detail(db, product_id=self.catalog.bread_id)

        self.assertEqual([item['name'] for item in active], ['Milk'])
        self.assertEqual(bread['name'], 'Rye Bread')
        self.assertEqual(bread['current_sale_price'], Decimal('2.75'))
        self.assertFalse(bread['active'])

    def test_warehouse_toggle_hides_it_from_active_list(self) -> None:
        with session_scope(self.factory) as db:
            refs.set_warehouse_active(db, warehouse_id=self.catalog.other_warehouse_id, active=False)

        with session_scope(self.factory) as db:
            names = [row.name for row in refs.list_active_warehouses(db)]

        self.assertEqual(names, ['Main'])

    def test_validation_and_missing_references(self) -> None:
        with session_scope(self.factory) as db:
            with self.assertRaises(InvalidArgument):
                refs.create_warehouse(db, name='   ')
            with self.assertRaises(InvalidArgument):
                refs.create_product(
                    db,
                    name='Butter',
                    category_id=self.catalog.category_id,
                    unit_id=self.catalog.unit_id,
                    supplier_id=self.catalog.supplier_id,
                    current_sale_price=Decimal('-1'),
                )
            with self.assertRaises(InvalidArgument):
                refs.create_product(
                    db,
                    name='Butter',
                    category_id=self.catalog.category_id,
                    unit_id=self.catalog.unit_id,
                    supplier_id=self.catalog.supplier_id,
                    current_sale_price=Decimal('1.234'),
                )
            with self.assertRaises(NotFound):
                refs.create_product(
                    db, name='Butter', category_id=999, unit_id=self.catalog.unit_id, supplier_id=self.catalog.supplier_id
                )
            with self.assertRaises(NotFound):
                refs.get_product_detail(db, product_id=999)


if __name__ == '__main__':
    unittest.main()
