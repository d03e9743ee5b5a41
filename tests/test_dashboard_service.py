from __future__ import annotations

import unittest
from datetime import date
from decimal import Decimal

from ledger_fixtures import in_line, make_session_factory, out_line, seed_catalog, stock_in, stock_out

from warehouse_ledger.db import session_scope
from warehouse_ledger.services.dashboard_service import daily_stock_in_summary, daily_top_sales
from warehouse_ledger.services.stock_in_service import record_stock_in
from warehouse_ledger.services.stock_out_service import record_stock_out

DAY = date(2024, 3, 1)


class DashboardServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.factory = make_session_factory()
        with session_scope(self.factory) as db:
            self.catalog = seed_catalog(db)
            record_stock_in(
                db,
                stock_in(
                    self.catalog,
                    [
                        in_line(self.catalog, self.catalog.milk_id, '2', purchase_price='3', sale_price='5'),
                        in_line(self.catalog, self.catalog.bread_id, '4', purchase_price='1', sale_price='20'),
                    ],
                    on=DAY,
                ),
            )
            record_stock_in(
                db,
                stock_in(
                    self.catalog,
                    [in_line(self.catalog, self.catalog.milk_id, '3', purchase_price='4', sale_price='5')],
                    on=DAY,
                    invoice_number='INV-2',
                ),
            )
            record_stock_in(
                db,
                stock_in(self.catalog, [in_line(self.catalog, self.catalog.milk_id, '10')], on=date(2024, 3, 2)),
            )

    def test_stock_in_summary_groups_by_product_for_the_day(self) -> None:
        with session_scope(self.factory) as db:
            summary = daily_stock_in_summary(db, on_date=DAY)

        self.assertEqual(summary['date'], DAY)
        items = {item['product_name']: item for item in summary['items']}
        self.assertEqual(list(items), ['Bread', 'Milk'])
        self.assertEqual(items['Milk']['total_quantity'], Decimal('5'))
        self.assertEqual(items['Milk']['total_purchase_amount'], Decimal('18'))
        self.assertEqual(items['Milk']['unit_name'], 'pcs')
        self.assertEqual(items['Milk']['currency_name'], 'USD')
        self.assertEqual(items['Bread']['total_purchase_amount'], Decimal('4'))

    def test_top_sales_are_ordered_by_total_amount(self) -> None:
        with session_scope(self.factory) as db:
            record_stock_out(
                db,
                stock_out(
                    self.catalog,
                    [
                        out_line(self.catalog, self.catalog.milk_id, '2'),
                        out_line(self.catalog, self.catalog.bread_id, '1'),
                        out_line(self.catalog, self.catalog.milk_id, '1', price='6'),
                    ],
                    on=DAY,
                ),
            )

        with session_scope(self.factory) as db:
            top = daily_top_sales(db, on_date=DAY)
            other_day = daily_top_sales(db, on_date=date(2024, 3, 2))

        self.assertEqual([item['product_name'] for item in top['items']], ['Bread', 'Milk'])
        self.assertEqual(top['items'][0]['total_sale_amount'], Decimal('20'))
        self.assertEqual(top['items'][1]['total_sale_amount'], Decimal('16'))
        self.assertEqual(top['items'][1]['total_quantity'], Decimal('3'))
        self.assertEqual(other_day['items'], [])


if __name__ == '__main__':
    unittest.main()
