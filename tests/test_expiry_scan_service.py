from __future__ import annotations

import os
import tempfile
import threading
import unittest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import patch

from ledger_fixtures import RecordingDispatcher, in_line, make_session_factory, seed_catalog, stock_in
from sqlalchemy import func, select

from warehouse_ledger.db import session_scope
from warehouse_ledger.errors import InvalidArgument
from warehouse_ledger.models import EXPIRY_POLICY_KEY, ExpiryAlertRecord, StockInTransaction
from warehouse_ledger.services.expiry_scan_service import (
    ExpiringBatch,
    compose_alert_message,
    find_expiring_batches,
    list_expiring_batches,
    run_expiry_scan,
)
from warehouse_ledger.services.notification_policy_service import update_policy
from warehouse_ledger.services.stock_in_service import record_stock_in

TODAY = date(2024, 3, 1)


class ExpiryScanServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.factory = make_session_factory()
        with session_scope(self.factory) as db:
            self.catalog = seed_catalog(db)
            update_policy(db, key=EXPIRY_POLICY_KEY, horizon_days=7, active=True)
            self.entry = record_stock_in(
                db,
                stock_in(
                    self.catalog,
                    [
                        in_line(self.catalog, self.catalog.milk_id, '12', expiry_date=TODAY + timedelta(days=2)),
                        in_line(self.catalog, self.catalog.bread_id, '5', expiry_date=TODAY + timedelta(days=30)),
                        in_line(self.catalog, self.catalog.bread_id, '1'),
                    ],
                ),
            )
        self.milk_line_id = self.entry['items'][0]['id']

    def _scan(self, dispatcher: RecordingDispatcher, today: date = TODAY):
        with session_scope(self.factory) as db:
            return run_expiry_scan(db, dispatcher=dispatcher, today=today)

    def _record_count(self) -> int:
        with session_scope(self.factory) as db:
            return db.scalar(select(func.count(ExpiryAlertRecord.id)))

    def test_find_expiring_batches_applies_inclusive_window(self) -> None:
        with session_scope(self.factory) as db:
            on_edge = find_expiring_batches(db, today=TODAY, horizon_days=2)
            too_short = find_expiring_batches(db, today=TODAY, horizon_days=1)
            already_expired = find_expiring_batches(db, today=TODAY + timedelta(days=3), horizon_days=7)
            expiring_today = find_expiring_batches(db, today=TODAY + timedelta(days=2), horizon_days=0)

        self.assertEqual([batch.stock_in_line_id for batch in on_edge], [self.milk_line_id])
        self.assertEqual(on_edge[0].days_left, 2)
        self.assertEqual(on_edge[0].warehouse_name, 'Main')
        self.assertEqual(too_short, [])
        self.assertEqual(already_expired, [])
        self.assertEqual(expiring_today[0].days_left, 0)

    def test_inactive_transaction_is_ignored(self) -> None:
        with session_scope(self.factory) as db:
            db.get(StockInTransaction, self.entry['id']).active = False
        with session_scope(self.factory) as db:
            self.assertEqual(find_expiring_batches(db, today=TODAY, horizon_days=60), [])

    def test_list_expiring_batches_uses_policy_horizon_unless_overridden(self) -> None:
        with session_scope(self.factory) as db:
            by_policy = list_expiring_batches(db, today=TODAY)
            wide = list_expiring_batches(db, today=TODAY, horizon_days=30)
            with self.assertRaises(InvalidArgument):
                list_expiring_batches(db, today=TODAY, horizon_days=-1)

        self.assertEqual(by_policy['days_before_expiry'], 7)
        self.assertEqual(by_policy['total_count'], 1)
        self.assertEqual(by_policy['items'][0]['product_name'], 'Milk')
        self.assertEqual(wide['total_count'], 2)

    def test_each_batch_is_alerted_once_per_channel(self) -> None:
        dispatcher = RecordingDispatcher()

        first = self._scan(dispatcher)
        second = self._scan(dispatcher, today=TODAY + timedelta(days=1))

        self.assertEqual((first.candidates, first.sent, first.skipped), (1, 1, 0))
        self.assertEqual((second.candidates, second.sent, second.skipped), (1, 0, 1))
        self.assertEqual(len(dispatcher.messages), 1)
        self.assertEqual(self._record_count(), 1)

        other_channel = RecordingDispatcher(channel='ops')
        third = self._scan(other_channel)
        self.assertEqual(third.sent, 1)
        self.assertEqual(self._record_count(), 2)

    def test_failed_dispatch_is_retried_on_next_run(self) -> None:
        failing = RecordingDispatcher(fail_on={'Milk'})

        result = self._scan(failing)

        self.assertEqual((result.sent, result.failed), (0, 1))
        self.assertEqual(self._record_count(), 0)

        healthy = RecordingDispatcher()
        retried = self._scan(healthy, today=TODAY + timedelta(days=1))
        self.assertEqual(retried.sent, 1)
        self.assertIn('Days left: 1', healthy.messages[0])

    def test_failure_on_one_batch_does_not_block_others(self) -> None:
        with session_scope(self.factory) as db:
            update_policy(db, key=EXPIRY_POLICY_KEY, horizon_days=30, active=True)
        dispatcher = RecordingDispatcher(fail_on={'Bread'})

        result = self._scan(dispatcher)

        self.assertEqual((result.candidates, result.sent, result.failed), (2, 1, 1))
        self.assertEqual(len(dispatcher.messages), 1)
        with session_scope(self.factory) as db:
            recorded = db.scalars(select(ExpiryAlertRecord.stock_in_line_id)).all()
        self.assertEqual(recorded, [self.milk_line_id])

    def test_unexpected_error_is_isolated_to_its_batch(self) -> None:
        with session_scope(self.factory) as db:
            update_policy(db, key=EXPIRY_POLICY_KEY, horizon_days=30, active=True)
        dispatcher = RecordingDispatcher()

        with patch(
            'warehouse_ledger.services.expiry_scan_service.compose_alert_message',
            side_effect=[RuntimeError('boom'), 'second batch'],
        ):
            with self.assertLogs('warehouse_ledger.services.expiry_scan_service', level='ERROR'):
                result = self._scan(dispatcher)

        self.assertEqual((result.sent, result.failed), (1, 1))
        self.assertEqual(dispatcher.messages, ['second batch'])

    def test_alert_recorded_by_a_concurrent_run_counts_as_skipped(self) -> None:
        with session_scope(self.factory) as db:
            db.add(ExpiryAlertRecord(stock_in_line_id=self.milk_line_id, channel='test', sent_at=datetime.now(tz=timezone.utc)))
        dispatcher = RecordingDispatcher()

        with patch('warehouse_ledger.services.expiry_scan_service.already_alerted', return_value=False):
            result = self._scan(dispatcher)

        self.assertEqual((result.sent, result.skipped, result.failed), (0, 1, 0))
        self.assertEqual(self._record_count(), 1)

    def test_inactive_policy_skips_scan_entirely(self) -> None:
        with session_scope(self.factory) as db:
            update_policy(db, key=EXPIRY_POLICY_KEY, horizon_days=7, active=False)
        dispatcher = RecordingDispatcher()

        result = self._scan(dispatcher)

        self.assertFalse(result.active)
        self.assertEqual(result.candidates, 0)
        self.assertEqual(dispatcher.messages, [])
        self.assertEqual(self._record_count(), 0)

    def test_compose_alert_message(self) -> None:
        batch = ExpiringBatch(
            stock_in_line_id=1,
            product_id=2,
            product_name='Milk',
            warehouse_id=3,
            warehouse_name='Main',
            quantity=Decimal('12.000'),
            unit_name='pcs',
            expiry_date=date(2024, 3, 3),
            days_left=2,
        )

        self.assertEqual(
            compose_alert_message(batch),
            'Expiry date is approaching!\n\n'
            'Product: Milk\n'
            'Warehouse: Main\n'
            'Quantity: 12.000 pcs\n'
            'Expiry date: 2024-03-03\n'
            'Days left: 2',
        )


class BlockingDispatcher(RecordingDispatcher):
    def __init__(self) -> None:
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def send(self, text: str) -> None:
        self.entered.set()
        self.release.wait(timeout=10)
        super().send(text)


class OverlappingScanTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.factory = make_session_factory(f"sqlite:///{os.path.join(self.tmpdir.name, 'ledger.db')}")
        with session_scope(self.factory) as db:
            self.catalog = seed_catalog(db)
            update_policy(db, key=EXPIRY_POLICY_KEY, horizon_days=7, active=True)
            record_stock_in(
                db,
                stock_in(
                    self.catalog,
                    [in_line(self.catalog, self.catalog.milk_id, '12', expiry_date=TODAY + timedelta(days=2))],
                ),
            )

    def tearDown(self) -> None:
        self.factory.kw['bind'].dispose()
        self.tmpdir.cleanup()

    def _scan(self, dispatcher: RecordingDispatcher):
        with session_scope(self.factory) as db:
            return run_expiry_scan(db, dispatcher=dispatcher, today=TODAY)

    def test_second_run_is_turned_away_while_first_holds_the_lease(self) -> None:
        blocking = BlockingDispatcher()
        results = []
        overlapping = RecordingDispatcher()
        first = threading.Thread(target=lambda: results.append(self._scan(blocking)))
        first.start()
        try:
            self.assertTrue(blocking.entered.wait(timeout=10))
            self.assertIsNone(self._scan(overlapping))
        finally:
            blocking.release.set()
            first.join(timeout=10)

        self.assertEqual(len(results), 1)
        self.assertEqual((results[0].sent, results[0].failed), (1, 0))
        self.assertEqual(len(blocking.messages), 1)
        self.assertEqual(overlapping.messages, [])
        with session_scope(self.factory) as db:
            self.assertEqual(db.scalar(select(func.count(ExpiryAlertRecord.id))), 1)

        later = self._scan(RecordingDispatcher())
        self.assertEqual((later.sent, later.skipped), (0, 1))


if __name__ == '__main__':
    unittest.main()
