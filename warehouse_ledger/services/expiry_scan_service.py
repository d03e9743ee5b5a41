from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from warehouse_ledger.config import settings
from warehouse_ledger.errors import DispatchFailure, InvalidArgument
from warehouse_ledger.models import (
    ExpiryAlertRecord,
    Product,
    StockInLine,
    StockInTransaction,
    Unit,
    Warehouse,
)
from warehouse_ledger.services import job_lease_service
from warehouse_ledger.services.alert_dispatcher import AlertDispatcher
from warehouse_ledger.services.notification_policy_service import resolve_scan_params

logger = logging.getLogger(__name__)

EXPIRY_SCAN_LEASE = 'expiry_scan'


@dataclass(frozen=True)
class ExpiringBatch:
    stock_in_line_id: int
    product_id: int
    product_name: str
    warehouse_id: int
    warehouse_name: str
    quantity: Decimal
    unit_name: str
    expiry_date: date
    days_left: int


@dataclass(frozen=True)
class ScanResult:
    active: bool
    horizon_days: int
    candidates: int = 0
    sent: int = 0
    skipped: int = 0
    failed: int = 0


def find_expiring_batches(db: Session, *, today: date, horizon_days: int) -> list[ExpiringBatch]:
    until = today + timedelta(days=horizon_days)
    rows = db.execute(
        select(
            StockInLine.id,
            StockInLine.product_id,
            Product.name.label('product_name'),
            StockInTransaction.warehouse_id,
            Warehouse.name.label('warehouse_name'),
            StockInLine.quantity,
            Unit.name.label('unit_name'),
            StockInLine.expiry_date,
        )
        .join(StockInTransaction, StockInTransaction.id == StockInLine.transaction_id)
        .join(Product, Product.id == StockInLine.product_id)
        .join(Warehouse, Warehouse.id == StockInTransaction.warehouse_id)
        .join(Unit, Unit.id == StockInLine.unit_id)
        .where(
            StockInLine.expiry_date.is_not(None),
            StockInLine.expiry_date >= today,
            StockInLine.expiry_date <= until,
            StockInLine.active.is_(True),
            StockInTransaction.active.is_(True),
        )
        .order_by(StockInLine.expiry_date.asc(), StockInLine.id.asc())
    ).all()
    return [
        ExpiringBatch(
            stock_in_line_id=row.id,
            product_id=row.product_id,
            product_name=row.product_name,
            warehouse_id=row.warehouse_id,
            warehouse_name=row.warehouse_name,
            quantity=row.quantity,
            unit_name=row.unit_name,
            expiry_date=row.expiry_date,
            days_left=(row.expiry_date - today).days,
        )
        for row in rows
    ]


def list_expiring_batches(db: Session, *, today: date, horizon_days: int | None = None) -> dict:
    if horizon_days is None:
        horizon_days = resolve_scan_params(db).horizon_days
    if horizon_days < 0:
        raise InvalidArgument('Days before expiry cannot be negative')
    batches = find_expiring_batches(db, today=today, horizon_days=horizon_days)
    return {
        'as_of_date': today,
        'days_before_expiry': horizon_days,
        'total_count': len(batches),
        'items': [asdict(batch) for batch in batches],
    }


def compose_alert_message(batch: ExpiringBatch) -> str:
    return '\n'.join(
        [
            'Expiry date is approaching!',
            '',
            f'Product: {batch.product_name}',
            f'Warehouse: {batch.warehouse_name}',
            f'Quantity: {batch.quantity} {batch.unit_name}',
            f'Expiry date: {batch.expiry_date.isoformat()}',
            f'Days left: {batch.days_left}',
        ]
    )


def already_alerted(db: Session, *, stock_in_line_id: int, channel: str) -> bool:
    return (
        db.execute(
            select(ExpiryAlertRecord.id).where(
                ExpiryAlertRecord.stock_in_line_id == stock_in_line_id,
                ExpiryAlertRecord.channel == channel,
            )
        ).first()
        is not None
    )


def run_expiry_scan(db: Session, *, dispatcher: AlertDispatcher, today: date) -> ScanResult | None:
    """
    One scheduled pass. Runs are serialized across processes by the expiry-scan lease;
    None means another run holds it. The alert record for a batch is written and
    committed only after a successful send, so a failed dispatch is retried on the
    next run and a later failure cannot undo records for batches already alerted.
    """
    params = resolve_scan_params(db)
    if not params.active:
        logger.info('Expiry scan skipped: notification policy is inactive')
        return ScanResult(active=False, horizon_days=params.horizon_days)

    holder = uuid4().hex
    if not job_lease_service.try_acquire(
        db, name=EXPIRY_SCAN_LEASE, holder=holder, ttl_seconds=settings.expiry_scan_lease_seconds
    ):
        logger.warning('Expiry scan already running elsewhere; skipping this run')
        return None

    try:
        return _alert_batches(db, dispatcher=dispatcher, today=today, horizon_days=params.horizon_days)
    except Exception:
        db.rollback()
        raise
    finally:
        job_lease_service.release(db, name=EXPIRY_SCAN_LEASE, holder=holder)


def _alert_batches(db: Session, *, dispatcher: AlertDispatcher, today: date, horizon_days: int) -> ScanResult:
    batches = find_expiring_batches(db, today=today, horizon_days=horizon_days)
    channel = dispatcher.channel
    sent = skipped = failed = 0

    for batch in batches:
        try:
            if already_alerted(db, stock_in_line_id=batch.stock_in_line_id, channel=channel):
                skipped += 1
                continue
            dispatcher.send(compose_alert_message(batch))
        except DispatchFailure as exc:
            failed += 1
            logger.warning('Expiry alert for batch %s not delivered: %s', batch.stock_in_line_id, exc)
            continue
        except Exception:
            db.rollback()
            failed += 1
            logger.exception('Expiry alert for batch %s failed', batch.stock_in_line_id)
            continue

        try:
            db.add(
                ExpiryAlertRecord(
                    stock_in_line_id=batch.stock_in_line_id,
                    channel=channel,
                    sent_at=datetime.now(tz=timezone.utc),
                )
            )
            db.commit()
        except IntegrityError:
            db.rollback()
            skipped += 1
            logger.warning('Expiry alert for batch %s already recorded via %s', batch.stock_in_line_id, channel)
            continue
        except Exception:
            db.rollback()
            failed += 1
            logger.exception('Expiry alert for batch %s sent but not recorded', batch.stock_in_line_id)
            continue
        sent += 1
        logger.info('Expiry alert sent for batch %s via %s', batch.stock_in_line_id, channel)

    result = ScanResult(
        active=True,
        horizon_days=horizon_days,
        candidates=len(batches),
        sent=sent,
        skipped=skipped,
        failed=failed,
    )
    logger.info(
        'Expiry scan finished: candidates=%d sent=%d skipped=%d failed=%d',
        result.candidates,
        result.sent,
        result.skipped,
        result.failed,
    )
    return result
