from __future__ import annotations

from dataclasses import asdict
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from warehouse_ledger.db import get_db
from warehouse_ledger.dependencies import get_client_ip, get_expiry_scheduler
from warehouse_ledger.responses import ok
from warehouse_ledger.schemas import NotificationPolicyUpdate
from warehouse_ledger.services.expiry_scan_service import list_expiring_batches
from warehouse_ledger.services.expiry_scheduler import ExpiryScanScheduler
from warehouse_ledger.services.notification_policy_service import (
    get_or_init_policy,
    serialize_policy,
    update_policy,
)

router = APIRouter(prefix='/api/v1/notification-settings', tags=['notifications'])


@router.get('')
def current_policy(db: Session = Depends(get_db)):
    row = get_or_init_policy(db)
    db.commit()
    return ok(serialize_policy(row))


@router.put('')
def change_policy(payload: NotificationPolicyUpdate, request: Request, db: Session = Depends(get_db)):
    row = update_policy(
        db,
        key=payload.key,
        horizon_days=payload.days_before,
        active=payload.active,
        ip=get_client_ip(request),
    )
    db.commit()
    return ok(serialize_policy(row), message='Notification setting updated')


@router.get('/expiring')
def expiring_batches(days: int | None = None, db: Session = Depends(get_db)):
    return ok(list_expiring_batches(db, today=date.today(), horizon_days=days))


@router.post('/expiry-scan')
def run_expiry_scan_now(scheduler: ExpiryScanScheduler = Depends(get_expiry_scheduler)):
    result = scheduler.run_now()
    if result is None:
        raise HTTPException(status_code=409, detail='Expiry scan already in progress')
    return ok(asdict(result), message='Expiry scan finished')
