from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from warehouse_ledger.config import settings
from warehouse_ledger.errors import InvalidArgument, UnsupportedPolicyKey
from warehouse_ledger.models import EXPIRY_POLICY_KEY, NotificationPolicy
from warehouse_ledger.services.audit_service import log_audit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExpiryScanParams:
    active: bool
    horizon_days: int


def resolve_horizon_days(horizon_days: int | None) -> int:
    if horizon_days is None:
        return settings.expiry_horizon_days_default
    return horizon_days


def get_policy(db: Session) -> NotificationPolicy | None:
    return db.execute(
        select(NotificationPolicy).where(NotificationPolicy.key == EXPIRY_POLICY_KEY)
    ).scalar_one_or_none()


def get_or_init_policy(db: Session) -> NotificationPolicy:
    row = get_policy(db)
    if row:
        return row

    row = NotificationPolicy(
        key=EXPIRY_POLICY_KEY,
        horizon_days=settings.expiry_horizon_days_default,
        active=True,
    )
    db.add(row)
    db.flush()
    return row


def update_policy(
    db: Session,
    *,
    key: str,
    horizon_days: int,
    active: bool,
    ip: str | None = None,
) -> NotificationPolicy:
    if key != EXPIRY_POLICY_KEY:
        raise UnsupportedPolicyKey(key)
    if horizon_days < 0:
        raise InvalidArgument('Days before expiry cannot be negative')

    row = get_policy(db)
    if not row:
        row = NotificationPolicy(key=EXPIRY_POLICY_KEY)
        db.add(row)
    row.horizon_days = horizon_days
    row.active = active
    row.updated_at = datetime.now(tz=timezone.utc)

    log_audit(
        db,
        action='NOTIFICATION_POLICY_UPDATED',
        ip=ip,
        metadata={'key': key, 'horizon_days': horizon_days, 'active': active},
    )
    db.flush()
    logger.info('Notification policy %s set to horizon_days=%d active=%s', key, horizon_days, active)
    return row


def resolve_scan_params(db: Session) -> ExpiryScanParams:
    """Read-only: a missing policy row means active with the default horizon."""
    row = get_policy(db)
    if row is None:
        return ExpiryScanParams(active=True, horizon_days=resolve_horizon_days(None))
    return ExpiryScanParams(active=row.active, horizon_days=resolve_horizon_days(row.horizon_days))


def serialize_policy(row: NotificationPolicy) -> dict:
    return {
        'id': row.id,
        'key': row.key,
        'days_before': resolve_horizon_days(row.horizon_days),
        'active': row.active,
    }
