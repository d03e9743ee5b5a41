from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import or_, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from warehouse_ledger.models import JobLease

logger = logging.getLogger(__name__)

_INSERT_IGNORE = {
    'postgresql': postgresql.insert,
    'sqlite': sqlite.insert,
}


def _ensure_row(db: Session, name: str) -> None:
    insert = _INSERT_IGNORE.get(db.get_bind().dialect.name)
    if insert is not None:
        db.execute(insert(JobLease).values(name=name).on_conflict_do_nothing(index_elements=[JobLease.name]))
        return
    if db.execute(select(JobLease.name).where(JobLease.name == name)).first() is None:
        db.add(JobLease(name=name))
        db.flush()


def try_acquire(
    db: Session,
    *,
    name: str,
    holder: str,
    ttl_seconds: int,
    now: datetime | None = None,
) -> bool:
    """
    Claim the named lease with one guarded UPDATE and commit it, so the claim is
    visible to every process before any work starts. An expired lease can be taken over.
    """
    now = now or datetime.now(tz=timezone.utc)
    _ensure_row(db, name)
    result = db.execute(
        update(JobLease)
        .where(
            JobLease.name == name,
            or_(JobLease.locked_until.is_(None), JobLease.locked_until < now),
        )
        .values(holder=holder, locked_until=now + timedelta(seconds=ttl_seconds))
        .execution_options(synchronize_session=False)
    )
    db.commit()
    acquired = result.rowcount == 1
    if not acquired:
        logger.info('Lease %s is held by another run', name)
    return acquired


def release(db: Session, *, name: str, holder: str) -> None:
    db.execute(
        update(JobLease)
        .where(JobLease.name == name, JobLease.holder == holder)
        .values(holder=None, locked_until=None)
        .execution_options(synchronize_session=False)
    )
    db.commit()
