from __future__ import annotations

from sqlalchemy.orm import Session

from warehouse_ledger.models import AuditLog


def log_audit(
    db: Session,
    *,
    action: str,
    ip: str | None = None,
    metadata: dict | None = None,
) -> None:
    db.add(
        AuditLog(
            action=action,
            ip=ip,
            meta=metadata or {},
        )
    )
