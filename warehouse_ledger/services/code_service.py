from __future__ import annotations

import logging
import random
import time

from sqlalchemy import select
from sqlalchemy.orm import InstrumentedAttribute, Session

from warehouse_ledger.config import settings

logger = logging.getLogger(__name__)

PRODUCT_PREFIX = 'P'
STOCK_IN_PREFIX = 'IN'
STOCK_OUT_PREFIX = 'OUT'


def generate_code(prefix: str, *, now: float | None = None) -> str:
    timestamp = int(time.time() if now is None else now)
    return f'{prefix}-{timestamp}-{random.randint(1000, 9999)}'


def generate_unique_code(
    db: Session,
    *,
    prefix: str,
    column: InstrumentedAttribute,
    max_attempts: int | None = None,
) -> str:
    """
    Timestamp+random codes can collide, so each candidate is checked against the
    column's unique values and regenerated a bounded number of times.
    """
    attempts = max_attempts or settings.code_generation_max_attempts
    for attempt in range(1, attempts + 1):
        code = generate_code(prefix)
        exists = db.execute(select(column).where(column == code)).first()
        if exists is None:
            return code
        logger.warning('Generated %s code %s already exists (attempt %d/%d)', prefix, code, attempt, attempts)
    raise RuntimeError(f'Could not generate a unique {prefix} code after {attempts} attempts')
