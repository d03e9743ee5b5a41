from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from warehouse_ledger.services import stock_ledger_service
from warehouse_ledger.services.audit_service import log_audit
from warehouse_ledger.services.transaction_recorder import (
    StockInLineInput,
    StockInRequest,
    get_stock_in_detail,
    persist_stock_in,
    resolve_stock_in,
    validate_stock_in,
)

logger = logging.getLogger(__name__)


def last_sale_prices(lines: list[StockInLineInput]) -> dict[int, Decimal]:
    """Sale price of each product's last line in input order."""
    prices: dict[int, Decimal] = {}
    for line in lines:
        prices[line.product_id] = line.sale_price
    return prices


def record_stock_in(db: Session, request: StockInRequest, *, ip: str | None = None) -> dict:
    """
    Resolve, persist and post a stock-in transaction. Only flushes: the caller's
    commit or rollback decides the fate of the header, lines, ledger and prices together.
    """
    validate_stock_in(request)
    resolved = resolve_stock_in(db, request)
    header, lines = persist_stock_in(db, request=request)

    for line in lines:
        stock_ledger_service.increase(
            db,
            warehouse_id=header.warehouse_id,
            product_id=line.product_id,
            quantity=line.quantity,
        )

    products_by_id = {resolved_line.product.id: resolved_line.product for resolved_line in resolved.lines}
    now = datetime.now(tz=timezone.utc)
    for product_id, sale_price in last_sale_prices(request.lines).items():
        product = products_by_id[product_id]
        product.current_sale_price = sale_price
        product.updated_at = now

    log_audit(
        db,
        action='STOCK_IN_RECORDED',
        ip=ip,
        metadata={
            'stock_in_id': header.id,
            'entry_code': header.entry_code,
            'warehouse_id': header.warehouse_id,
            'line_count': len(lines),
        },
    )
    db.flush()
    logger.info(
        'Stock-in %s recorded for warehouse=%s with %d line(s)', header.entry_code, header.warehouse_id, len(lines)
    )
    return get_stock_in_detail(db, transaction_id=header.id)


def get_stock_in(db: Session, *, transaction_id: int) -> dict:
    return get_stock_in_detail(db, transaction_id=transaction_id)
