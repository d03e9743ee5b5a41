from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy.orm import Session

from warehouse_ledger.errors import InsufficientStock, OutOfStock, PriceNotSet
from warehouse_ledger.services import stock_ledger_service
from warehouse_ledger.services.audit_service import log_audit
from warehouse_ledger.services.transaction_recorder import (
    StockOutRequest,
    get_stock_out_detail,
    persist_stock_out,
    resolve_stock_out,
    validate_stock_out,
)

logger = logging.getLogger(__name__)


def resolve_effective_price(*, product_id: int, explicit_price: Decimal | None, current_sale_price: Decimal) -> Decimal:
    price = explicit_price if explicit_price is not None else current_sale_price
    if price is None or price <= 0:
        raise PriceNotSet(product_id)
    return price


def record_stock_out(db: Session, request: StockOutRequest, *, ip: str | None = None) -> dict:
    """
    Resolve, price, persist and post a stock-out transaction. Any ledger rejection
    propagates after the header and lines were flushed, so the caller must roll back.
    """
    validate_stock_out(request)
    resolved = resolve_stock_out(db, request)
    prices = [
        resolve_effective_price(
            product_id=resolved_line.product.id,
            explicit_price=line.price,
            current_sale_price=resolved_line.product.current_sale_price,
        )
        for line, resolved_line in zip(request.lines, resolved.lines)
    ]
    header, lines = persist_stock_out(db, request=request, prices=prices)

    try:
        for line in lines:
            stock_ledger_service.decrease(
                db,
                warehouse_id=header.warehouse_id,
                product_id=line.product_id,
                quantity=line.quantity,
            )
    except (InsufficientStock, OutOfStock) as exc:
        logger.warning('Stock-out %s rejected: %s', header.sale_code, exc)
        raise

    log_audit(
        db,
        action='STOCK_OUT_RECORDED',
        ip=ip,
        metadata={
            'stock_out_id': header.id,
            'sale_code': header.sale_code,
            'warehouse_id': header.warehouse_id,
            'line_count': len(lines),
        },
    )
    db.flush()
    logger.info(
        'Stock-out %s recorded for warehouse=%s with %d line(s)', header.sale_code, header.warehouse_id, len(lines)
    )
    return get_stock_out_detail(db, transaction_id=header.id)


def get_stock_out(db: Session, *, transaction_id: int) -> dict:
    return get_stock_out_detail(db, transaction_id=transaction_id)
