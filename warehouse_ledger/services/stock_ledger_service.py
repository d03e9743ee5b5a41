from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from warehouse_ledger.errors import InsufficientStock, InvalidArgument, OutOfStock
from warehouse_ledger.models import Product, StockBalance, Warehouse

_UPSERT_INSERTS = {
    'postgresql': postgresql.insert,
    'sqlite': sqlite.insert,
}


def _require_positive(quantity: Decimal) -> None:
    if quantity <= 0:
        raise InvalidArgument('Quantity must be greater than zero')


def get_balance(db: Session, *, warehouse_id: int, product_id: int) -> StockBalance | None:
    return db.execute(
        select(StockBalance)
        .where(StockBalance.warehouse_id == warehouse_id, StockBalance.product_id == product_id)
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()


def increase(db: Session, *, warehouse_id: int, product_id: int, quantity: Decimal) -> None:
    """Add quantity to the (warehouse, product) row, creating it on first stock-in."""
    _require_positive(quantity)
    dialect = db.get_bind().dialect.name
    insert = _UPSERT_INSERTS.get(dialect)
    if insert is not None:
        stmt = insert(StockBalance).values(warehouse_id=warehouse_id, product_id=product_id, quantity=quantity)
        stmt = stmt.on_conflict_do_update(
            index_elements=[StockBalance.warehouse_id, StockBalance.product_id],
            set_={'quantity': StockBalance.quantity + stmt.excluded.quantity, 'updated_at': func.now()},
        )
        db.execute(stmt)
        return

    result = db.execute(
        update(StockBalance)
        .where(StockBalance.warehouse_id == warehouse_id, StockBalance.product_id == product_id)
        .values(quantity=StockBalance.quantity + quantity, updated_at=func.now())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.add(StockBalance(warehouse_id=warehouse_id, product_id=product_id, quantity=quantity))
        db.flush()


def decrease(db: Session, *, warehouse_id: int, product_id: int, quantity: Decimal) -> None:
    """
    Subtract quantity with a single conditional UPDATE so concurrent stock-outs
    on the same row cannot both pass the availability check.
    """
    _require_positive(quantity)
    result = db.execute(
        update(StockBalance)
        .where(
            StockBalance.warehouse_id == warehouse_id,
            StockBalance.product_id == product_id,
            StockBalance.quantity >= quantity,
        )
        .values(quantity=StockBalance.quantity - quantity, updated_at=func.now())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        return

    row = get_balance(db, warehouse_id=warehouse_id, product_id=product_id)
    if row is None:
        raise OutOfStock(product_id, warehouse_id)
    raise InsufficientStock(product_id, warehouse_id, available=row.quantity, requested=quantity)


def list_balances(
    db: Session,
    *,
    warehouse_id: int | None = None,
    product_id: int | None = None,
) -> list[dict]:
    query = (
        select(
            StockBalance.id,
            StockBalance.warehouse_id,
            Warehouse.name.label('warehouse_name'),
            StockBalance.product_id,
            Product.name.label('product_name'),
            StockBalance.quantity,
            StockBalance.updated_at,
        )
        .join(Warehouse, Warehouse.id == StockBalance.warehouse_id)
        .join(Product, Product.id == StockBalance.product_id)
        .order_by(Warehouse.name.asc(), Product.name.asc())
    )
    if warehouse_id is not None:
        query = query.where(StockBalance.warehouse_id == warehouse_id)
    if product_id is not None:
        query = query.where(StockBalance.product_id == product_id)

    return [
        {
            'id': row.id,
            'warehouse_id': row.warehouse_id,
            'warehouse_name': row.warehouse_name,
            'product_id': row.product_id,
            'product_name': row.product_name,
            'quantity': row.quantity,
            'updated_at': row.updated_at,
        }
        for row in db.execute(query).all()
    ]
