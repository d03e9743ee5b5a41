from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation

from sqlalchemy import select
from sqlalchemy.orm import Session

from warehouse_ledger.errors import InvalidArgument, NotFound
from warehouse_ledger.models import (
    Currency,
    Product,
    StockInLine,
    StockInTransaction,
    StockOutLine,
    StockOutTransaction,
    Supplier,
    Unit,
    Warehouse,
)
from warehouse_ledger.services.code_service import STOCK_IN_PREFIX, STOCK_OUT_PREFIX, generate_unique_code


@dataclass(frozen=True)
class StockInLineInput:
    product_id: int
    unit_id: int
    quantity: Decimal
    purchase_price: Decimal
    sale_price: Decimal
    currency_id: int
    expiry_date: date | None = None


@dataclass(frozen=True)
class StockInRequest:
    transaction_date: date
    warehouse_id: int
    supplier_id: int
    invoice_number: str
    lines: list[StockInLineInput] = field(default_factory=list)


@dataclass(frozen=True)
class StockOutLineInput:
    product_id: int
    unit_id: int
    quantity: Decimal
    currency_id: int
    price: Decimal | None = None


@dataclass(frozen=True)
class StockOutRequest:
    transaction_date: date
    warehouse_id: int
    invoice_number: str
    lines: list[StockOutLineInput] = field(default_factory=list)


@dataclass(frozen=True)
class ResolvedLine:
    product: Product
    unit: Unit
    currency: Currency


@dataclass(frozen=True)
class ResolvedStockIn:
    warehouse: Warehouse
    supplier: Supplier
    lines: list[ResolvedLine]


@dataclass(frozen=True)
class ResolvedStockOut:
    warehouse: Warehouse
    lines: list[ResolvedLine]


QUANTITY_PLACES = 3
PRICE_PLACES = 2


def exceeds_scale(value: Decimal, places: int) -> bool:
    """True when the value cannot be stored in a column with this many decimal places."""
    try:
        return value != value.quantize(Decimal(1).scaleb(-places))
    except InvalidOperation:
        return True


def _check_line_scale(idx: int, *, quantity: Decimal, prices: dict[str, Decimal | None]) -> None:
    if exceeds_scale(quantity, QUANTITY_PLACES):
        raise InvalidArgument(f'Line {idx}: quantity allows at most {QUANTITY_PLACES} decimal places')
    for label, price in prices.items():
        if price is not None and exceeds_scale(price, PRICE_PLACES):
            raise InvalidArgument(f'Line {idx}: {label} allows at most {PRICE_PLACES} decimal places')


def _validate_header(*, invoice_number: str, line_count: int) -> None:
    if not invoice_number.strip():
        raise InvalidArgument('Invoice number is required')
    if line_count == 0:
        raise InvalidArgument('At least one line is required')


def validate_stock_in(request: StockInRequest) -> None:
    _validate_header(invoice_number=request.invoice_number, line_count=len(request.lines))
    for idx, line in enumerate(request.lines, start=1):
        if line.quantity <= 0:
            raise InvalidArgument(f'Line {idx}: quantity must be greater than zero')
        if line.purchase_price < 0:
            raise InvalidArgument(f'Line {idx}: purchase price cannot be negative')
        if line.sale_price < 0:
            raise InvalidArgument(f'Line {idx}: sale price cannot be negative')
        _check_line_scale(
            idx,
            quantity=line.quantity,
            prices={'purchase price': line.purchase_price, 'sale price': line.sale_price},
        )


def validate_stock_out(request: StockOutRequest) -> None:
    _validate_header(invoice_number=request.invoice_number, line_count=len(request.lines))
    for idx, line in enumerate(request.lines, start=1):
        if line.quantity <= 0:
            raise InvalidArgument(f'Line {idx}: quantity must be greater than zero')
        if line.price is not None and line.price < 0:
            raise InvalidArgument(f'Line {idx}: price cannot be negative')
        _check_line_scale(idx, quantity=line.quantity, prices={'price': line.price})


def resolve(db: Session, model, entity_id: int):
    entity = db.get(model, entity_id)
    if entity is None:
        raise NotFound(model.__name__, entity_id)
    return entity


def _resolve_line(db: Session, *, product_id: int, unit_id: int, currency_id: int) -> ResolvedLine:
    return ResolvedLine(
        product=resolve(db, Product, product_id),
        unit=resolve(db, Unit, unit_id),
        currency=resolve(db, Currency, currency_id),
    )


def resolve_stock_in(db: Session, request: StockInRequest) -> ResolvedStockIn:
    warehouse = resolve(db, Warehouse, request.warehouse_id)
    supplier = resolve(db, Supplier, request.supplier_id)
    lines = [
        _resolve_line(db, product_id=line.product_id, unit_id=line.unit_id, currency_id=line.currency_id)
        for line in request.lines
    ]
    return ResolvedStockIn(warehouse=warehouse, supplier=supplier, lines=lines)


def resolve_stock_out(db: Session, request: StockOutRequest) -> ResolvedStockOut:
    warehouse = resolve(db, Warehouse, request.warehouse_id)
    lines = [
        _resolve_line(db, product_id=line.product_id, unit_id=line.unit_id, currency_id=line.currency_id)
        for line in request.lines
    ]
    return ResolvedStockOut(warehouse=warehouse, lines=lines)


def persist_stock_in(db: Session, *, request: StockInRequest) -> tuple[StockInTransaction, list[StockInLine]]:
    header = StockInTransaction(
        transaction_date=request.transaction_date,
        warehouse_id=request.warehouse_id,
        supplier_id=request.supplier_id,
        invoice_number=request.invoice_number.strip(),
        entry_code=generate_unique_code(db, prefix=STOCK_IN_PREFIX, column=StockInTransaction.entry_code),
    )
    db.add(header)
    db.flush()

    lines = [
        StockInLine(
            transaction_id=header.id,
            position=position,
            product_id=line.product_id,
            unit_id=line.unit_id,
            currency_id=line.currency_id,
            quantity=line.quantity,
            purchase_price=line.purchase_price,
            sale_price=line.sale_price,
            expiry_date=line.expiry_date,
        )
        for position, line in enumerate(request.lines)
    ]
    db.add_all(lines)
    db.flush()
    return header, lines


def persist_stock_out(
    db: Session,
    *,
    request: StockOutRequest,
    prices: list[Decimal],
) -> tuple[StockOutTransaction, list[StockOutLine]]:
    header = StockOutTransaction(
        transaction_date=request.transaction_date,
        warehouse_id=request.warehouse_id,
        invoice_number=request.invoice_number.strip(),
        sale_code=generate_unique_code(db, prefix=STOCK_OUT_PREFIX, column=StockOutTransaction.sale_code),
    )
    db.add(header)
    db.flush()

    lines = [
        StockOutLine(
            transaction_id=header.id,
            position=position,
            product_id=line.product_id,
            unit_id=line.unit_id,
            currency_id=line.currency_id,
            quantity=line.quantity,
            price=price,
        )
        for position, (line, price) in enumerate(zip(request.lines, prices))
    ]
    db.add_all(lines)
    db.flush()
    return header, lines


def get_stock_in_detail(db: Session, *, transaction_id: int) -> dict:
    row = db.execute(
        select(StockInTransaction, Warehouse.name, Supplier.name)
        .join(Warehouse, Warehouse.id == StockInTransaction.warehouse_id)
        .join(Supplier, Supplier.id == StockInTransaction.supplier_id)
        .where(StockInTransaction.id == transaction_id)
    ).one_or_none()
    if not row:
        raise NotFound('StockInTransaction', transaction_id)

    header, warehouse_name, supplier_name = row
    lines = db.execute(
        select(StockInLine, Product.name, Unit.name, Currency.name)
        .join(Product, Product.id == StockInLine.product_id)
        .join(Unit, Unit.id == StockInLine.unit_id)
        .join(Currency, Currency.id == StockInLine.currency_id)
        .where(StockInLine.transaction_id == header.id)
        .order_by(StockInLine.position.asc())
    ).all()
    return {
        'id': header.id,
        'date': header.transaction_date,
        'warehouse_id': header.warehouse_id,
        'warehouse_name': warehouse_name,
        'supplier_id': header.supplier_id,
        'supplier_name': supplier_name,
        'invoice_number': header.invoice_number,
        'entry_code': header.entry_code,
        'active': header.active,
        'created_at': header.created_at,
        'updated_at': header.updated_at,
        'items': [
            {
                'id': line.id,
                'product_id': line.product_id,
                'product_name': product_name,
                'unit_id': line.unit_id,
                'unit_name': unit_name,
                'quantity': line.quantity,
                'purchase_price': line.purchase_price,
                'sale_price': line.sale_price,
                'expiry_date': line.expiry_date,
                'currency_id': line.currency_id,
                'currency_name': currency_name,
            }
            for line, product_name, unit_name, currency_name in lines
        ],
    }


def get_stock_out_detail(db: Session, *, transaction_id: int) -> dict:
    row = db.execute(
        select(StockOutTransaction, Warehouse.name)
        .join(Warehouse, Warehouse.id == StockOutTransaction.warehouse_id)
        .where(StockOutTransaction.id == transaction_id)
    ).one_or_none()
    if not row:
        raise NotFound('StockOutTransaction', transaction_id)

    header, warehouse_name = row
    lines = db.execute(
        select(StockOutLine, Product.name, Unit.name, Currency.name)
        .join(Product, Product.id == StockOutLine.product_id)
        .join(Unit, Unit.id == StockOutLine.unit_id)
        .join(Currency, Currency.id == StockOutLine.currency_id)
        .where(StockOutLine.transaction_id == header.id)
        .order_by(StockOutLine.position.asc())
    ).all()
    return {
        'id': header.id,
        'date': header.transaction_date,
        'warehouse_id': header.warehouse_id,
        'warehouse_name': warehouse_name,
        'invoice_number': header.invoice_number,
        'sale_code': header.sale_code,
        'active': header.active,
        'created_at': header.created_at,
        'updated_at': header.updated_at,
        'items': [
            {
                'id': line.id,
                'product_id': line.product_id,
                'product_name': product_name,
                'unit_id': line.unit_id,
                'unit_name': unit_name,
                'quantity': line.quantity,
                'price': line.price,
                'currency_id': line.currency_id,
                'currency_name': currency_name,
            }
            for line, product_name, unit_name, currency_name in lines
        ],
    }
