from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from warehouse_ledger.errors import InvalidArgument, NotFound
from warehouse_ledger.models import Category, Currency, Product, Supplier, Unit, Warehouse
from warehouse_ledger.services.code_service import PRODUCT_PREFIX, generate_unique_code
from warehouse_ledger.services.transaction_recorder import PRICE_PLACES, exceeds_scale, resolve


def _clean_name(name: str, *, label: str) -> str:
    clean = name.strip()
    if not clean:
        raise InvalidArgument(f'{label} name is required')
    return clean


def create_warehouse(db: Session, *, name: str) -> Warehouse:
    row = Warehouse(name=_clean_name(name, label='Warehouse'), active=True)
    db.add(row)
    db.flush()
    return row


def set_warehouse_active(db: Session, *, warehouse_id: int, active: bool) -> Warehouse:
    row = resolve(db, Warehouse, warehouse_id)
    row.active = active
    db.flush()
    return row


def list_active_warehouses(db: Session) -> list[Warehouse]:
    return db.execute(select(Warehouse).where(Warehouse.active.is_(True)).order_by(Warehouse.name.asc())).scalars().all()


def create_category(db: Session, *, name: str, description: str | None = None) -> Category:
    row = Category(name=_clean_name(name, label='Category'), description=description, active=True)
    db.add(row)
    db.flush()
    return row


def create_unit(db: Session, *, name: str) -> Unit:
    row = Unit(name=_clean_name(name, label='Unit'), active=True)
    db.add(row)
    db.flush()
    return row


def create_currency(db: Session, *, name: str) -> Currency:
    row = Currency(name=_clean_name(name, label='Currency'), active=True)
    db.add(row)
    db.flush()
    return row


def create_supplier(db: Session, *, name: str, phone: str | None = None) -> Supplier:
    row = Supplier(name=_clean_name(name, label='Supplier'), phone=phone, active=True)
    db.add(row)
    db.flush()
    return row


def _validate_sale_price(price: Decimal | None) -> None:
    if price is not None and price < 0:
        raise InvalidArgument('Sale price cannot be negative')
    if price is not None and exceeds_scale(price, PRICE_PLACES):
        raise InvalidArgument(f'Sale price allows at most {PRICE_PLACES} decimal places')


def create_product(
    db: Session,
    *,
    name: str,
    category_id: int,
    unit_id: int,
    supplier_id: int,
    current_sale_price: Decimal | None = None,
) -> Product:
    clean_name = _clean_name(name, label='Product')
    _validate_sale_price(current_sale_price)
    resolve(db, Category, category_id)
    resolve(db, Unit, unit_id)
    resolve(db, Supplier, supplier_id)

    row = Product(
        name=clean_name,
        product_code=generate_unique_code(db, prefix=PRODUCT_PREFIX, column=Product.product_code),
        category_id=category_id,
        unit_id=unit_id,
        supplier_id=supplier_id,
        current_sale_price=current_sale_price if current_sale_price is not None else Decimal('0.00'),
        active=True,
    )
    db.add(row)
    db.flush()
    return row


def update_product(
    db: Session,
    *,
    product_id: int,
    name: str,
    category_id: int,
    unit_id: int,
    supplier_id: int,
    active: bool,
    current_sale_price: Decimal | None = None,
) -> Product:
    row = resolve(db, Product, product_id)
    clean_name = _clean_name(name, label='Product')
    _validate_sale_price(current_sale_price)
    resolve(db, Category, category_id)
    resolve(db, Unit, unit_id)
    resolve(db, Supplier, supplier_id)

    row.name = clean_name
    row.category_id = category_id
    row.unit_id = unit_id
    row.supplier_id = supplier_id
    row.active = active
    if current_sale_price is not None:
        row.current_sale_price = current_sale_price
    row.updated_at = datetime.now(tz=timezone.utc)
    db.flush()
    return row


def get_product_detail(db: Session, *, product_id: int) -> dict:
    row = db.execute(
        select(Product, Category.name, Unit.name, Supplier.name)
        .join(Category, Category.id == Product.category_id)
        .join(Unit, Unit.id == Product.unit_id)
        .join(Supplier, Supplier.id == Product.supplier_id)
        .where(Product.id == product_id)
    ).one_or_none()
    if not row:
        raise NotFound('Product', product_id)
    product, category_name, unit_name, supplier_name = row
    return _product_dict(product, category_name=category_name, unit_name=unit_name, supplier_name=supplier_name)


def list_active_products(db: Session) -> list[dict]:
    rows = db.execute(
        select(Product, Category.name, Unit.name, Supplier.name)
        .join(Category, Category.id == Product.category_id)
        .join(Unit, Unit.id == Product.unit_id)
        .join(Supplier, Supplier.id == Product.supplier_id)
        .where(Product.active.is_(True))
        .order_by(Product.name.asc())
    ).all()
    return [
        _product_dict(product, category_name=category_name, unit_name=unit_name, supplier_name=supplier_name)
        for product, category_name, unit_name, supplier_name in rows
    ]


def _product_dict(product: Product, *, category_name: str, unit_name: str, supplier_name: str) -> dict:
    return {
        'id': product.id,
        'name': product.name,
        'product_code': product.product_code,
        'category_id': product.category_id,
        'category_name': category_name,
        'unit_id': product.unit_id,
        'unit_name': unit_name,
        'supplier_id': product.supplier_id,
        'supplier_name': supplier_name,
        'current_sale_price': product.current_sale_price,
        'active': product.active,
    }
