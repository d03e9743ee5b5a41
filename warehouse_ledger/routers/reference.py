from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from warehouse_ledger.db import get_db
from warehouse_ledger.responses import ok
from warehouse_ledger.schemas import (
    CategoryCreate,
    NamedCreate,
    ProductCreate,
    ProductUpdate,
    SupplierCreate,
    WarehouseActiveUpdate,
)
from warehouse_ledger.services import reference_data_service as refs

router = APIRouter(prefix='/api/v1', tags=['reference'])


def _named(row) -> dict:
    return {'id': row.id, 'name': row.name, 'active': row.active}


@router.post('/warehouses', status_code=status.HTTP_201_CREATED)
def create_warehouse(payload: NamedCreate, db: Session = Depends(get_db)):
    row = refs.create_warehouse(db, name=payload.name)
    db.commit()
    return ok(_named(row), message='Warehouse created')


@router.get('/warehouses/active')
def active_warehouses(db: Session = Depends(get_db)):
    return ok([_named(row) for row in refs.list_active_warehouses(db)])


@router.put('/warehouses/{warehouse_id}/active')
def toggle_warehouse(warehouse_id: int, payload: WarehouseActiveUpdate, db: Session = Depends(get_db)):
    row = refs.set_warehouse_active(db, warehouse_id=warehouse_id, active=payload.active)
    db.commit()
    return ok(_named(row), message='Warehouse updated')


@router.post('/categories', status_code=status.HTTP_201_CREATED)
def create_category(payload: CategoryCreate, db: Session = Depends(get_db)):
    row = refs.create_category(db, name=payload.name, description=payload.description)
    db.commit()
    return ok(_named(row), message='Category created')


@router.post('/units', status_code=status.HTTP_201_CREATED)
def create_unit(payload: NamedCreate, db: Session = Depends(get_db)):
    row = refs.create_unit(db, name=payload.name)
    db.commit()
    return ok(_named(row), message='Unit created')


@router.post('/currencies', status_code=status.HTTP_201_CREATED)
def create_currency(payload: NamedCreate, db: Session = Depends(get_db)):
    row = refs.create_currency(db, name=payload.name)
    db.commit()
    return ok(_named(row), message='Currency created')


@router.post('/suppliers', status_code=status.HTTP_201_CREATED)
def create_supplier(payload: SupplierCreate, db: Session = Depends(get_db)):
    row = refs.create_supplier(db, name=payload.name, phone=payload.phone)
    db.commit()
    return ok(_named(row), message='Supplier created')


@router.post('/products', status_code=status.HTTP_201_CREATED)
def create_product(payload: ProductCreate, db: Session = Depends(get_db)):
    row = refs.create_product(
        db,
        name=payload.name,
        category_id=payload.category_id,
        unit_id=payload.unit_id,
        supplier_id=payload.supplier_id,
        current_sale_price=payload.current_sale_price,
    )
    db.commit()
    return ok(refs.get_product_detail(db, product_id=row.id), message='Product created')


@router.put('/products/{product_id}')
def update_product(product_id: int, payload: ProductUpdate, db: Session = Depends(get_db)):
    refs.update_product(
        db,
        product_id=product_id,
        name=payload.name,
        category_id=payload.category_id,
        unit_id=payload.unit_id,
        supplier_id=payload.supplier_id,
        active=payload.active,
        current_sale_price=payload.current_sale_price,
    )
    db.commit()
    return ok(refs.get_product_detail(db, product_id=product_id), message='Product updated')


@router.get('/products/active')
def active_products(db: Session = Depends(get_db)):
    return ok(refs.list_active_products(db))


@router.get('/products/{product_id}')
def product_detail(product_id: int, db: Session = Depends(get_db)):
    return ok(refs.get_product_detail(db, product_id=product_id))
