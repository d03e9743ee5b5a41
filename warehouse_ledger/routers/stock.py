from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from warehouse_ledger.db import get_db
from warehouse_ledger.dependencies import get_client_ip
from warehouse_ledger.responses import ok
from warehouse_ledger.schemas import StockInCreate, StockOutCreate
from warehouse_ledger.services.stock_in_service import get_stock_in, record_stock_in
from warehouse_ledger.services.stock_ledger_service import list_balances
from warehouse_ledger.services.stock_out_service import get_stock_out, record_stock_out

router = APIRouter(prefix='/api/v1', tags=['stock'])


@router.post('/stock-entries', status_code=status.HTTP_201_CREATED)
def create_stock_entry(payload: StockInCreate, request: Request, db: Session = Depends(get_db)):
    detail = record_stock_in(db, payload.to_request(), ip=get_client_ip(request))
    db.commit()
    return ok(detail, message='Stock entry created')


@router.get('/stock-entries/{entry_id}')
def stock_entry_detail(entry_id: int, db: Session = Depends(get_db)):
    return ok(get_stock_in(db, transaction_id=entry_id))


@router.post('/sales', status_code=status.HTTP_201_CREATED)
def create_sale(payload: StockOutCreate, request: Request, db: Session = Depends(get_db)):
    detail = record_stock_out(db, payload.to_request(), ip=get_client_ip(request))
    db.commit()
    return ok(detail, message='Sale created')


@router.get('/sales/{sale_id}')
def sale_detail(sale_id: int, db: Session = Depends(get_db)):
    return ok(get_stock_out(db, transaction_id=sale_id))


@router.get('/stock-balances')
def stock_balances(
    warehouse_id: int | None = None,
    product_id: int | None = None,
    db: Session = Depends(get_db),
):
    return ok(list_balances(db, warehouse_id=warehouse_id, product_id=product_id))
