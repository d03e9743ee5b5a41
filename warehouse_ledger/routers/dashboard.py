from __future__ import annotations

import datetime as dt

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from warehouse_ledger.db import get_db
from warehouse_ledger.responses import ok
from warehouse_ledger.services.dashboard_service import daily_stock_in_summary, daily_top_sales

router = APIRouter(prefix='/api/v1/dashboard', tags=['dashboard'])


@router.get('/stock-in')
def daily_stock_in(date: dt.date, db: Session = Depends(get_db)):
    return ok(daily_stock_in_summary(db, on_date=date))


@router.get('/sales')
def daily_sales(date: dt.date, db: Session = Depends(get_db)):
    return ok(daily_top_sales(db, on_date=date))
