from __future__ import annotations

from datetime import date

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from warehouse_ledger.models import (
    Currency,
    Product,
    StockInLine,
    StockInTransaction,
    StockOutLine,
    StockOutTransaction,
    Unit,
)


def daily_stock_in_summary(db: Session, *, on_date: date) -> dict:
    query = (
        select(
            StockInLine.product_id,
            Product.name.label('product_name'),
            StockInLine.currency_id,
            Currency.name.label('currency_name'),
            func.min(Unit.name).label('unit_name'),
            func.sum(StockInLine.quantity).label('total_quantity'),
            func.sum(StockInLine.quantity * StockInLine.purchase_price).label('total_purchase_amount'),
        )
        .join(StockInTransaction, StockInTransaction.id == StockInLine.transaction_id)
        .join(Product, Product.id == StockInLine.product_id)
        .join(Currency, Currency.id == StockInLine.currency_id)
        .join(Unit, Unit.id == StockInLine.unit_id)
        .where(
            StockInTransaction.transaction_date == on_date,
            StockInTransaction.active.is_(True),
            StockInLine.active.is_(True),
        )
        .group_by(StockInLine.product_id, Product.name, StockInLine.currency_id, Currency.name)
        .order_by(Product.name.asc(), Currency.name.asc())
    )
    return {
        'date': on_date,
        'items': [
            {
                'product_id': row.product_id,
                'product_name': row.product_name,
                'total_quantity': row.total_quantity,
                'unit_name': row.unit_name,
                'total_purchase_amount': row.total_purchase_amount,
                'currency_id': row.currency_id,
                'currency_name': row.currency_name,
            }
            for row in db.execute(query).all()
        ],
    }


def daily_top_sales(db: Session, *, on_date: date) -> dict:
    total_sale_amount = func.sum(StockOutLine.quantity * StockOutLine.price).label('total_sale_amount')
    query = (
        select(
            StockOutLine.product_id,
            Product.name.label('product_name'),
            StockOutLine.currency_id,
            Currency.name.label('currency_name'),
            func.min(Unit.name).label('unit_name'),
            func.sum(StockOutLine.quantity).label('total_quantity'),
            total_sale_amount,
        )
        .join(StockOutTransaction, StockOutTransaction.id == StockOutLine.transaction_id)
        .join(Product, Product.id == StockOutLine.product_id)
        .join(Currency, Currency.id == StockOutLine.currency_id)
        .join(Unit, Unit.id == StockOutLine.unit_id)
        .where(
            StockOutTransaction.transaction_date == on_date,
            StockOutTransaction.active.is_(True),
            StockOutLine.active.is_(True),
        )
        .group_by(StockOutLine.product_id, Product.name, StockOutLine.currency_id, Currency.name)
        .order_by(total_sale_amount.desc(), Product.name.asc())
    )
    return {
        'date': on_date,
        'items': [
            {
                'product_id': row.product_id,
                'product_name': row.product_name,
                'total_quantity': row.total_quantity,
                'unit_name': row.unit_name,
                'total_sale_amount': row.total_sale_amount,
                'currency_id': row.currency_id,
                'currency_name': row.currency_name,
            }
            for row in db.execute(query).all()
        ],
    }
