from __future__ import annotations

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel

from warehouse_ledger.services.transaction_recorder import (
    StockInLineInput,
    StockInRequest,
    StockOutLineInput,
    StockOutRequest,
)


class StockInLineCreate(BaseModel):
    product_id: int
    unit_id: int
    quantity: Decimal
    purchase_price: Decimal
    sale_price: Decimal
    expiry_date: dt.date | None = None
    currency_id: int


class StockInCreate(BaseModel):
    date: dt.date
    warehouse_id: int
    supplier_id: int
    invoice_number: str
    items: list[StockInLineCreate]

    def to_request(self) -> StockInRequest:
        return StockInRequest(
            transaction_date=self.date,
            warehouse_id=self.warehouse_id,
            supplier_id=self.supplier_id,
            invoice_number=self.invoice_number,
            lines=[
                StockInLineInput(
                    product_id=item.product_id,
                    unit_id=item.unit_id,
                    quantity=item.quantity,
                    purchase_price=item.purchase_price,
                    sale_price=item.sale_price,
                    currency_id=item.currency_id,
                    expiry_date=item.expiry_date,
                )
                for item in self.items
            ],
        )


class StockOutLineCreate(BaseModel):
    product_id: int
    unit_id: int
    quantity: Decimal
    price: Decimal | None = None
    currency_id: int


class StockOutCreate(BaseModel):
    date: dt.date
    warehouse_id: int
    invoice_number: str
    items: list[StockOutLineCreate]

    def to_request(self) -> StockOutRequest:
        return StockOutRequest(
            transaction_date=self.date,
            warehouse_id=self.warehouse_id,
            invoice_number=self.invoice_number,
            lines=[
                StockOutLineInput(
                    product_id=item.product_id,
                    unit_id=item.unit_id,
                    quantity=item.quantity,
                    currency_id=item.currency_id,
                    price=item.price,
                )
                for item in self.items
            ],
        )


class NotificationPolicyUpdate(BaseModel):
    key: str
    days_before: int
    active: bool


class NamedCreate(BaseModel):
    name: str


class CategoryCreate(BaseModel):
    name: str
    description: str | None = None


class SupplierCreate(BaseModel):
    name: str
    phone: str | None = None


class WarehouseActiveUpdate(BaseModel):
    active: bool


class ProductCreate(BaseModel):
    name: str
    category_id: int
    unit_id: int
    supplier_id: int
    current_sale_price: Decimal | None = None


class ProductUpdate(BaseModel):
    name: str
    category_id: int
    unit_id: int
    supplier_id: int
    active: bool = True
    current_sale_price: Decimal | None = None
