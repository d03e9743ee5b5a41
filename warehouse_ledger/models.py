from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# SQLite only autoincrements INTEGER PRIMARY KEY columns.
BigIntId = BigInteger().with_variant(Integer, 'sqlite')

EXPIRY_POLICY_KEY = 'EXPIRY_DAYS_BEFORE'


class Base(DeclarativeBase):
    pass


class Warehouse(Base):
    __tablename__ = 'warehouses'

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Category(Base):
    __tablename__ = 'categories'

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')


class Unit(Base):
    __tablename__ = 'units'

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')


class Currency(Base):
    __tablename__ = 'currencies'

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')


class Supplier(Base):
    __tablename__ = 'suppliers'

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    phone: Mapped[str | None] = mapped_column(Text)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')


class Product(Base):
    __tablename__ = 'products'
    __table_args__ = (
        CheckConstraint('current_sale_price >= 0', name='products_current_sale_price_non_negative'),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    product_code: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    category_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('categories.id'), nullable=False)
    unit_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('units.id'), nullable=False)
    supplier_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('suppliers.id'), nullable=False)
    current_sale_price: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal('0.00'), server_default='0'
    )
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class StockBalance(Base):
    __tablename__ = 'stock_balances'
    __table_args__ = (
        UniqueConstraint('warehouse_id', 'product_id', name='stock_balances_warehouse_product_uniq'),
        CheckConstraint('quantity >= 0', name='stock_balances_quantity_non_negative'),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    warehouse_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('warehouses.id'), nullable=False)
    product_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('products.id'), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False, default=Decimal('0'), server_default='0')
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class StockInTransaction(Base):
    __tablename__ = 'stock_in_transactions'

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    transaction_date: Mapped[date] = mapped_column('date', Date, nullable=False)
    warehouse_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('warehouses.id'), nullable=False)
    supplier_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('suppliers.id'), nullable=False)
    invoice_number: Mapped[str] = mapped_column(Text, nullable=False)
    entry_code: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class StockInLine(Base):
    __tablename__ = 'stock_in_lines'
    __table_args__ = (
        CheckConstraint('quantity > 0', name='stock_in_lines_quantity_positive'),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    transaction_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey('stock_in_transactions.id', ondelete='CASCADE'), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    product_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('products.id'), nullable=False)
    unit_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('units.id'), nullable=False)
    currency_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('currencies.id'), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False)
    purchase_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    sale_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    expiry_date: Mapped[date | None] = mapped_column(Date)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')


class StockOutTransaction(Base):
    __tablename__ = 'stock_out_transactions'

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    transaction_date: Mapped[date] = mapped_column('date', Date, nullable=False)
    warehouse_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('warehouses.id'), nullable=False)
    invoice_number: Mapped[str] = mapped_column(Text, nullable=False)
    sale_code: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class StockOutLine(Base):
    __tablename__ = 'stock_out_lines'
    __table_args__ = (
        CheckConstraint('quantity > 0', name='stock_out_lines_quantity_positive'),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    transaction_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey('stock_out_transactions.id', ondelete='CASCADE'), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    product_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('products.id'), nullable=False)
    unit_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('units.id'), nullable=False)
    currency_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('currencies.id'), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')


class ExpiryAlertRecord(Base):
    __tablename__ = 'expiry_alert_records'
    __table_args__ = (
        UniqueConstraint('stock_in_line_id', 'channel', name='expiry_alert_records_line_channel_uniq'),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    stock_in_line_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey('stock_in_lines.id', ondelete='CASCADE'), nullable=False
    )
    channel: Mapped[str] = mapped_column(Text, nullable=False)
    sent_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class NotificationPolicy(Base):
    __tablename__ = 'notification_policies'

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    key: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    horizon_days: Mapped[int | None] = mapped_column(Integer)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class AuditLog(Base):
    __tablename__ = 'audit_logs'

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    action: Mapped[str] = mapped_column(Text, nullable=False)
    ip: Mapped[str | None] = mapped_column(Text)
    meta: Mapped[dict] = mapped_column('metadata', JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class JobLease(Base):
    __tablename__ = 'job_leases'

    name: Mapped[str] = mapped_column(Text, primary_key=True)
    holder: Mapped[str | None] = mapped_column(Text)
    locked_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
