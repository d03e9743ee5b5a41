from decimal import Decimal

from sqlalchemy import select

from warehouse_ledger.db import SessionLocal, create_schema
from warehouse_ledger.models import Category, Currency, Product, Supplier, Unit, Warehouse
from warehouse_ledger.services import reference_data_service as refs
from warehouse_ledger.services.notification_policy_service import get_or_init_policy


def seed() -> None:
    create_schema()
    with SessionLocal() as db:
        warehouse = db.execute(select(Warehouse).where(Warehouse.name == 'Main Warehouse')).scalar_one_or_none()
        if not warehouse:
            warehouse = refs.create_warehouse(db, name='Main Warehouse')

        category = db.execute(select(Category).where(Category.name == 'Dairy')).scalar_one_or_none()
        if not category:
            category = refs.create_category(db, name='Dairy', description='Chilled dairy products')

        unit = db.execute(select(Unit).where(Unit.name == 'pcs')).scalar_one_or_none()
        if not unit:
            unit = refs.create_unit(db, name='pcs')

        currency = db.execute(select(Currency).where(Currency.name == 'USD')).scalar_one_or_none()
        if not currency:
            refs.create_currency(db, name='USD')

        supplier = db.execute(select(Supplier).where(Supplier.name == 'Demo Supplier')).scalar_one_or_none()
        if not supplier:
            supplier = refs.create_supplier(db, name='Demo Supplier', phone=None)

        for name in ('Milk 1L', 'Yogurt 500g'):
            product = db.execute(select(Product).where(Product.name == name)).scalar_one_or_none()
            if not product:
                refs.create_product(
                    db,
                    name=name,
                    category_id=category.id,
                    unit_id=unit.id,
                    supplier_id=supplier.id,
                    current_sale_price=Decimal('0.00'),
                )

        get_or_init_policy(db)
        db.commit()


if __name__ == '__main__':
    seed()
    print('Seed data inserted/verified.')
