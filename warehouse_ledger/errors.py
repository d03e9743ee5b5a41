from __future__ import annotations

from decimal import Decimal


class InventoryError(ValueError):
    """Client-visible business error; aborts the whole unit of work."""


class InvalidArgument(InventoryError):
    pass


class UnsupportedPolicyKey(InvalidArgument):
    def __init__(self, key: str) -> None:
        super().__init__(f'Unsupported notification key: {key}')
        self.key = key


class NotFound(InventoryError):
    def __init__(self, kind: str, id: int) -> None:
        super().__init__(f'{kind} not found with id={id}')
        self.kind = kind
        self.id = id


class OutOfStock(InventoryError):
    def __init__(self, product_id: int, warehouse_id: int) -> None:
        super().__init__(f'No stock for product={product_id} in warehouse={warehouse_id}')
        self.product_id = product_id
        self.warehouse_id = warehouse_id


class InsufficientStock(InventoryError):
    def __init__(self, product_id: int, warehouse_id: int, available: Decimal, requested: Decimal) -> None:
        super().__init__(
            f'Not enough stock for product={product_id} in warehouse={warehouse_id}: '
            f'available {available}, requested {requested}'
        )
        self.product_id = product_id
        self.warehouse_id = warehouse_id
        self.available = available
        self.requested = requested

    @property
    def shortfall(self) -> Decimal:
        return self.requested - self.available


class PriceNotSet(InventoryError):
    def __init__(self, product_id: int) -> None:
        super().__init__(
            f'Sale price is not set for product={product_id}. '
            'Provide an explicit line price or set the product sale price via a stock entry.'
        )
        self.product_id = product_id


class DispatchFailure(Exception):
    """Outbound alert could not be delivered; the batch is retried on the next run."""
