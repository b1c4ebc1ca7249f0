from .catalog import Product
from .customers import CustomerAccount
from .sales import Sale, SaleLineItem
from .inventory import InventoryMovement

__all__ = [
    'Product',
    'CustomerAccount',
    'Sale', 'SaleLineItem',
    'InventoryMovement',
]
