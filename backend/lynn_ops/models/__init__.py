from .auth import User, SessionToken
from .locations import Location, UserLocationAccess
from .inventory import Category, Supplier, Product, InventoryTransaction
from .sales import Customer, Guest, SaleOrder, SaleOrderLine
from .documents import Expense, LocationDocument
from .security import SecurityEvent

__all__ = [
    'User', 'SessionToken',
    'Location', 'UserLocationAccess',
    'Category', 'Supplier', 'Product', 'InventoryTransaction',
    'Customer', 'Guest', 'SaleOrder', 'SaleOrderLine',
    'Expense', 'LocationDocument',
    'SecurityEvent',
]
