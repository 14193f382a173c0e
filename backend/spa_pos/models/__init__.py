from .auth import User, SessionToken
from .catalog import Product, Service
from .sales import Sale, Transaction
from .finance import FinanceRecord
from .cart import CartSession, CartLine
from .events import DomainEvent

__all__ = [
    'User', 'SessionToken',
    'Product', 'Service',
    'Sale', 'Transaction',
    'FinanceRecord',
    'CartSession', 'CartLine',
    'DomainEvent',
]
