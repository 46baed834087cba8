from .customers import Customer
from .orders import Order
from .cashier_sessions import CashierSession
from .payments import Payment

__all__ = [
    'Customer',
    'Order',
    'CashierSession',
    'Payment',
]
