from .tenancy import Farm, User
from .flocks import Flock, DailyRecord, ReviewStatus
from .marketplace import Customer, Product, Order, OrderItem
from .notifications import Notification

__all__ = [
    'Farm', 'User',
    'Flock', 'DailyRecord', 'ReviewStatus',
    'Customer', 'Product', 'Order', 'OrderItem',
    'Notification',
]
