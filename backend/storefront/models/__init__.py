from .auth import User, SessionToken
from .orders import Order
from .rewards import PointsTransaction

__all__ = [
    'User', 'SessionToken',
    'Order',
    'PointsTransaction',
]
