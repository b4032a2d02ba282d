from .order import Order, OrderStatus, PaymentMethod, PaymentStatus, Coupon
from .item import OrderItem
from .timeline import OrderStatusHistory
from .cancellation import OrderCancellation
from .rating import OrderRating

__all__ = [
    "Order",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
    "Coupon",
    "OrderItem",
    "OrderStatusHistory",
    "OrderCancellation",
    "OrderRating",
]
