# apps/orders/signals.py
from django.dispatch import Signal

# Fired after a new order has been committed
# args: order
order_created = Signal()

# Fired after every committed status write
# args: order, old_status, new_status, actor
order_status_changed = Signal()
