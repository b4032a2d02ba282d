import logging

from django.dispatch import receiver

from .signals import order_created, order_status_changed

logger = logging.getLogger("apps.orders.events")


@receiver(order_created)
def log_order_created(sender, order, **kwargs):
    logger.info(
        f"Order {order.order_number} placed for {order.total_amount}",
        extra={"order_id": str(order.id), "order_number": order.order_number, "user_id": str(order.customer_id)},
    )


@receiver(order_status_changed)
def log_status_change(sender, order, old_status, new_status, actor=None, **kwargs):
    logger.info(
        f"Order {order.order_number}: {old_status} -> {new_status}",
        extra={
            "order_id": str(order.id),
            "order_number": order.order_number,
            "status": new_status,
            "user_id": str(actor.id) if actor else None,
        },
    )
