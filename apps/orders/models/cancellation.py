from django.conf import settings
from django.db import models

from apps.accounts.models import Role
from apps.utils.models import TimestampedModel
from .order import Order


class OrderCancellation(TimestampedModel):
    """
    Who cancelled an order and why. Written in the same transaction as
    the move to `cancelled`, so an order has at most one.
    """

    order = models.OneToOneField(
        Order,
        related_name="cancellation",
        on_delete=models.CASCADE,
    )
    reason = models.TextField(blank=True)
    cancelled_by = models.CharField(max_length=20, choices=Role.choices)
    cancelled_by_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        related_name="orders_cancelled",
        on_delete=models.SET_NULL,
    )

    class Meta:
        indexes = [
            models.Index(fields=["cancelled_by", "created_at"], name="orders_cancel_role_idx"),
        ]

    def __str__(self):
        return f"Cancellation for {self.order_id} ({self.cancelled_by})"
