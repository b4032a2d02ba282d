from django.conf import settings
from django.db import models

from .order import Order, OrderStatus


class OrderStatusHistory(models.Model):
    """
    Append-only audit trail. The last row always matches Order.status.
    """
    id = models.BigAutoField(primary_key=True)
    order = models.ForeignKey(Order, related_name="status_history", on_delete=models.CASCADE)

    status = models.CharField(max_length=20, choices=OrderStatus.choices)  # status *after* change
    timestamp = models.DateTimeField()
    note = models.TextField(blank=True)

    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )

    class Meta:
        ordering = ["timestamp", "id"]
        verbose_name_plural = "Order status history"

    def __str__(self):
        return f"{self.order_id} -> {self.status}"
