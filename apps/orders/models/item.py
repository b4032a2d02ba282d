from django.db import models
from django.core.validators import MinValueValidator

from apps.catalog.models import Meal
from .order import Order


class OrderItem(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    meal = models.ForeignKey(Meal, on_delete=models.PROTECT, related_name="order_items")

    # Snapshot fields (critical for audit)
    name = models.CharField(max_length=255)
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)

    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    special_instructions = models.CharField(max_length=255, blank=True)

    class Meta:
        ordering = ["id"]

    @property
    def line_total(self):
        return self.unit_price * self.quantity

    def __str__(self):
        return f"{self.quantity}x {self.name}"
