# apps/catalog/models.py
from django.conf import settings
from django.db import models

from apps.utils.models import TimestampedModel


class Meal(TimestampedModel):
    """
    A dish on a restaurant's menu.
    Orders snapshot `name` and `price` at creation, so edits here never
    change historical orders.
    """
    restaurant = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="meals",
        limit_choices_to={"role": "restaurant_owner"},
    )
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2)

    is_available = models.BooleanField(default=True)
    preparation_time = models.PositiveIntegerField(default=15, help_text="Minutes")

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["restaurant", "is_available"], name="catalog_meal_rest_avail_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.price})"
