from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from .order import Order

SCORE_VALIDATORS = [MinValueValidator(1), MaxValueValidator(5)]


class OrderRating(models.Model):
    order = models.OneToOneField(Order, related_name="rating", on_delete=models.CASCADE)
    food = models.PositiveSmallIntegerField(validators=SCORE_VALIDATORS)
    delivery = models.PositiveSmallIntegerField(validators=SCORE_VALIDATORS)
    overall = models.PositiveSmallIntegerField(validators=SCORE_VALIDATORS)
    comment = models.TextField(blank=True)
    rated_at = models.DateTimeField()

    def __str__(self):
        return f"{self.order_id}: {self.overall}/5"
