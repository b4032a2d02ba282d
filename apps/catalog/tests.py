# apps/catalog/tests.py
import uuid
from decimal import Decimal

from django.test import TestCase
from django.contrib.auth import get_user_model

from apps.utils.exceptions import DomainValidationError
from .models import Meal
from .services import MealService

User = get_user_model()


class MealLookupTests(TestCase):
    def setUp(self):
        self.restaurant = User.objects.create_user(
            email="kitchen@example.com", password="testpass", role="restaurant_owner"
        )
        self.other_restaurant = User.objects.create_user(
            email="other@example.com", password="testpass", role="restaurant_owner"
        )
        self.burger = Meal.objects.create(
            restaurant=self.restaurant, name="Burger", price=Decimal("8.50")
        )
        self.fries = Meal.objects.create(
            restaurant=self.restaurant, name="Fries", price=Decimal("3.00"), is_available=False
        )
        self.pizza = Meal.objects.create(
            restaurant=self.other_restaurant, name="Pizza", price=Decimal("11.00")
        )

    def test_returns_meals_keyed_by_id(self):
        meals = MealService.get_orderable_meals(self.restaurant.id, [self.burger.id])
        self.assertEqual(list(meals.keys()), [str(self.burger.id)])

    def test_unknown_meal_rejected(self):
        with self.assertRaises(DomainValidationError) as ctx:
            MealService.get_orderable_meals(self.restaurant.id, [uuid.uuid4()])
        self.assertEqual(ctx.exception.code, "meal_not_found")

    def test_meal_from_other_restaurant_rejected(self):
        with self.assertRaises(DomainValidationError) as ctx:
            MealService.get_orderable_meals(self.restaurant.id, [self.pizza.id])
        self.assertEqual(ctx.exception.code, "meal_not_found")

    def test_unavailable_meal_rejected(self):
        with self.assertRaises(DomainValidationError) as ctx:
            MealService.get_orderable_meals(self.restaurant.id, [self.burger.id, self.fries.id])
        self.assertEqual(ctx.exception.code, "meal_unavailable")
