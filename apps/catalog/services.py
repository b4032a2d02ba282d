from apps.utils.exceptions import DomainValidationError
from .models import Meal


class MealService:

    @staticmethod
    def get_orderable_meals(restaurant_id, meal_ids):
        """
        Resolve meal ids for one restaurant, all-or-nothing.
        Returns {str(meal_id): Meal}. Any id that is unknown, belongs to
        another restaurant, or is switched off fails the whole lookup.
        """
        wanted = {str(mid) for mid in meal_ids}
        meals = {
            str(m.id): m
            for m in Meal.objects.filter(id__in=wanted, restaurant_id=restaurant_id)
        }

        missing = sorted(wanted - meals.keys())
        if missing:
            raise DomainValidationError(
                f"Meal {missing[0]} does not exist for this restaurant.",
                code="meal_not_found",
            )

        for meal in meals.values():
            if not meal.is_available:
                raise DomainValidationError(
                    f"{meal.name} is currently unavailable.",
                    code="meal_unavailable",
                )

        return meals
