# apps/catalog/admin.py
from django.contrib import admin
from .models import Meal


@admin.register(Meal)
class MealAdmin(admin.ModelAdmin):
    list_display = ("name", "restaurant", "price", "preparation_time", "is_available")
    search_fields = ("name", "restaurant__email")
    list_filter = ("is_available",)
    list_editable = ("price", "is_available")
    readonly_fields = ("created_at", "updated_at")
