from django.contrib import admin
from .models import RiderProfile


@admin.register(RiderProfile)
class RiderProfileAdmin(admin.ModelAdmin):
    list_display = ('user_email', 'current_status', 'is_approved', 'updated_at')
    list_filter = ('current_status', 'is_approved')
    search_fields = ('user__email', 'user__full_name', 'user__phone')
    list_editable = ('is_approved',)

    def user_email(self, obj):
        return obj.user.email
