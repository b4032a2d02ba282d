import json
from django.contrib import admin
from django.utils.safestring import mark_safe
from .models import (
    Order, OrderItem, OrderStatusHistory,
    Coupon, OrderCancellation, OrderRating
)


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ('meal', 'name', 'unit_price', 'quantity', 'special_instructions')

    def has_add_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class StatusHistoryInline(admin.TabularInline):
    model = OrderStatusHistory
    extra = 0
    readonly_fields = ('timestamp', 'status', 'updated_by', 'note')

    def has_add_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Read-only view of orders. Status changes go through the API so the
    transition rules and history stay consistent.
    """
    list_display = (
        'order_number',
        'customer',
        'restaurant',
        'delivery_person',
        'status',
        'payment_status',
        'total_amount',
        'created_at'
    )
    list_filter = ('status', 'payment_method', 'payment_status', 'created_at')
    search_fields = ('order_number', 'id', 'customer__email', 'restaurant__email')
    inlines = [OrderItemInline, StatusHistoryInline]

    readonly_fields = (
        'id', 'order_number', 'customer', 'restaurant', 'delivery_person',
        'status', 'status_reason', 'version',
        'subtotal', 'delivery_fee', 'service_fee', 'tax', 'discount', 'total_amount',
        'payment_method', 'payment_status', 'coupon',
        'formatted_delivery_address', 'special_instructions', 'preparation_time',
        'estimated_delivery_time', 'actual_delivery_time', 'created_at', 'updated_at',
    )

    fieldsets = (
        ('Order Details', {
            'fields': ('order_number', 'id', 'status', 'status_reason', 'customer', 'restaurant', 'delivery_person')
        }),
        ('Financials', {
            'fields': ('subtotal', 'delivery_fee', 'service_fee', 'tax', 'discount', 'total_amount',
                       'payment_method', 'payment_status', 'coupon')
        }),
        ('Delivery Info', {
            'fields': ('formatted_delivery_address', 'special_instructions', 'preparation_time',
                       'estimated_delivery_time', 'actual_delivery_time')
        }),
        ('System Data', {
            'fields': ('version', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def has_add_permission(self, request):
        return False

    def formatted_delivery_address(self, obj):
        if not obj.delivery_address:
            return "-"
        content = json.dumps(obj.delivery_address, indent=2)
        return mark_safe(f"<pre>{content}</pre>")

    formatted_delivery_address.short_description = "Delivery Address Snapshot"


@admin.register(Coupon)
class CouponAdmin(admin.ModelAdmin):
    list_display = ('code', 'discount_value', 'is_percentage', 'valid_to', 'active', 'times_used')
    list_filter = ('active', 'is_percentage')
    search_fields = ('code',)
    readonly_fields = ('times_used',)
    fieldsets = (
        ('Coupon Details', {
            'fields': ('code', 'active')
        }),
        ('Value', {
            'fields': ('discount_value', 'is_percentage', 'min_purchase_amount')
        }),
        ('Validity', {
            'fields': ('valid_from', 'valid_to')
        }),
        ('Stats', {
            'fields': ('times_used',),
            'classes': ('collapse',)
        })
    )


@admin.register(OrderCancellation)
class OrderCancellationAdmin(admin.ModelAdmin):
    list_display = ('order', 'cancelled_by', 'cancelled_by_user', 'created_at')
    list_filter = ('cancelled_by',)
    search_fields = ('order__order_number', 'reason')


@admin.register(OrderRating)
class OrderRatingAdmin(admin.ModelAdmin):
    list_display = ('order', 'food', 'delivery', 'overall', 'rated_at')
    list_filter = ('overall',)
    search_fields = ('order__order_number', 'comment')
