from rest_framework import serializers

from .models import Order, OrderItem, OrderRating, OrderStatus, OrderStatusHistory, PaymentMethod
from .selectors import PERIOD_DAYS


class CoordinatesSerializer(serializers.Serializer):
    lat = serializers.FloatField(min_value=-90, max_value=90)
    lng = serializers.FloatField(min_value=-180, max_value=180)


class DeliveryAddressSerializer(serializers.Serializer):
    street = serializers.CharField(max_length=255)
    city = serializers.CharField(max_length=100)
    state = serializers.CharField(max_length=100, required=False, allow_blank=True)
    zip_code = serializers.CharField(max_length=20, required=False, allow_blank=True)
    coordinates = CoordinatesSerializer(required=False)
    additional_info = serializers.CharField(required=False, allow_blank=True)


class OrderItemInputSerializer(serializers.Serializer):
    meal_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    special_instructions = serializers.CharField(max_length=255, required=False, allow_blank=True)


class CreateOrderSerializer(serializers.Serializer):
    restaurant_id = serializers.UUIDField()
    items = OrderItemInputSerializer(many=True, allow_empty=False)
    delivery_address = DeliveryAddressSerializer()
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices)
    coupon_code = serializers.CharField(max_length=50, required=False, allow_blank=True)
    special_instructions = serializers.CharField(required=False, allow_blank=True)


class OrderItemSerializer(serializers.ModelSerializer):
    meal_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = OrderItem
        fields = ['meal_id', 'name', 'unit_price', 'quantity', 'special_instructions', 'line_total']


class StatusHistorySerializer(serializers.ModelSerializer):
    updated_by = serializers.UUIDField(source='updated_by_id', read_only=True)

    class Meta:
        model = OrderStatusHistory
        fields = ['status', 'timestamp', 'updated_by', 'note']


class RatingSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderRating
        fields = ['food', 'delivery', 'overall', 'comment', 'rated_at']


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)
    rating = serializers.SerializerMethodField()
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    coupon_code = serializers.CharField(source='coupon.code', read_only=True, default=None)
    customer_id = serializers.UUIDField(read_only=True)
    restaurant_id = serializers.UUIDField(read_only=True)
    delivery_person_id = serializers.UUIDField(read_only=True, allow_null=True)

    class Meta:
        model = Order
        fields = [
            'id', 'order_number', 'customer_id', 'restaurant_id', 'delivery_person_id',
            'status', 'status_display', 'status_reason', 'items',
            'subtotal', 'delivery_fee', 'service_fee', 'tax', 'discount', 'total_amount',
            'delivery_address', 'payment_method', 'payment_status', 'coupon_code',
            'special_instructions', 'preparation_time',
            'estimated_delivery_time', 'actual_delivery_time',
            'status_history', 'rating', 'version', 'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_rating(self, obj):
        try:
            rating = obj.rating
        except OrderRating.DoesNotExist:
            return None
        return RatingSerializer(rating).data


class UpdateStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)
    reason = serializers.CharField(required=False, allow_blank=True, default="")
    expected_status = serializers.ChoiceField(choices=OrderStatus.choices, required=False)


class CancelOrderSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")
    expected_status = serializers.ChoiceField(choices=OrderStatus.choices, required=False)


class AssignDeliverySerializer(serializers.Serializer):
    delivery_person_id = serializers.UUIDField()
    expected_status = serializers.ChoiceField(choices=OrderStatus.choices, required=False)


class RatingField(serializers.Field):
    """
    Accepts either a single score applied to every aspect or an object
    with food/delivery/overall scores.
    """
    default_error_messages = {
        'invalid': 'Rating must be an integer 1-5 or an object with food, delivery and overall.',
    }
    ASPECTS = ('food', 'delivery', 'overall')

    def _score(self, value):
        if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 5:
            self.fail('invalid')
        return value

    def to_internal_value(self, data):
        if isinstance(data, dict):
            missing = [k for k in self.ASPECTS if k not in data]
            if missing:
                self.fail('invalid')
            return {k: self._score(data[k]) for k in self.ASPECTS}
        score = self._score(data)
        return {k: score for k in self.ASPECTS}

    def to_representation(self, value):
        return value


class RateOrderSerializer(serializers.Serializer):
    rating = RatingField()
    review = serializers.CharField(required=False, allow_blank=True, default="")


class StatsQuerySerializer(serializers.Serializer):
    period = serializers.ChoiceField(choices=list(PERIOD_DAYS), required=False, default="month")


class TrackingSerializer(serializers.Serializer):
    order_id = serializers.CharField()
    order_number = serializers.CharField()
    status = serializers.CharField()
    estimated_delivery_time = serializers.DateTimeField(allow_null=True)
    restaurant = serializers.DictField()
    delivery_person = serializers.DictField(allow_null=True)
    created_at = serializers.DateTimeField()
    updated_at = serializers.DateTimeField()


class StatsSerializer(serializers.Serializer):
    period = serializers.CharField()
    since = serializers.DateTimeField()
    total_orders = serializers.IntegerField()
    total_revenue = serializers.DecimalField(max_digits=12, decimal_places=2)
    avg_order_value = serializers.DecimalField(max_digits=12, decimal_places=2)
    completed_orders = serializers.IntegerField()
    cancelled_orders = serializers.IntegerField()


class EarningsDaySerializer(serializers.Serializer):
    date = serializers.DateField()
    earnings = serializers.DecimalField(max_digits=12, decimal_places=2)
    deliveries = serializers.IntegerField()


class EarningsSerializer(serializers.Serializer):
    period = serializers.CharField()
    since = serializers.DateTimeField()
    total_earnings = serializers.DecimalField(max_digits=12, decimal_places=2)
    delivery_count = serializers.IntegerField()
    avg_earnings_per_delivery = serializers.DecimalField(max_digits=12, decimal_places=2)
    breakdown = EarningsDaySerializer(many=True)
