import logging

from django.conf import settings
from django.core.cache import cache
from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.utils.exceptions import Conflict
from . import selectors
from .serializers import (
    AssignDeliverySerializer,
    CancelOrderSerializer,
    CreateOrderSerializer,
    EarningsSerializer,
    OrderSerializer,
    RateOrderSerializer,
    RatingSerializer,
    StatsQuerySerializer,
    StatsSerializer,
    TrackingSerializer,
    UpdateStatusSerializer,
)
from .services import OrderService

logger = logging.getLogger(__name__)

IN_FLIGHT = "processing"


def _page_response(page):
    page["orders"] = OrderSerializer(page["orders"], many=True).data
    return Response(page)


class OrderViewSet(viewsets.GenericViewSet):
    """
    Order lifecycle endpoints. Authorization and transition rules live
    in the service layer; views only validate payloads and serialize.
    """
    serializer_class = OrderSerializer
    permission_classes = [IsAuthenticated]

    @extend_schema(request=CreateOrderSerializer, responses=OrderSerializer)
    def create(self, request):
        """
        Place an order.

        An optional X-Idempotency-Key header makes retries safe: the same
        key from the same customer returns the order created the first time.
        """
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        idempotency_key = request.headers.get('X-Idempotency-Key')
        cache_key = f"order_idempotency_{request.user.id}_{idempotency_key}" if idempotency_key else None

        if cache_key and not cache.add(cache_key, IN_FLIGHT, timeout=settings.IDEMPOTENCY_KEY_TTL):
            existing = cache.get(cache_key)
            if existing in (None, IN_FLIGHT):
                raise Conflict("Duplicate request is still being processed.", code="duplicate_request")
            order = OrderService.get_order(request.user, existing)
            logger.info(f"Idempotent replay for order {order.order_number}", extra={"user_id": str(request.user.id)})
            return Response(OrderSerializer(order).data, status=status.HTTP_200_OK)

        data = serializer.validated_data
        try:
            order = OrderService.create_order(
                request.user,
                restaurant_id=data['restaurant_id'],
                items=data['items'],
                delivery_address=data['delivery_address'],
                payment_method=data['payment_method'],
                coupon_code=data.get('coupon_code') or None,
                special_instructions=data.get('special_instructions', ''),
            )
        except Exception:
            if cache_key:
                cache.delete(cache_key)  # release the key so the client can retry
            raise

        if cache_key:
            cache.set(cache_key, str(order.id), timeout=settings.IDEMPOTENCY_KEY_TTL)
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    def list(self, request):
        return _page_response(selectors.list_orders(request.user, request.query_params))

    def retrieve(self, request, pk=None):
        order = OrderService.get_order(request.user, pk)
        return Response(OrderSerializer(order).data)

    @extend_schema(request=UpdateStatusSerializer, responses=OrderSerializer)
    @action(detail=True, methods=['patch'], url_path='status')
    def update_status(self, request, pk=None):
        serializer = UpdateStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = OrderService.update_status(
            request.user,
            pk,
            serializer.validated_data['status'],
            reason=serializer.validated_data['reason'],
            expected_status=serializer.validated_data.get('expected_status'),
        )
        return Response(OrderSerializer(order).data)

    @extend_schema(request=AssignDeliverySerializer, responses=OrderSerializer)
    @action(detail=True, methods=['post'])
    def assign(self, request, pk=None):
        serializer = AssignDeliverySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = OrderService.assign_delivery_person(
            request.user,
            pk,
            serializer.validated_data['delivery_person_id'],
            expected_status=serializer.validated_data.get('expected_status'),
        )
        return Response(OrderSerializer(order).data)

    @extend_schema(request=None, responses=OrderSerializer)
    @action(detail=True, methods=['post'])
    def accept(self, request, pk=None):
        order = OrderService.accept_order(request.user, pk)
        return Response(OrderSerializer(order).data)

    @extend_schema(request=CancelOrderSerializer, responses=OrderSerializer)
    @action(detail=True, methods=['patch'])
    def cancel(self, request, pk=None):
        serializer = CancelOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = OrderService.cancel_order(
            request.user,
            pk,
            reason=serializer.validated_data['reason'],
            expected_status=serializer.validated_data.get('expected_status'),
        )
        return Response(OrderSerializer(order).data)

    @extend_schema(request=RateOrderSerializer, responses=RatingSerializer)
    @action(detail=True, methods=['post'])
    def rate(self, request, pk=None):
        serializer = RateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        scores = serializer.validated_data['rating']
        rating = OrderService.rate_order(
            request.user, pk, comment=serializer.validated_data['review'], **scores
        )
        return Response(RatingSerializer(rating).data, status=status.HTTP_201_CREATED)

    @extend_schema(responses=TrackingSerializer)
    @action(detail=True, methods=['get'])
    def track(self, request, pk=None):
        return Response(TrackingSerializer(OrderService.track_order(request.user, pk)).data)

    @extend_schema(parameters=[StatsQuerySerializer], responses=StatsSerializer)
    @action(detail=False, methods=['get'])
    def stats(self, request):
        query = StatsQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        summary = selectors.OrderStatsService.summarize(request.user, query.validated_data['period'])
        return Response(StatsSerializer(summary).data)

    @extend_schema(parameters=[StatsQuerySerializer], responses=EarningsSerializer)
    @action(detail=False, methods=['get'])
    def earnings(self, request):
        query = StatsQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        summary = selectors.OrderStatsService.earnings(request.user, query.validated_data['period'])
        return Response(EarningsSerializer(summary).data)

    @action(detail=False, methods=['get'])
    def restaurant(self, request):
        return _page_response(selectors.restaurant_orders(request.user, request.query_params))

    @action(detail=False, methods=['get'])
    def available(self, request):
        return _page_response(selectors.available_orders(request.user, request.query_params))
