import uuid
import logging
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import F

from apps.accounts.models import Role
from apps.catalog.services import MealService
from apps.riders.services import RiderAssignmentService
from apps.utils.exceptions import (
    BusinessLogicException,
    Conflict,
    DomainValidationError,
    InvalidTransition,
    NotFound,
)
from apps.utils.utils import generate_order_number, now
from .models import (
    Coupon,
    Order,
    OrderCancellation,
    OrderItem,
    OrderRating,
    OrderStatus,
    OrderStatusHistory,
    PaymentStatus,
)
from .policies import Action, authorize, authorize_target, authorize_window
from .pricing import calculate_pricing, resolve_coupon
from .signals import order_created, order_status_changed
from .state_machine import ensure_transition

logger = logging.getLogger(__name__)

User = get_user_model()


def _is_uuid(value) -> bool:
    try:
        uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return False
    return True


def _log_extra(order, actor=None, **more):
    extra = {"order_id": str(order.id), "order_number": order.order_number}
    if actor is not None:
        extra["user_id"] = str(actor.id)
    extra.update(more)
    return extra


class OrderService:

    @staticmethod
    def _load(order_id):
        if not _is_uuid(order_id):
            raise NotFound("Order not found.", code="order_not_found")
        try:
            return Order.objects.select_related(
                "customer", "restaurant", "delivery_person"
            ).get(pk=order_id)
        except Order.DoesNotExist:
            raise NotFound("Order not found.", code="order_not_found")

    @staticmethod
    def _observed(order, actor, expected_status=None):
        """
        The status this caller acts on. A client that read an older status
        than the stored one gets Conflict before any transition check.
        """
        if expected_status and expected_status != order.status:
            logger.warning(
                f"Stale read on {order.order_number}: expected {expected_status}, found {order.status}",
                extra=_log_extra(order, actor, status=order.status),
            )
            raise Conflict("Order was modified by another request. Reload and try again.")
        return order.status

    @staticmethod
    def _apply_status(order, actor, target, observed=None, note="", at=None, extra=None, conditions=None):
        """
        Compare-and-swap status write plus its history row.

        The UPDATE only matches while the row still has the status and
        version this caller read; zero matched rows means somebody else
        wrote first. Must run inside transaction.atomic().
        """
        observed = observed or order.status
        at = at or now()

        updated = Order.objects.filter(
            pk=order.pk,
            status=observed,
            version=order.version,
            **(conditions or {}),
        ).update(
            status=target,
            version=F("version") + 1,
            updated_at=at,
            **(extra or {}),
        )
        if not updated:
            logger.warning(
                f"Stale write on {order.order_number}: expected {observed}/v{order.version}",
                extra=_log_extra(order, actor, status=target),
            )
            raise Conflict("Order was modified by another request. Reload and try again.")

        OrderStatusHistory.objects.create(
            order_id=order.pk,
            status=target,
            timestamp=at,
            updated_by=actor,
            note=note or "",
        )
        order.refresh_from_db()
        return order

    @staticmethod
    def _notify(order, old_status, actor):
        order_status_changed.send(
            sender=Order,
            order=order,
            old_status=old_status,
            new_status=order.status,
            actor=actor,
        )

    @staticmethod
    def create_order(actor, restaurant_id, items, delivery_address, payment_method,
                     coupon_code=None, special_instructions=""):
        """
        Place a new order for a customer.

        1. Validate restaurant and meals (all-or-nothing)
        2. Snapshot names and prices server side
        3. Write order, items and the first history entry atomically
        """
        authorize(actor, Action.CREATE)

        if not items:
            raise DomainValidationError("Order must contain at least one item.", code="empty_order")

        restaurant = None
        if _is_uuid(restaurant_id):
            restaurant = User.objects.filter(
                pk=restaurant_id, role=Role.RESTAURANT_OWNER, is_active=True
            ).first()
        if restaurant is None:
            raise DomainValidationError("Restaurant not found.", code="restaurant_not_found")

        for line in items:
            quantity = line.get("quantity")
            if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
                raise DomainValidationError("Quantity must be a positive integer.", code="invalid_quantity")
            if not _is_uuid(line.get("meal_id")):
                raise DomainValidationError("Meal not found.", code="meal_not_found")

        meals = MealService.get_orderable_meals(restaurant.id, [line["meal_id"] for line in items])

        # Trusted price calculation; duplicate meal lines are priced separately
        subtotal = Decimal("0.00")
        order_lines = []
        for line in items:
            meal = meals[str(line["meal_id"])]
            subtotal += meal.price * line["quantity"]
            order_lines.append((meal, line))

        preparation_time = max(
            (meal.preparation_time for meal in meals.values()),
            default=settings.DEFAULT_PREPARATION_MINUTES,
        )

        try:
            with transaction.atomic():
                coupon = resolve_coupon(coupon_code, subtotal, now()) if coupon_code else None
                pricing = calculate_pricing(subtotal, coupon)
                if coupon is not None:
                    Coupon.objects.filter(pk=coupon.pk).update(times_used=F("times_used") + 1)

                order = Order.objects.create(
                    order_number=generate_order_number(),
                    customer=actor,
                    restaurant=restaurant,
                    delivery_address=delivery_address,
                    payment_method=payment_method,
                    coupon=coupon,
                    special_instructions=special_instructions or "",
                    preparation_time=preparation_time,
                    status=OrderStatus.PENDING,
                    **pricing,
                )

                OrderItem.objects.bulk_create([
                    OrderItem(
                        order=order,
                        meal=meal,
                        name=meal.name,
                        unit_price=meal.price,
                        quantity=line["quantity"],
                        special_instructions=line.get("special_instructions") or "",
                    )
                    for meal, line in order_lines
                ])

                OrderStatusHistory.objects.create(
                    order=order,
                    status=OrderStatus.PENDING,
                    timestamp=order.created_at,
                    updated_by=actor,
                    note="Order placed",
                )
        except IntegrityError:
            # order_number collision; nothing was written
            logger.exception("Order creation failed", extra={"user_id": str(actor.id)})
            raise Conflict("Could not allocate an order number. Please retry.")

        logger.info(f"Order {order.order_number} created", extra=_log_extra(order, actor))
        order_created.send(sender=Order, order=order)
        return order

    @staticmethod
    def get_order(actor, order_id):
        order = OrderService._load(order_id)
        authorize(actor, Action.VIEW, order)
        return order

    @staticmethod
    def update_status(actor, order_id, status, reason="", expected_status=None):
        """
        Move an order to `status`. Cancellation is delegated to cancel_order
        and `assigned` is only reachable through assignment.
        """
        if status == OrderStatus.CANCELLED:
            return OrderService.cancel_order(actor, order_id, reason, expected_status=expected_status)

        order = OrderService._load(order_id)
        authorize(actor, Action.UPDATE_STATUS, order)
        authorize_target(actor, status)

        if status == OrderStatus.ASSIGNED:
            raise InvalidTransition("Orders are assigned through the assignment endpoint.")

        observed = OrderService._observed(order, actor, expected_status)
        ensure_transition(observed, status)
        authorize_window(actor, observed, status)

        at = now()
        extra = {}
        if reason:
            extra["status_reason"] = reason
        if status == OrderStatus.CONFIRMED and order.estimated_delivery_time is None:
            extra["estimated_delivery_time"] = at + timedelta(
                minutes=order.preparation_time + settings.DELIVERY_ESTIMATE_MINUTES
            )
        if status == OrderStatus.DELIVERED:
            extra["actual_delivery_time"] = at

        with transaction.atomic():
            order = OrderService._apply_status(
                order, actor, status, observed=observed, note=reason, at=at, extra=extra
            )
            if status == OrderStatus.DELIVERED and order.delivery_person_id:
                RiderAssignmentService.release(order.delivery_person)

        logger.info(f"Order {order.order_number} is now {status}", extra=_log_extra(order, actor, status=status))
        OrderService._notify(order, observed, actor)
        return order

    @staticmethod
    def cancel_order(actor, order_id, reason="", expected_status=None):
        order = OrderService._load(order_id)
        authorize(actor, Action.CANCEL, order)

        observed = OrderService._observed(order, actor, expected_status)
        ensure_transition(observed, OrderStatus.CANCELLED)
        authorize_window(actor, observed, OrderStatus.CANCELLED)

        extra = {"status_reason": reason or ""}
        if order.payment_status == PaymentStatus.PAID:
            extra["payment_status"] = PaymentStatus.REFUNDED

        with transaction.atomic():
            order = OrderService._apply_status(
                order, actor, OrderStatus.CANCELLED, observed=observed, note=reason, extra=extra
            )
            OrderCancellation.objects.create(
                order=order,
                reason=reason or "",
                cancelled_by=actor.role,
                cancelled_by_user=actor,
            )

        logger.info(
            f"Order {order.order_number} cancelled by {actor.role}",
            extra=_log_extra(order, actor, status=OrderStatus.CANCELLED),
        )
        OrderService._notify(order, observed, actor)
        return order

    @staticmethod
    def _assign(order, actor, rider, expected_status=None):
        observed = OrderService._observed(order, actor, expected_status)
        # Lost the race for a ready order; anything later is simply illegal
        if observed == OrderStatus.ASSIGNED:
            raise Conflict("Order already has a delivery person.")
        ensure_transition(observed, OrderStatus.ASSIGNED)

        with transaction.atomic():
            RiderAssignmentService.reserve(rider)
            order = OrderService._apply_status(
                order,
                actor,
                OrderStatus.ASSIGNED,
                observed=observed,
                note=f"Assigned to {rider.display_name}",
                extra={"delivery_person": rider},
                conditions={"delivery_person__isnull": True},
            )

        logger.info(
            f"Order {order.order_number} assigned to rider {rider.id}",
            extra=_log_extra(order, actor, status=OrderStatus.ASSIGNED),
        )
        OrderService._notify(order, observed, actor)
        return order

    @staticmethod
    def assign_delivery_person(actor, order_id, delivery_person_id, expected_status=None):
        order = OrderService._load(order_id)
        authorize(actor, Action.ASSIGN, order)

        rider = None
        if _is_uuid(delivery_person_id):
            rider = User.objects.filter(
                pk=delivery_person_id, role=Role.DELIVERY, is_active=True
            ).first()
        if rider is None:
            raise DomainValidationError("Delivery person not found.", code="invalid_delivery_person")

        return OrderService._assign(order, actor, rider, expected_status)

    @staticmethod
    def accept_order(actor, order_id):
        """
        Self-service pickup of a ready order by an ONLINE rider.
        When two riders accept the same order only the first write wins.
        """
        order = OrderService._load(order_id)
        authorize(actor, Action.ACCEPT)
        return OrderService._assign(order, actor, actor)

    @staticmethod
    def rate_order(actor, order_id, food, delivery, overall, comment=""):
        order = OrderService._load(order_id)
        authorize(actor, Action.RATE, order)

        if order.status != OrderStatus.DELIVERED:
            raise BusinessLogicException("Can only rate delivered orders", code="order_not_delivered")
        if OrderRating.objects.filter(order=order).exists():
            raise BusinessLogicException("Order has already been rated", code="already_rated")

        scores = {"food": food, "delivery": delivery, "overall": overall}
        bad = {k: "Must be an integer between 1 and 5." for k, v in scores.items()
               if not isinstance(v, int) or isinstance(v, bool) or not 1 <= v <= 5}
        if bad:
            raise DomainValidationError("Invalid rating.", errors=bad)

        try:
            with transaction.atomic():
                rating = OrderRating.objects.create(
                    order=order, comment=comment or "", rated_at=now(), **scores
                )
        except IntegrityError:
            raise BusinessLogicException("Order has already been rated", code="already_rated")

        logger.info(f"Order {order.order_number} rated {overall}/5", extra=_log_extra(order, actor))
        return rating

    @staticmethod
    def track_order(actor, order_id):
        order = OrderService._load(order_id)
        authorize(actor, Action.TRACK, order)

        rider = order.delivery_person
        return {
            "order_id": str(order.id),
            "order_number": order.order_number,
            "status": order.status,
            "estimated_delivery_time": order.estimated_delivery_time,
            "restaurant": {
                "id": str(order.restaurant_id),
                "name": order.restaurant.display_name,
            },
            "delivery_person": {
                "id": str(rider.id),
                "name": rider.display_name,
                "phone": rider.phone,
            } if rider else None,
            "created_at": order.created_at,
            "updated_at": order.updated_at,
        }
