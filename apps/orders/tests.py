# apps/orders/tests.py
import re
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase, override_settings
from django.utils import timezone

from apps.catalog.models import Meal
from apps.riders.models import RiderProfile, RiderStatus
from apps.utils.exceptions import (
    BusinessLogicException,
    Conflict,
    DomainValidationError,
    Forbidden,
    InvalidTransition,
    NotFound,
)
from apps.orders import selectors
from apps.orders.models import (
    Coupon,
    Order,
    OrderCancellation,
    OrderRating,
    OrderStatus,
    PaymentStatus,
)
from apps.orders.pricing import calculate_pricing, resolve_coupon
from apps.orders.services import OrderService
from apps.orders.signals import order_status_changed
from apps.orders.state_machine import (
    CANCELLABLE_STATUSES,
    TERMINAL_STATES,
    TRANSITIONS,
    can_transition,
    ensure_transition,
)

User = get_user_model()

S = OrderStatus

LIFECYCLE = [
    S.CONFIRMED, S.PREPARING, S.READY, S.ASSIGNED, S.PICKED_UP, S.ON_THE_WAY, S.DELIVERED,
]
RIDER_STEPS = {S.PICKED_UP, S.ON_THE_WAY, S.DELIVERED}


def rider_status(user):
    return RiderProfile.objects.get(user=user).current_status


PRICING = dict(
    BASE_DELIVERY_FEE=Decimal("5.00"),
    SERVICE_FEE_RATE=Decimal("0.02"),
    TAX_RATE=Decimal("0.10"),
    DELIVERY_ESTIMATE_MINUTES=30,
)


class OrderFixtures:
    """
    Users for every role, two meals and helpers to place and advance orders.
    """

    def setUp(self):
        self.customer = User.objects.create_user(email="customer@example.com", password="testpass123")
        self.other_customer = User.objects.create_user(email="other@example.com", password="testpass123")
        self.restaurant = User.objects.create_user(
            email="pasta@example.com", password="testpass123",
            role="restaurant_owner", full_name="Pasta Place",
        )
        self.other_restaurant = User.objects.create_user(
            email="sushi@example.com", password="testpass123", role="restaurant_owner"
        )
        self.rider = User.objects.create_user(
            email="rider@example.com", password="testpass123",
            role="delivery", full_name="Ravi Rider", phone="+15550001",
        )
        self.second_rider = User.objects.create_user(
            email="rider2@example.com", password="testpass123", role="delivery"
        )
        for rider in (self.rider, self.second_rider):
            RiderProfile.objects.create(user=rider, is_approved=True, current_status=RiderStatus.ONLINE)
        self.admin = User.objects.create_user(email="ops@example.com", password="testpass123", role="admin")

        self.meal = Meal.objects.create(
            restaurant=self.restaurant, name="Carbonara", price=Decimal("12.00"), preparation_time=20
        )
        self.side = Meal.objects.create(
            restaurant=self.restaurant, name="Garlic Bread", price=Decimal("4.50"), preparation_time=10
        )
        self.address = {"street": "1 Main St", "city": "Springfield", "zip_code": "12345"}

    def place_order(self, customer=None, **overrides):
        kwargs = dict(
            restaurant_id=self.restaurant.id,
            items=[{"meal_id": self.meal.id, "quantity": 2}],
            delivery_address=self.address,
            payment_method="cash",
        )
        kwargs.update(overrides)
        return OrderService.create_order(customer or self.customer, **kwargs)

    def advance(self, order, target):
        start = LIFECYCLE.index(order.status) + 1 if order.status in LIFECYCLE else 0
        for status in LIFECYCLE[start:LIFECYCLE.index(target) + 1]:
            if status == S.ASSIGNED:
                order = OrderService.assign_delivery_person(self.admin, order.id, self.rider.id)
            elif status in RIDER_STEPS:
                order = OrderService.update_status(self.rider, order.id, status)
            else:
                order = OrderService.update_status(self.restaurant, order.id, status)
        return order


class StateMachineTests(SimpleTestCase):
    def test_forward_path_is_legal(self):
        path = [S.PENDING] + LIFECYCLE
        for current, target in zip(path, path[1:]):
            self.assertTrue(can_transition(current, target), f"{current} -> {target}")

    def test_terminal_states_have_no_successors(self):
        self.assertEqual(TERMINAL_STATES, {S.DELIVERED, S.CANCELLED})
        for state in TERMINAL_STATES:
            for target in S.values:
                with self.assertRaises(InvalidTransition):
                    ensure_transition(state, target)

    def test_cancellation_window(self):
        self.assertEqual(CANCELLABLE_STATUSES, {S.PENDING, S.CONFIRMED, S.PREPARING})

    def test_unlisted_pairs_rejected(self):
        for current, allowed in TRANSITIONS.items():
            for target in set(S.values) - set(allowed):
                self.assertFalse(can_transition(current, target), f"{current} -> {target}")

    def test_no_skipping_ahead(self):
        with self.assertRaises(InvalidTransition):
            ensure_transition(S.PENDING, S.READY)


@override_settings(**PRICING)
class PricingTests(TestCase):
    def setUp(self):
        now = timezone.now()
        self.window = dict(valid_from=now - timedelta(days=1), valid_to=now + timedelta(days=1))

    def test_breakdown(self):
        pricing = calculate_pricing(Decimal("24.00"))
        self.assertEqual(pricing["delivery_fee"], Decimal("5.00"))
        self.assertEqual(pricing["service_fee"], Decimal("0.48"))
        self.assertEqual(pricing["tax"], Decimal("2.40"))
        self.assertEqual(pricing["discount"], Decimal("0.00"))
        self.assertEqual(pricing["total_amount"], Decimal("31.88"))

    def test_rounds_half_up(self):
        pricing = calculate_pricing(Decimal("0.25"))
        self.assertEqual(pricing["service_fee"], Decimal("0.01"))
        self.assertEqual(pricing["tax"], Decimal("0.03"))

    def test_percentage_coupon(self):
        coupon = Coupon.objects.create(code="TEN", discount_value=Decimal("10"), is_percentage=True, **self.window)
        pricing = calculate_pricing(Decimal("24.00"), coupon)
        self.assertEqual(pricing["discount"], Decimal("2.40"))
        self.assertEqual(pricing["total_amount"], Decimal("29.48"))

    def test_discount_capped_at_subtotal(self):
        coupon = Coupon.objects.create(code="BIG", discount_value=Decimal("100.00"), **self.window)
        pricing = calculate_pricing(Decimal("24.00"), coupon)
        self.assertEqual(pricing["discount"], Decimal("24.00"))
        self.assertEqual(pricing["total_amount"], Decimal("7.88"))

    def test_expired_coupon(self):
        now = timezone.now()
        Coupon.objects.create(
            code="OLD", discount_value=Decimal("1.00"),
            valid_from=now - timedelta(days=10), valid_to=now - timedelta(days=1),
        )
        with self.assertRaises(DomainValidationError) as ctx:
            resolve_coupon("OLD", Decimal("24.00"), now)
        self.assertEqual(ctx.exception.code, "coupon_expired")

    def test_minimum_purchase(self):
        Coupon.objects.create(
            code="MIN50", discount_value=Decimal("5.00"), min_purchase_amount=Decimal("50.00"), **self.window
        )
        with self.assertRaises(DomainValidationError) as ctx:
            resolve_coupon("min50", Decimal("24.00"), timezone.now())
        self.assertEqual(ctx.exception.code, "coupon_min_purchase")

    def test_unknown_coupon(self):
        with self.assertRaises(DomainValidationError) as ctx:
            resolve_coupon("NOPE", Decimal("24.00"), timezone.now())
        self.assertEqual(ctx.exception.code, "coupon_invalid")


@override_settings(**PRICING)
class OrderCreationTests(OrderFixtures, TestCase):
    def test_new_order_is_pending_with_one_history_entry(self):
        order = self.place_order()

        self.assertEqual(order.status, S.PENDING)
        self.assertEqual(order.version, 0)
        history = list(order.status_history.all())
        self.assertEqual(len(history), 1)
        self.assertEqual(history[0].status, S.PENDING)
        self.assertEqual(history[0].updated_by, self.customer)
        self.assertEqual(order.total_amount, Decimal("31.88"))
        self.assertRegex(order.order_number, r"^ORD-\d{6}-[0-9A-F]{10}$")

    def test_items_are_snapshotted(self):
        order = self.place_order(items=[
            {"meal_id": self.meal.id, "quantity": 1},
            {"meal_id": self.side.id, "quantity": 2, "special_instructions": "extra butter"},
        ])
        self.meal.price = Decimal("99.00")
        self.meal.save()

        items = list(order.items.all())
        self.assertEqual([i.name for i in items], ["Carbonara", "Garlic Bread"])
        self.assertEqual(items[0].unit_price, Decimal("12.00"))
        self.assertEqual(items[1].special_instructions, "extra butter")
        self.assertEqual(order.subtotal, Decimal("21.00"))
        self.assertEqual(order.preparation_time, 20)

    def test_duplicate_meal_lines_priced_separately(self):
        order = self.place_order(items=[
            {"meal_id": self.meal.id, "quantity": 1},
            {"meal_id": self.meal.id, "quantity": 1},
        ])
        self.assertEqual(order.items.count(), 2)
        self.assertEqual(order.subtotal, Decimal("24.00"))

    def test_only_customers_create_orders(self):
        with self.assertRaises(Forbidden):
            self.place_order(customer=self.restaurant)

    def test_empty_order_rejected(self):
        with self.assertRaises(DomainValidationError):
            self.place_order(items=[])
        self.assertFalse(Order.objects.exists())

    def test_unavailable_meal_leaves_no_partial_order(self):
        self.side.is_available = False
        self.side.save()
        with self.assertRaises(DomainValidationError) as ctx:
            self.place_order(items=[
                {"meal_id": self.meal.id, "quantity": 1},
                {"meal_id": self.side.id, "quantity": 1},
            ])
        self.assertEqual(ctx.exception.code, "meal_unavailable")
        self.assertFalse(Order.objects.exists())

    def test_meal_must_belong_to_restaurant(self):
        with self.assertRaises(DomainValidationError) as ctx:
            self.place_order(restaurant_id=self.other_restaurant.id)
        self.assertEqual(ctx.exception.code, "meal_not_found")

    def test_unknown_restaurant(self):
        with self.assertRaises(DomainValidationError) as ctx:
            self.place_order(restaurant_id=self.customer.id)
        self.assertEqual(ctx.exception.code, "restaurant_not_found")

    def test_zero_quantity_rejected(self):
        with self.assertRaises(DomainValidationError) as ctx:
            self.place_order(items=[{"meal_id": self.meal.id, "quantity": 0}])
        self.assertEqual(ctx.exception.code, "invalid_quantity")

    def test_coupon_applied_and_counted(self):
        now = timezone.now()
        coupon = Coupon.objects.create(
            code="SAVE5", discount_value=Decimal("5.00"),
            valid_from=now - timedelta(days=1), valid_to=now + timedelta(days=1),
        )
        order = self.place_order(coupon_code="SAVE5")

        self.assertEqual(order.discount, Decimal("5.00"))
        self.assertEqual(order.total_amount, Decimal("26.88"))
        coupon.refresh_from_db()
        self.assertEqual(coupon.times_used, 1)

    def test_order_numbers_unique(self):
        numbers = {self.place_order().order_number for _ in range(5)}
        self.assertEqual(len(numbers), 5)


@override_settings(**PRICING)
class StatusTransitionTests(OrderFixtures, TestCase):
    def setUp(self):
        super().setUp()
        self.order = self.place_order()

    def test_restaurant_confirms(self):
        order = OrderService.update_status(self.restaurant, self.order.id, S.CONFIRMED)

        self.assertEqual(order.status, S.CONFIRMED)
        self.assertEqual(order.version, 1)
        self.assertEqual(order.status_history.count(), 2)

    def test_confirm_sets_estimated_delivery_time(self):
        order = OrderService.update_status(self.restaurant, self.order.id, S.CONFIRMED)
        confirmed_at = order.status_history.last().timestamp
        self.assertEqual(order.estimated_delivery_time, confirmed_at + timedelta(minutes=20 + 30))

    def test_illegal_transition_leaves_order_unchanged(self):
        with self.assertRaises(InvalidTransition):
            OrderService.update_status(self.restaurant, self.order.id, S.READY)

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, S.PENDING)
        self.assertEqual(self.order.version, 0)
        self.assertEqual(self.order.status_history.count(), 1)

    def test_role_cannot_target_status(self):
        with self.assertRaises(Forbidden):
            OrderService.update_status(self.restaurant, self.order.id, S.DELIVERED)
        with self.assertRaises(Forbidden):
            OrderService.update_status(self.customer, self.order.id, S.CONFIRMED)

    def test_other_restaurant_forbidden(self):
        with self.assertRaises(Forbidden):
            OrderService.update_status(self.other_restaurant, self.order.id, S.CONFIRMED)

    def test_unassigned_rider_forbidden(self):
        order = self.advance(self.order, S.ASSIGNED)
        with self.assertRaises(Forbidden):
            OrderService.update_status(self.second_rider, order.id, S.PICKED_UP)

    def test_assigned_only_through_assignment(self):
        self.advance(self.order, S.READY)
        with self.assertRaises(InvalidTransition):
            OrderService.update_status(self.admin, self.order.id, S.ASSIGNED)

    def test_missing_order(self):
        with self.assertRaises(NotFound):
            OrderService.update_status(self.admin, "8d9f3c1e-0000-4000-8000-000000000000", S.CONFIRMED)
        with self.assertRaises(NotFound):
            OrderService.get_order(self.admin, "not-a-uuid")

    def test_full_lifecycle_history_is_consistent(self):
        order = self.advance(self.order, S.DELIVERED)

        history = list(order.status_history.all())
        self.assertEqual([h.status for h in history], [S.PENDING] + LIFECYCLE)
        self.assertEqual(history[-1].status, order.status)
        timestamps = [h.timestamp for h in history]
        self.assertEqual(timestamps, sorted(timestamps))
        self.assertEqual(order.version, len(LIFECYCLE))

    def test_delivered_is_terminal(self):
        order = self.advance(self.order, S.DELIVERED)
        for target in (S.CONFIRMED, S.ON_THE_WAY, S.CANCELLED):
            with self.assertRaises(InvalidTransition):
                OrderService.update_status(self.admin, order.id, target)
        order.refresh_from_db()
        self.assertEqual(order.status, S.DELIVERED)

    def test_orders_past_assignment_cannot_be_reassigned(self):
        order = self.advance(self.order, S.ON_THE_WAY)
        with self.assertRaises(InvalidTransition):
            OrderService.accept_order(self.second_rider, order.id)

        order = self.advance(order, S.DELIVERED)
        with self.assertRaises(InvalidTransition):
            OrderService.assign_delivery_person(self.admin, order.id, self.second_rider.id)
        with self.assertRaises(InvalidTransition):
            OrderService.accept_order(self.second_rider, order.id)

        order.refresh_from_db()
        self.assertEqual(order.delivery_person, self.rider)
        self.assertEqual(rider_status(self.second_rider), RiderStatus.ONLINE)

    def test_delivery_releases_rider(self):
        order = self.advance(self.order, S.ON_THE_WAY)
        self.assertEqual(rider_status(self.rider), RiderStatus.BUSY)

        order = OrderService.update_status(self.rider, order.id, S.DELIVERED)

        self.assertIsNotNone(order.actual_delivery_time)
        self.assertEqual(rider_status(self.rider), RiderStatus.ONLINE)

    def test_status_change_signal(self):
        received = []

        def handler(sender, order, old_status, new_status, **kwargs):
            received.append((old_status, new_status))

        order_status_changed.connect(handler)
        self.addCleanup(order_status_changed.disconnect, handler)

        OrderService.update_status(self.restaurant, self.order.id, S.CONFIRMED)
        self.assertEqual(received, [(S.PENDING, S.CONFIRMED)])


@override_settings(**PRICING)
class CancellationTests(OrderFixtures, TestCase):
    def setUp(self):
        super().setUp()
        self.order = self.place_order()

    def test_customer_cancels_pending(self):
        order = OrderService.cancel_order(self.customer, self.order.id, "Changed my mind")

        self.assertEqual(order.status, S.CANCELLED)
        self.assertEqual(order.status_reason, "Changed my mind")
        record = OrderCancellation.objects.get(order=order)
        self.assertEqual(record.cancelled_by, "customer")
        self.assertEqual(record.cancelled_by_user, self.customer)
        self.assertEqual(order.status_history.last().status, S.CANCELLED)

    def test_customer_cancels_confirmed(self):
        self.advance(self.order, S.CONFIRMED)
        order = OrderService.cancel_order(self.customer, self.order.id, "Too slow")
        self.assertEqual(order.status, S.CANCELLED)

    def test_customer_window_ends_at_preparing(self):
        self.advance(self.order, S.PREPARING)
        with self.assertRaises(Forbidden):
            OrderService.cancel_order(self.customer, self.order.id, "Too late")

        order = OrderService.cancel_order(self.restaurant, self.order.id, "Out of stock")
        self.assertEqual(order.status, S.CANCELLED)

    def test_ready_order_cannot_be_cancelled(self):
        self.advance(self.order, S.READY)
        with self.assertRaises(InvalidTransition):
            OrderService.cancel_order(self.customer, self.order.id, "Never mind")
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, S.READY)
        self.assertFalse(OrderCancellation.objects.exists())

    def test_other_customer_forbidden(self):
        with self.assertRaises(Forbidden):
            OrderService.cancel_order(self.other_customer, self.order.id)

    def test_rider_cannot_cancel(self):
        with self.assertRaises(Forbidden):
            OrderService.update_status(self.rider, self.order.id, S.CANCELLED)

    def test_update_status_delegates_to_cancel(self):
        order = OrderService.update_status(self.restaurant, self.order.id, S.CANCELLED, reason="Closed")
        self.assertEqual(order.status, S.CANCELLED)
        self.assertEqual(order.cancellation.cancelled_by, "restaurant_owner")

    def test_paid_order_marked_refunded(self):
        Order.objects.filter(pk=self.order.pk).update(payment_status=PaymentStatus.PAID)
        order = OrderService.cancel_order(self.customer, self.order.id)
        self.assertEqual(order.payment_status, PaymentStatus.REFUNDED)

    def test_cancelled_is_terminal(self):
        OrderService.cancel_order(self.customer, self.order.id)
        with self.assertRaises(InvalidTransition):
            OrderService.update_status(self.admin, self.order.id, S.CONFIRMED)


@override_settings(**PRICING)
class AssignmentTests(OrderFixtures, TestCase):
    def setUp(self):
        super().setUp()
        self.order = self.advance(self.place_order(), S.READY)

    def test_admin_assigns_rider(self):
        order = OrderService.assign_delivery_person(self.admin, self.order.id, self.rider.id)

        self.assertEqual(order.status, S.ASSIGNED)
        self.assertEqual(order.delivery_person, self.rider)
        self.assertEqual(rider_status(self.rider), RiderStatus.BUSY)

    def test_only_admin_assigns(self):
        with self.assertRaises(Forbidden):
            OrderService.assign_delivery_person(self.restaurant, self.order.id, self.rider.id)

    def test_order_must_be_ready(self):
        pending = self.place_order()
        with self.assertRaises(InvalidTransition):
            OrderService.assign_delivery_person(self.admin, pending.id, self.rider.id)

    def test_target_must_be_delivery_person(self):
        with self.assertRaises(DomainValidationError):
            OrderService.assign_delivery_person(self.admin, self.order.id, self.customer.id)

    def test_offline_rider_rejected(self):
        RiderProfile.objects.filter(user=self.rider).update(current_status=RiderStatus.OFFLINE)
        with self.assertRaises(BusinessLogicException) as ctx:
            OrderService.assign_delivery_person(self.admin, self.order.id, self.rider.id)
        self.assertEqual(ctx.exception.code, "rider_unavailable")
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, S.READY)
        self.assertIsNone(self.order.delivery_person)

    def test_rider_accepts_ready_order(self):
        order = OrderService.accept_order(self.rider, self.order.id)
        self.assertEqual(order.status, S.ASSIGNED)
        self.assertEqual(order.delivery_person, self.rider)

    def test_second_acceptance_conflicts(self):
        OrderService.accept_order(self.rider, self.order.id)
        with self.assertRaises(Conflict):
            OrderService.accept_order(self.second_rider, self.order.id)

    def test_racing_acceptance_rolls_back_loser(self):
        stale = Order.objects.get(pk=self.order.pk)
        OrderService.accept_order(self.rider, self.order.id)

        with self.assertRaises(Conflict):
            OrderService._assign(stale, self.second_rider, self.second_rider)

        self.assertEqual(rider_status(self.second_rider), RiderStatus.ONLINE)
        self.order.refresh_from_db()
        self.assertEqual(self.order.delivery_person, self.rider)
        self.assertEqual(self.order.status_history.filter(status=S.ASSIGNED).count(), 1)


@override_settings(**PRICING)
class ConcurrencyTests(OrderFixtures, TestCase):
    def setUp(self):
        super().setUp()
        self.order = self.advance(self.place_order(), S.CONFIRMED)

    def test_stale_expected_status_conflicts(self):
        # Both callers saw "confirmed"; the restaurant writes first
        OrderService.update_status(self.restaurant, self.order.id, S.PREPARING, expected_status=S.CONFIRMED)

        with self.assertRaises(Conflict):
            OrderService.cancel_order(self.customer, self.order.id, "Wait", expected_status=S.CONFIRMED)

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, S.PREPARING)
        self.assertEqual(self.order.status_history.count(), 3)
        self.assertFalse(OrderCancellation.objects.exists())

    def test_outdated_expected_status_is_a_conflict_not_a_bad_transition(self):
        # pending -> preparing is illegal, but the caller simply read an old status
        with self.assertRaises(Conflict):
            OrderService.update_status(self.restaurant, self.order.id, S.PREPARING, expected_status=S.PENDING)
        with self.assertRaises(Conflict):
            OrderService.cancel_order(self.restaurant, self.order.id, "Closed", expected_status=S.PENDING)

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, S.CONFIRMED)
        self.assertEqual(self.order.status_history.count(), 2)

    def test_stale_version_conflicts(self):
        stale = Order.objects.get(pk=self.order.pk)
        OrderService.update_status(self.restaurant, self.order.id, S.PREPARING)

        with self.assertRaises(Conflict):
            OrderService._apply_status(stale, self.admin, S.CANCELLED)

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, S.PREPARING)


@override_settings(**PRICING)
class RatingTests(OrderFixtures, TestCase):
    def setUp(self):
        super().setUp()
        self.order = self.place_order()

    def test_only_delivered_orders(self):
        self.advance(self.order, S.PREPARING)
        with self.assertRaises(BusinessLogicException) as ctx:
            OrderService.rate_order(self.customer, self.order.id, 5, 5, 5)
        self.assertEqual(ctx.exception.message, "Can only rate delivered orders")

    def test_rated_once(self):
        self.advance(self.order, S.DELIVERED)
        rating = OrderService.rate_order(self.customer, self.order.id, 4, 5, 4, "Tasty")
        self.assertEqual(rating.comment, "Tasty")

        with self.assertRaises(BusinessLogicException) as ctx:
            OrderService.rate_order(self.customer, self.order.id, 1, 1, 1)
        self.assertEqual(ctx.exception.message, "Order has already been rated")
        self.assertEqual(OrderRating.objects.get(order=self.order).overall, 4)

    def test_only_owner_rates(self):
        self.advance(self.order, S.DELIVERED)
        with self.assertRaises(Forbidden):
            OrderService.rate_order(self.other_customer, self.order.id, 5, 5, 5)

    def test_scores_in_range(self):
        self.advance(self.order, S.DELIVERED)
        with self.assertRaises(DomainValidationError) as ctx:
            OrderService.rate_order(self.customer, self.order.id, 6, 5, 0)
        self.assertEqual(set(ctx.exception.errors), {"food", "overall"})


@override_settings(**PRICING)
class QueryTests(OrderFixtures, TestCase):
    def setUp(self):
        super().setUp()
        self.mine = self.place_order()
        self.theirs = self.place_order(customer=self.other_customer)
        Meal.objects.create(restaurant=self.other_restaurant, name="Nigiri", price=Decimal("9.00"))
        self.elsewhere = self.place_order(
            restaurant_id=self.other_restaurant.id,
            items=[{"meal_id": Meal.objects.get(name="Nigiri").id, "quantity": 1}],
        )

    def ids(self, page):
        return {o.id for o in page["orders"]}

    def test_customer_sees_own_orders(self):
        page = selectors.list_orders(self.customer, {})
        self.assertEqual(self.ids(page), {self.mine.id, self.elsewhere.id})

    def test_restaurant_sees_its_orders(self):
        page = selectors.list_orders(self.restaurant, {})
        self.assertEqual(self.ids(page), {self.mine.id, self.theirs.id})
        self.assertEqual(self.ids(selectors.restaurant_orders(self.restaurant, {})), self.ids(page))

    def test_rider_sees_assigned_orders(self):
        self.assertEqual(selectors.list_orders(self.rider, {})["total_count"], 0)
        self.advance(self.mine, S.ASSIGNED)
        self.assertEqual(self.ids(selectors.list_orders(self.rider, {})), {self.mine.id})

    def test_admin_sees_everything(self):
        self.assertEqual(selectors.list_orders(self.admin, {})["total_count"], 3)

    def test_newest_first_and_pagination(self):
        page = selectors.list_orders(self.admin, {"page": "1", "limit": "2"})
        self.assertEqual(page["total_count"], 3)
        self.assertEqual(page["total_pages"], 2)
        self.assertEqual(page["current_page"], 1)
        self.assertEqual([o.id for o in page["orders"]], [self.elsewhere.id, self.theirs.id])

    def test_status_filter(self):
        self.advance(self.mine, S.CONFIRMED)
        page = selectors.list_orders(self.admin, {"status": "confirmed"})
        self.assertEqual(self.ids(page), {self.mine.id})

    def test_bad_filter_and_page(self):
        with self.assertRaises(DomainValidationError):
            selectors.list_orders(self.admin, {"status": "teleported"})
        with self.assertRaises(DomainValidationError):
            selectors.list_orders(self.admin, {"page": "0"})

    def test_restaurant_listing_only_for_restaurants(self):
        with self.assertRaises(Forbidden):
            selectors.restaurant_orders(self.customer, {})

    def test_available_orders_oldest_first(self):
        first = self.advance(self.mine, S.READY)
        second = self.advance(self.theirs, S.READY)
        page = selectors.available_orders(self.rider, {})
        self.assertEqual([o.id for o in page["orders"]], [first.id, second.id])

        OrderService.accept_order(self.rider, first.id)
        page = selectors.available_orders(self.second_rider, {})
        self.assertEqual([o.id for o in page["orders"]], [second.id])

    def test_get_order_visibility(self):
        self.assertEqual(OrderService.get_order(self.restaurant, self.mine.id), self.mine)
        with self.assertRaises(Forbidden):
            OrderService.get_order(self.other_customer, self.mine.id)
        with self.assertRaises(Forbidden):
            OrderService.get_order(self.other_restaurant, self.mine.id)

    def test_reads_do_not_mutate(self):
        before = Order.objects.get(pk=self.mine.pk)
        first = OrderService.get_order(self.customer, self.mine.id)
        second = OrderService.get_order(self.customer, self.mine.id)
        OrderService.track_order(self.customer, self.mine.id)

        after = Order.objects.get(pk=self.mine.pk)
        self.assertEqual((first.status, first.version), (second.status, second.version))
        self.assertEqual(before.updated_at, after.updated_at)
        self.assertEqual(before.version, after.version)

    def test_tracking(self):
        data = OrderService.track_order(self.customer, self.mine.id)
        self.assertEqual(data["status"], S.PENDING)
        self.assertEqual(data["restaurant"], {"id": str(self.restaurant.id), "name": "Pasta Place"})
        self.assertIsNone(data["delivery_person"])

        self.advance(self.mine, S.ASSIGNED)
        data = OrderService.track_order(self.customer, self.mine.id)
        self.assertEqual(data["delivery_person"]["phone"], "+15550001")

    def test_tracking_visibility(self):
        self.assertEqual(OrderService.track_order(self.admin, self.mine.id)["order_id"], str(self.mine.id))
        with self.assertRaises(Forbidden):
            OrderService.track_order(self.restaurant, self.mine.id)
        with self.assertRaises(Forbidden):
            OrderService.track_order(self.other_customer, self.mine.id)


@override_settings(**PRICING)
class StatsTests(OrderFixtures, TestCase):
    def test_empty_period_is_zeroed(self):
        summary = selectors.OrderStatsService.summarize(self.admin, "day")
        self.assertEqual(summary["period"], "day")
        self.assertEqual(summary["total_orders"], 0)
        self.assertEqual(summary["total_revenue"], Decimal("0.00"))
        self.assertEqual(summary["avg_order_value"], Decimal("0.00"))

    def test_revenue_counts_delivered_orders(self):
        delivered = self.advance(self.place_order(), S.DELIVERED)
        OrderService.cancel_order(self.customer, self.place_order().id)
        self.place_order()

        summary = selectors.OrderStatsService.summarize(self.admin)
        self.assertEqual(summary["period"], "month")
        self.assertEqual(summary["total_orders"], 3)
        self.assertEqual(summary["completed_orders"], 1)
        self.assertEqual(summary["cancelled_orders"], 1)
        self.assertEqual(summary["total_revenue"], delivered.total_amount)
        self.assertEqual(summary["avg_order_value"], delivered.total_amount)

    def test_scoped_by_role(self):
        self.place_order()
        self.assertEqual(selectors.OrderStatsService.summarize(self.restaurant)["total_orders"], 1)
        self.assertEqual(selectors.OrderStatsService.summarize(self.other_restaurant)["total_orders"], 0)
        self.assertEqual(selectors.OrderStatsService.summarize(self.rider)["total_orders"], 0)

    def test_customers_have_no_stats(self):
        with self.assertRaises(Forbidden):
            selectors.OrderStatsService.summarize(self.customer)

    def test_unknown_period(self):
        with self.assertRaises(DomainValidationError):
            selectors.OrderStatsService.summarize(self.admin, "decade")


@override_settings(**PRICING)
class EarningsTests(OrderFixtures, TestCase):
    def test_delivery_fees_of_delivered_orders(self):
        self.advance(self.place_order(), S.DELIVERED)
        self.advance(self.place_order(), S.DELIVERED)
        self.advance(self.place_order(), S.ON_THE_WAY)

        summary = selectors.OrderStatsService.earnings(self.rider, "week")
        self.assertEqual(summary["period"], "week")
        self.assertEqual(summary["delivery_count"], 2)
        self.assertEqual(summary["total_earnings"], Decimal("10.00"))
        self.assertEqual(summary["avg_earnings_per_delivery"], Decimal("5.00"))
        self.assertEqual(len(summary["breakdown"]), 1)
        self.assertEqual(summary["breakdown"][0]["deliveries"], 2)
        self.assertEqual(summary["breakdown"][0]["earnings"], Decimal("10.00"))

    def test_other_riders_earn_nothing(self):
        self.advance(self.place_order(), S.DELIVERED)
        summary = selectors.OrderStatsService.earnings(self.second_rider)
        self.assertEqual(summary["period"], "month")
        self.assertEqual(summary["delivery_count"], 0)
        self.assertEqual(summary["total_earnings"], Decimal("0.00"))
        self.assertEqual(summary["avg_earnings_per_delivery"], Decimal("0.00"))
        self.assertEqual(summary["breakdown"], [])

    def test_day_and_year_have_no_breakdown(self):
        self.advance(self.place_order(), S.DELIVERED)
        for period in ("day", "year"):
            summary = selectors.OrderStatsService.earnings(self.rider, period)
            self.assertEqual(summary["delivery_count"], 1)
            self.assertEqual(summary["breakdown"], [])

    def test_only_riders_have_earnings(self):
        for actor in (self.customer, self.restaurant, self.admin):
            with self.assertRaises(Forbidden):
                selectors.OrderStatsService.earnings(actor)
        with self.assertRaises(DomainValidationError):
            selectors.OrderStatsService.earnings(self.rider, "decade")


class OrderNumberFormatTests(SimpleTestCase):
    def test_format(self):
        from apps.utils.utils import generate_order_number
        self.assertTrue(re.match(r"^ORD-\d{6}-[0-9A-F]{10}$", generate_order_number()))
