from decimal import Decimal

from django.test import override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase, APIClient

from apps.orders.models import Order, OrderStatus
from apps.orders.tests import PRICING, OrderFixtures

S = OrderStatus


@override_settings(**PRICING)
class OrderFlowTests(OrderFixtures, APITestCase):
    def setUp(self):
        super().setUp()
        self.client = APIClient()

    def as_user(self, user):
        self.client.force_authenticate(user)
        return self.client

    def payload(self, **overrides):
        data = {
            "restaurant_id": str(self.restaurant.id),
            "items": [{"meal_id": str(self.meal.id), "quantity": 2}],
            "delivery_address": {
                "street": "1 Main St",
                "city": "Springfield",
                "coordinates": {"lat": 40.7, "lng": -74.0},
            },
            "payment_method": "card",
        }
        data.update(overrides)
        return data

    def create(self, **headers):
        resp = self.as_user(self.customer).post(
            reverse("orders-list"), self.payload(), format="json", **headers
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, resp.data)
        return resp.data

    def set_status(self, user, order_id, new_status, **extra):
        return self.as_user(user).patch(
            reverse("orders-update-status", kwargs={"pk": order_id}),
            {"status": new_status, **extra},
            format="json",
        )

    def test_order_happy_path(self):
        order = self.create()
        self.assertEqual(order["status"], "pending")
        self.assertEqual(len(order["status_history"]), 1)
        self.assertEqual(Decimal(order["total_amount"]), Decimal("31.88"))
        self.assertEqual(order["items"][0]["name"], "Carbonara")
        order_id = order["id"]

        for step in ("confirmed", "preparing", "ready"):
            resp = self.set_status(self.restaurant, order_id, step)
            self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.data)

        resp = self.as_user(self.rider).post(reverse("orders-accept", kwargs={"pk": order_id}))
        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.data)
        self.assertEqual(resp.data["delivery_person_id"], str(self.rider.id))

        for step in ("picked_up", "on_the_way", "delivered"):
            resp = self.set_status(self.rider, order_id, step)
            self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.data)

        self.assertEqual(resp.data["status"], "delivered")
        self.assertEqual(len(resp.data["status_history"]), 8)
        self.assertIsNotNone(resp.data["actual_delivery_time"])

        resp = self.as_user(self.customer).post(
            reverse("orders-rate", kwargs={"pk": order_id}),
            {"rating": 5, "review": "Still warm"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, resp.data)
        self.assertEqual(resp.data["food"], 5)
        self.assertEqual(resp.data["comment"], "Still warm")

        resp = self.as_user(self.customer).get(reverse("orders-track", kwargs={"pk": order_id}))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["status"], "delivered")
        self.assertEqual(resp.data["delivery_person"]["name"], "Ravi Rider")

    def test_idempotency_key_replays_original_order(self):
        first = self.create(HTTP_X_IDEMPOTENCY_KEY="checkout-123")
        resp = self.as_user(self.customer).post(
            reverse("orders-list"), self.payload(), format="json", HTTP_X_IDEMPOTENCY_KEY="checkout-123"
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["id"], first["id"])
        self.assertEqual(Order.objects.count(), 1)

    def test_invalid_payload(self):
        resp = self.as_user(self.customer).post(
            reverse("orders-list"), self.payload(items=[]), format="json"
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("items", resp.data)

    def test_unavailable_meal_is_a_domain_error(self):
        self.meal.is_available = False
        self.meal.save()
        resp = self.as_user(self.customer).post(reverse("orders-list"), self.payload(), format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["code"], "meal_unavailable")

    def test_customer_cannot_cancel_ready_order(self):
        order = self.advance(self.place_order(), S.READY)
        resp = self.as_user(self.customer).patch(
            reverse("orders-cancel", kwargs={"pk": order.id}), {"reason": "Hungry elsewhere"}, format="json"
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["code"], "invalid_transition")
        order.refresh_from_db()
        self.assertEqual(order.status, S.READY)

    def test_customer_cancels_pending_order(self):
        order = self.place_order()
        resp = self.as_user(self.customer).patch(
            reverse("orders-cancel", kwargs={"pk": order.id}), {"reason": "Ordered twice"}, format="json"
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["status"], "cancelled")
        self.assertEqual(resp.data["status_reason"], "Ordered twice")

    def test_stale_write_returns_conflict(self):
        order = self.advance(self.place_order(), S.CONFIRMED)
        resp = self.set_status(self.restaurant, order.id, "preparing", expected_status="confirmed")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)

        resp = self.as_user(self.customer).patch(
            reverse("orders-cancel", kwargs={"pk": order.id}),
            {"reason": "Changed plans", "expected_status": "confirmed"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data["code"], "conflict")
        order.refresh_from_db()
        self.assertEqual(order.status, S.PREPARING)

    def test_rating_requires_delivery(self):
        order = self.advance(self.place_order(), S.PREPARING)
        resp = self.as_user(self.customer).post(
            reverse("orders-rate", kwargs={"pk": order.id}), {"rating": 4}, format="json"
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["error"], "Can only rate delivered orders")

    def test_rating_object(self):
        order = self.advance(self.place_order(), S.DELIVERED)
        resp = self.as_user(self.customer).post(
            reverse("orders-rate", kwargs={"pk": order.id}),
            {"rating": {"food": 5, "delivery": 3, "overall": 4}},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual((resp.data["food"], resp.data["delivery"], resp.data["overall"]), (5, 3, 4))

        resp = self.as_user(self.customer).post(
            reverse("orders-rate", kwargs={"pk": order.id}), {"rating": 1}, format="json"
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["error"], "Order has already been rated")

    def test_rating_out_of_range(self):
        order = self.advance(self.place_order(), S.DELIVERED)
        resp = self.as_user(self.customer).post(
            reverse("orders-rate", kwargs={"pk": order.id}), {"rating": 7}, format="json"
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("rating", resp.data)

    def test_forbidden_and_not_found(self):
        order = self.place_order()
        resp = self.as_user(self.other_customer).get(reverse("orders-detail", kwargs={"pk": order.id}))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

        resp = self.as_user(self.customer).get(reverse("orders-detail", kwargs={"pk": "missing"}))
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.data["code"], "order_not_found")

    def test_requires_authentication(self):
        resp = APIClient().get(reverse("orders-list"))
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_role_routed_listing(self):
        self.place_order()
        self.place_order(customer=self.other_customer)

        resp = self.as_user(self.customer).get(reverse("orders-list"))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(
            set(resp.data), {"orders", "total_count", "total_pages", "current_page"}
        )
        self.assertEqual(resp.data["total_count"], 1)

        resp = self.as_user(self.restaurant).get(reverse("orders-restaurant"), {"limit": 1})
        self.assertEqual(resp.data["total_count"], 2)
        self.assertEqual(len(resp.data["orders"]), 1)

        resp = self.as_user(self.customer).get(reverse("orders-restaurant"))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_available_orders_for_riders(self):
        ready = self.advance(self.place_order(), S.READY)
        self.place_order()

        resp = self.as_user(self.rider).get(reverse("orders-available"))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual([o["id"] for o in resp.data["orders"]], [str(ready.id)])

        resp = self.as_user(self.customer).get(reverse("orders-available"))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_assigns_delivery(self):
        order = self.advance(self.place_order(), S.READY)
        resp = self.as_user(self.admin).post(
            reverse("orders-assign", kwargs={"pk": order.id}),
            {"delivery_person_id": str(self.second_rider.id)},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["status"], "assigned")

        resp = self.as_user(self.rider).post(reverse("orders-accept", kwargs={"pk": order.id}))
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)

    def test_stats(self):
        self.advance(self.place_order(), S.DELIVERED)
        resp = self.as_user(self.admin).get(reverse("orders-stats"), {"period": "week"})
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["period"], "week")
        self.assertEqual(resp.data["completed_orders"], 1)
        self.assertEqual(Decimal(resp.data["total_revenue"]), Decimal("31.88"))

        resp = self.as_user(self.admin).get(reverse("orders-stats"), {"period": "fortnight"})
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

        resp = self.as_user(self.customer).get(reverse("orders-stats"))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_rider_earnings(self):
        self.advance(self.place_order(), S.DELIVERED)

        resp = self.as_user(self.rider).get(reverse("orders-earnings"), {"period": "month"})
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["delivery_count"], 1)
        self.assertEqual(Decimal(resp.data["total_earnings"]), Decimal("5.00"))
        self.assertEqual(resp.data["breakdown"][0]["deliveries"], 1)

        resp = self.as_user(self.restaurant).get(reverse("orders-earnings"))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
