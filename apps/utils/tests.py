# apps/utils/tests.py
import json
import logging
from decimal import Decimal

from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.test import APIClient

from apps.accounts.models import User
from .exceptions import (
    Conflict,
    DomainValidationError,
    InvalidTransition,
    NotFound,
    custom_exception_handler,
)
from .logging import JSONFormatter
from .pagination import paginate_queryset
from .utils import generate_order_number, money


class MoneyTests(SimpleTestCase):
    def test_rounds_half_up_to_cents(self):
        self.assertEqual(money("2.345"), Decimal("2.35"))
        self.assertEqual(money(Decimal("0.005")), Decimal("0.01"))
        self.assertEqual(money(5), Decimal("5.00"))

    def test_order_numbers_differ(self):
        self.assertNotEqual(generate_order_number(), generate_order_number())


class ExceptionHandlerTests(SimpleTestCase):
    def test_domain_errors_keep_status_and_code(self):
        cases = [
            (NotFound("Order not found.", code="order_not_found"), 404, "order_not_found"),
            (InvalidTransition("nope"), 400, "invalid_transition"),
            (Conflict("stale"), 409, "conflict"),
        ]
        for exc, expected_status, code in cases:
            resp = custom_exception_handler(exc, {})
            self.assertEqual(resp.status_code, expected_status)
            self.assertEqual(resp.data, {"error": exc.message, "code": code})

    def test_field_errors_included(self):
        exc = DomainValidationError("Invalid rating.", errors={"food": "Must be 1-5"})
        resp = custom_exception_handler(exc, {})
        self.assertEqual(resp.data["errors"], {"food": "Must be 1-5"})

    def test_drf_errors_pass_through(self):
        resp = custom_exception_handler(ValidationError({"items": ["required"]}), {})
        self.assertEqual(resp.status_code, 400)
        self.assertIn("items", resp.data)

    def test_unhandled_errors_become_500(self):
        with self.assertLogs("apps.utils.exceptions", level="ERROR"):
            resp = custom_exception_handler(RuntimeError("boom"), {})
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.data["code"], "server_error")


class JSONFormatterTests(SimpleTestCase):
    def make_record(self, msg, **extra):
        record = logging.LogRecord("apps.orders", logging.INFO, __file__, 1, msg, None, None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_lifts_context_fields(self):
        out = json.loads(JSONFormatter().format(
            self.make_record("Order placed", order_id="abc", user_id="u1")
        ))
        self.assertEqual(out["msg"], "Order placed")
        self.assertEqual(out["order_id"], "abc")
        self.assertEqual(out["user_id"], "u1")
        self.assertEqual(out["lvl"], "INFO")

    def test_scrubs_sensitive_keys(self):
        out = json.loads(JSONFormatter().format(
            self.make_record({"email": "a@b.c", "password": "hunter2", "nested": [{"token": "t"}]})
        ))
        self.assertNotIn("hunter2", out["msg"])
        self.assertNotIn("'t'", out["msg"])
        self.assertIn("***REDACTED***", out["msg"])


@override_settings(ORDER_PAGE_SIZE_MAX=3)
class PaginationTests(TestCase):
    def setUp(self):
        for i in range(5):
            User.objects.create_user(email=f"user{i}@example.com")
        self.qs = User.objects.order_by("email")

    def test_defaults(self):
        page = paginate_queryset(self.qs, key="users")
        self.assertEqual(page["current_page"], 1)
        self.assertEqual(page["total_count"], 5)
        self.assertEqual(len(page["users"]), 3)  # capped
        self.assertEqual(page["total_pages"], 2)

    def test_second_page(self):
        page = paginate_queryset(self.qs, page="2", limit="2")
        self.assertEqual([u.email for u in page["orders"]], ["user2@example.com", "user3@example.com"])
        self.assertEqual(page["total_pages"], 3)

    def test_past_the_end_is_empty(self):
        page = paginate_queryset(self.qs, page=9, limit=2)
        self.assertEqual(page["orders"], [])
        self.assertEqual(page["current_page"], 9)

    def test_empty_queryset(self):
        page = paginate_queryset(User.objects.none())
        self.assertEqual(page["total_pages"], 0)
        self.assertEqual(page["orders"], [])

    def test_rejects_bad_values(self):
        for kwargs in ({"page": "abc"}, {"limit": "0"}, {"page": -1}):
            with self.assertRaises(DomainValidationError):
                paginate_queryset(self.qs, **kwargs)


class PublicEndpointTests(TestCase):
    def setUp(self):
        self.client = APIClient()

    def test_health(self):
        resp = self.client.get(reverse("health-check"))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["components"], {"db": "ok", "cache": "ok"})

    def test_server_info(self):
        resp = self.client.get(reverse("server-info"))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["app_name"], "QuickBite")

    @override_settings(BASE_DELIVERY_FEE=Decimal("5.00"))
    def test_global_config(self):
        resp = self.client.get(reverse("global-config"))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["base_delivery_fee"], "5.00")
