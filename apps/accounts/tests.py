from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from apps.accounts.models import Role, User


class UserManagerTests(TestCase):
    def test_create_user_defaults_to_customer(self):
        user = User.objects.create_user(email="Someone@Example.COM", password="testpass123")
        self.assertEqual(user.email, "Someone@example.com")
        self.assertEqual(user.role, Role.CUSTOMER)
        self.assertFalse(user.is_staff)
        self.assertTrue(user.check_password("testpass123"))

    def test_create_user_without_password(self):
        user = User.objects.create_user(email="nopass@example.com")
        self.assertFalse(user.has_usable_password())

    def test_email_required(self):
        with self.assertRaises(ValueError):
            User.objects.create_user(email="")

    def test_superuser_is_admin(self):
        admin = User.objects.create_superuser(email="root@example.com", password="testpass123")
        self.assertEqual(admin.role, Role.ADMIN)
        self.assertTrue(admin.is_staff)
        self.assertTrue(admin.is_verified)

    def test_display_name_falls_back_to_email(self):
        user = User.objects.create_user(email="plain@example.com")
        self.assertEqual(user.display_name, "plain@example.com")
        user.full_name = "Plain Jane"
        self.assertEqual(user.display_name, "Plain Jane")


class AuthAPITests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(
            email="owner@example.com", password="testpass123", role=Role.RESTAURANT_OWNER
        )

    def test_obtain_token_and_fetch_me(self):
        resp = self.client.post(
            reverse("token-obtain"),
            {"email": "owner@example.com", "password": "testpass123"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertIn("access", resp.data)
        self.assertIn("refresh", resp.data)

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {resp.data['access']}")
        resp = self.client.get(reverse("user-me"))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["role"], "restaurant_owner")
        self.assertEqual(resp.data["email"], "owner@example.com")

    def test_wrong_password(self):
        resp = self.client.post(
            reverse("token-obtain"),
            {"email": "owner@example.com", "password": "nope"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_requires_auth(self):
        resp = self.client.get(reverse("user-me"))
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)
