from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from apps.utils.exceptions import BusinessLogicException, NotFound
from .models import RiderProfile, RiderStatus
from .services import RiderAssignmentService, RiderService

User = get_user_model()


class RiderServiceTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(email="rider@example.com", password="testpass123", role="delivery")
        self.profile = RiderProfile.objects.create(user=self.user, is_approved=True)

    def test_go_online(self):
        profile = RiderService.toggle_status(self.user, RiderStatus.ONLINE)
        self.assertEqual(profile.current_status, RiderStatus.ONLINE)

    def test_unapproved_rider_cannot_go_online(self):
        self.profile.is_approved = False
        self.profile.save()
        with self.assertRaises(BusinessLogicException) as ctx:
            RiderService.toggle_status(self.user, RiderStatus.ONLINE)
        self.assertEqual(ctx.exception.code, "rider_not_approved")

    def test_busy_rider_cannot_toggle(self):
        RiderProfile.objects.filter(pk=self.profile.pk).update(current_status=RiderStatus.BUSY)
        with self.assertRaises(BusinessLogicException) as ctx:
            RiderService.toggle_status(User.objects.get(pk=self.user.pk), RiderStatus.OFFLINE)
        self.assertEqual(ctx.exception.code, "rider_busy")

    def test_busy_is_not_selectable(self):
        with self.assertRaises(BusinessLogicException):
            RiderService.toggle_status(self.user, RiderStatus.BUSY)

    def test_missing_profile(self):
        stranger = User.objects.create_user(email="new@example.com", role="delivery")
        with self.assertRaises(NotFound):
            RiderService.get_profile(stranger)

    def test_reserve_and_release(self):
        RiderService.toggle_status(self.user, RiderStatus.ONLINE)

        RiderAssignmentService.reserve(self.user)
        self.profile.refresh_from_db()
        self.assertEqual(self.profile.current_status, RiderStatus.BUSY)

        with self.assertRaises(BusinessLogicException) as ctx:
            RiderAssignmentService.reserve(self.user)
        self.assertEqual(ctx.exception.code, "rider_unavailable")

        self.assertEqual(RiderAssignmentService.release(self.user), 1)
        self.profile.refresh_from_db()
        self.assertEqual(self.profile.current_status, RiderStatus.ONLINE)

    def test_offline_rider_cannot_be_reserved(self):
        with self.assertRaises(BusinessLogicException):
            RiderAssignmentService.reserve(self.user)


class RiderProfileAPITests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(email="rider@example.com", password="testpass123", role="delivery")
        RiderProfile.objects.create(user=self.user, is_approved=True)

    def test_profile_and_status(self):
        self.client.force_authenticate(self.user)

        resp = self.client.get(reverse("rider-profile-list"))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["current_status"], RiderStatus.OFFLINE)

        resp = self.client.post(reverse("rider-profile-status"), {"status": "ONLINE"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["current_status"], RiderStatus.ONLINE)

    def test_rejects_busy_from_client(self):
        self.client.force_authenticate(self.user)
        resp = self.client.post(reverse("rider-profile-status"), {"status": "BUSY"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_customers_have_no_rider_profile(self):
        customer = User.objects.create_user(email="c@example.com", password="testpass123")
        self.client.force_authenticate(customer)
        resp = self.client.get(reverse("rider-profile-list"))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
