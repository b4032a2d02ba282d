import logging

from django.db import transaction
from django.utils import timezone

from .models import RiderProfile, RiderStatus
from apps.utils.exceptions import BusinessLogicException, NotFound

logger = logging.getLogger(__name__)


class RiderService:
    """
    Handles rider profile and availability.
    """

    @staticmethod
    def get_profile(user):
        try:
            return user.rider_profile
        except RiderProfile.DoesNotExist:
            raise NotFound("Rider profile does not exist.", code="rider_not_found")

    @staticmethod
    def toggle_status(user, status):
        profile = RiderService.get_profile(user)

        if not profile.is_approved:
            raise BusinessLogicException("Rider account is not yet approved.", code="rider_not_approved")

        if status not in (RiderStatus.ONLINE, RiderStatus.OFFLINE):
            raise BusinessLogicException(f"Invalid status: {status}")

        if profile.current_status == RiderStatus.BUSY:
            raise BusinessLogicException(
                "Finish the current delivery before changing availability.", code="rider_busy"
            )

        profile.current_status = status
        profile.save(update_fields=['current_status', 'updated_at'])
        logger.info(f"Rider {user.id} is now {status}")
        return profile


class RiderAssignmentService:
    """
    Reserves and releases riders for orders.
    Callers run these inside their own transaction.atomic() block.
    """

    @staticmethod
    @transaction.atomic
    def reserve(user):
        """
        ONLINE -> BUSY. Locks the rider row to prevent double assignment.
        """
        try:
            rider = RiderProfile.objects.select_for_update().get(user=user)
        except RiderProfile.DoesNotExist:
            raise BusinessLogicException("Delivery person has no rider profile.", code="rider_not_found")

        if not rider.is_approved:
            raise BusinessLogicException("Rider account is not yet approved.", code="rider_not_approved")
        if rider.current_status != RiderStatus.ONLINE:
            raise BusinessLogicException("Rider is not available.", code="rider_unavailable")

        rider.current_status = RiderStatus.BUSY
        rider.save(update_fields=['current_status', 'updated_at'])
        return rider

    @staticmethod
    @transaction.atomic
    def release(user):
        """
        BUSY -> ONLINE once a delivery is finished. Missing profiles are ignored.
        """
        updated = RiderProfile.objects.filter(
            user=user, current_status=RiderStatus.BUSY
        ).update(current_status=RiderStatus.ONLINE, updated_at=timezone.now())
        if not updated:
            logger.warning(f"Rider {user.id} was not BUSY on release")
        return updated
