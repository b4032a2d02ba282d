from django.db import models
from django.conf import settings
from django.utils.translation import gettext_lazy as _
from apps.utils.models import TimestampedModel


class RiderStatus(models.TextChoices):
    OFFLINE = "OFFLINE", _("Offline")
    ONLINE = "ONLINE", _("Online")
    BUSY = "BUSY", _("Busy (On Order)")


class RiderProfile(TimestampedModel):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='rider_profile'
    )
    is_approved = models.BooleanField(default=False)

    # Operational state; BUSY is only set and cleared by order assignment
    current_status = models.CharField(
        max_length=20,
        choices=RiderStatus.choices,
        default=RiderStatus.OFFLINE,
        db_index=True
    )

    class Meta:
        verbose_name = "Rider Profile"
        verbose_name_plural = "Rider Profiles"
        indexes = [
            models.Index(fields=['current_status', 'is_approved'], name='riders_status_approved_idx'),
        ]

    def __str__(self):
        return f"{self.user.email} [{self.current_status}]"
