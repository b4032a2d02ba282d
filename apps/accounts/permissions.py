from rest_framework.permissions import BasePermission
from .models import Role


class _HasRole(BasePermission):
    role = None

    def has_permission(self, request, view):
        return bool(
            request.user
            and request.user.is_authenticated
            and request.user.role == self.role
        )


class IsDeliveryPerson(_HasRole):
    role = Role.DELIVERY
