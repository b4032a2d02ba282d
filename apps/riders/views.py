from rest_framework import viewsets
from rest_framework.response import Response
from rest_framework.decorators import action

from apps.accounts.permissions import IsDeliveryPerson
from .serializers import RiderProfileSerializer, UpdateStatusSerializer
from .services import RiderService


class RiderProfileViewSet(viewsets.ViewSet):
    """
    Rider manages their own profile.
    """
    permission_classes = [IsDeliveryPerson]

    def list(self, request):
        profile = RiderService.get_profile(request.user)
        return Response(RiderProfileSerializer(profile).data)

    @action(detail=False, methods=['post'])
    def status(self, request):
        """
        Toggle ONLINE/OFFLINE
        """
        serializer = UpdateStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        profile = RiderService.toggle_status(request.user, serializer.validated_data['status'])
        return Response(RiderProfileSerializer(profile).data)
