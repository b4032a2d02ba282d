# apps/utils/views.py
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
from django.conf import settings


class ServerInfoView(APIView):
    permission_classes = [AllowAny]

    def get(self, request):
        return Response({
            "app_name": settings.PROJECT_NAME,
            "version": "1.0.0",
            "debug": settings.DEBUG,
        })


class GlobalConfigView(APIView):
    """
    Pricing knobs the dashboards show before checkout.
    """
    permission_classes = [AllowAny]

    def get(self, request):
        return Response({
            "base_delivery_fee": str(settings.BASE_DELIVERY_FEE),
            "service_fee_rate": str(settings.SERVICE_FEE_RATE),
            "tax_rate": str(settings.TAX_RATE),
        })
