from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import RiderProfileViewSet

router = DefaultRouter()
router.register(r'profile', RiderProfileViewSet, basename='rider-profile')

urlpatterns = [
    path('', include(router.urls)),
]
