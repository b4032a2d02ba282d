from rest_framework import serializers
from .models import RiderProfile, RiderStatus


class RiderProfileSerializer(serializers.ModelSerializer):
    email = serializers.EmailField(source='user.email', read_only=True)
    phone = serializers.CharField(source='user.phone', read_only=True)
    full_name = serializers.CharField(source='user.full_name', read_only=True)

    class Meta:
        model = RiderProfile
        fields = ['id', 'email', 'phone', 'full_name', 'is_approved', 'current_status']
        read_only_fields = fields


class UpdateStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[RiderStatus.ONLINE, RiderStatus.OFFLINE])
