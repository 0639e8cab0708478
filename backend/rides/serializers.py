from rest_framework import serializers

from accounts.serializers import UserBasicSerializer
from services.catalog import RideFilter
from .models import Ride, RideRequest


class RideSerializer(serializers.ModelSerializer):
    """Serializer for published rides"""
    driver = UserBasicSerializer(read_only=True)

    class Meta:
        model = Ride
        fields = ['id', 'driver', 'origin', 'destination', 'departure_at',
                  'total_seats', 'available_seats', 'price_per_seat',
                  'vehicle_type', 'notes', 'status', 'created_at',
                  'departed_at', 'cancelled_at']
        read_only_fields = fields


class RideCreateSerializer(serializers.Serializer):
    """Serializer for publishing a ride"""
    origin = serializers.CharField(max_length=255)
    destination = serializers.CharField(max_length=255)
    departure_at = serializers.DateTimeField()
    total_seats = serializers.IntegerField(min_value=1)
    # Minor currency units (e.g. cents)
    price_per_seat = serializers.IntegerField(min_value=0, default=0)
    vehicle_type = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class RideSearchSerializer(serializers.Serializer):
    """Validates ride search query parameters"""
    origin = serializers.CharField(required=False, allow_blank=True)
    destination = serializers.CharField(required=False, allow_blank=True)
    departure_after = serializers.DateTimeField(required=False)
    departure_before = serializers.DateTimeField(required=False)
    min_price = serializers.IntegerField(required=False, min_value=0)
    max_price = serializers.IntegerField(required=False, min_value=0)
    min_seats = serializers.IntegerField(required=False, min_value=1, default=1)

    def to_filter(self) -> RideFilter:
        data = self.validated_data
        return RideFilter(
            origin_contains=data.get('origin') or None,
            destination_contains=data.get('destination') or None,
            departure_after=data.get('departure_after'),
            departure_before=data.get('departure_before'),
            min_price=data.get('min_price'),
            max_price=data.get('max_price'),
            min_seats=data.get('min_seats', 1),
        )


class RideSummarySerializer(serializers.ModelSerializer):
    """Ride fields shown alongside a passenger's own requests"""
    driver_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Ride
        fields = ['id', 'driver_id', 'origin', 'destination', 'departure_at',
                  'price_per_seat', 'status']
        read_only_fields = fields


class RideRequestSerializer(serializers.ModelSerializer):
    """Serializer for Ride Requests"""
    passenger = UserBasicSerializer(read_only=True)
    ride = RideSummarySerializer(read_only=True)

    class Meta:
        model = RideRequest
        fields = ['id', 'ride', 'passenger', 'seats_requested', 'message',
                  'status', 'decline_reason', 'created_at', 'decided_at']
        read_only_fields = fields


class RideRequestCreateSerializer(serializers.Serializer):
    """Serializer for requesting seats on a ride"""
    seats = serializers.IntegerField(default=1)
    message = serializers.CharField(required=False, allow_blank=True, default="")
