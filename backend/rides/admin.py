"""Tells what to show in the Django admin interface for rides app"""

from django.contrib import admin
from .models import Ride, RideRequest


@admin.register(Ride)
class RideAdmin(admin.ModelAdmin):
    """Ride admin"""
    list_display = ['id', 'driver', 'origin', 'destination', 'departure_at',
                    'available_seats', 'total_seats', 'price_per_seat', 'status']
    list_filter = ['status', 'departure_at']
    search_fields = ['driver__username', 'origin', 'destination']
    # Seats change only through the request ledger
    readonly_fields = ['available_seats', 'created_at', 'departed_at', 'cancelled_at']
    date_hierarchy = 'departure_at'


@admin.register(RideRequest)
class RideRequestAdmin(admin.ModelAdmin):
    list_display = ("id", "ride", "passenger", "seats_requested", "status", "created_at", "decided_at")
    list_filter = ("status",)
    search_fields = ("ride__id", "passenger__username")
    readonly_fields = ("status", "decline_reason", "created_at", "decided_at")
