from django.contrib import admin
from django.urls import path, include

from .views import health_check

urlpatterns = [
    path('admin/', admin.site.urls),
    path("health/", health_check),  # Health check endpoint

    # Authentication endpoints (register, login, refresh)
    path('api/auth/', include('accounts.urls')),

    # Ride catalog (search, detail)
    path('api/rides/', include('rides.urls')),

    # Driver APIs (publish rides, decide on requests, depart/cancel/complete)
    path('api/driver/', include('drivers.urls')),

    # Passenger APIs (request seats, own requests)
    path('api/passenger/', include('passengers.urls')),

    # Trip history & ratings
    path('api/history/', include('history.urls')),

    # Conversations & messages
    path('api/messages/', include('messaging.urls')),

    # Notification preferences
    path('api/notifications/', include('notifications.urls')),
]
