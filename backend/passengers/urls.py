# passengers/urls.py

from django.urls import path

from .views.rides import (
    PassengerCreateRideRequestView,
    PassengerRequestsView,
    PassengerCancelRequestView,
)

app_name = "passengers"

urlpatterns = [
    path("rides/<int:ride_id>/request/", PassengerCreateRideRequestView.as_view(), name="request-ride"),
    path("requests/", PassengerRequestsView.as_view(), name="my-requests"),
    path("requests/<int:request_id>/cancel/", PassengerCancelRequestView.as_view(), name="cancel-request"),
]
