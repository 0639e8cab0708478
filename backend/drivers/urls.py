from django.urls import path
from .views import (
    DriverRidesView,
    DriverRideRequestsView,
    DriverDepartRideView,
    DriverCancelRideView,
    DriverCompleteRideView,
    DriverAcceptRequestView,
    DriverDeclineRequestView,
)

app_name = "drivers"

urlpatterns = [
    path("rides/", DriverRidesView.as_view(), name="driver-rides"),
    path("rides/<int:ride_id>/requests/", DriverRideRequestsView.as_view(), name="driver-ride-requests"),
    path("rides/<int:ride_id>/depart/", DriverDepartRideView.as_view(), name="driver-depart-ride"),
    path("rides/<int:ride_id>/cancel/", DriverCancelRideView.as_view(), name="driver-cancel-ride"),
    path("rides/<int:ride_id>/complete/", DriverCompleteRideView.as_view(), name="driver-complete-ride"),
    path("requests/<int:request_id>/accept/", DriverAcceptRequestView.as_view(), name="driver-accept-request"),
    path("requests/<int:request_id>/decline/", DriverDeclineRequestView.as_view(), name="driver-decline-request"),
]
