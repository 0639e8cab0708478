from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from history.serializers import HistoryEntrySerializer
from rides.serializers import (
    RideCreateSerializer,
    RideRequestSerializer,
    RideSerializer,
)
from services import catalog, history, ride_management
from services.exceptions import NotParticipantError

from .permissions import IsDriver


# ==================== Ride Publishing ====================

class DriverRidesView(APIView):
    """
    GET: Rides published by the driver (optional ?status=)
    POST: Publish a new ride
    """
    permission_classes = [IsAuthenticated, IsDriver]

    def get(self, request):
        rides = catalog.rides_for_driver(request.user, status=request.query_params.get("status"))
        return Response({
            "count": len(rides),
            "rides": RideSerializer(rides, many=True).data,
        })

    def post(self, request):
        serializer = RideCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        ride = catalog.publish(driver=request.user, **serializer.validated_data)
        return Response(RideSerializer(ride).data, status=status.HTTP_201_CREATED)


class DriverRideRequestsView(APIView):
    """
    GET: Requests on one of the driver's rides, oldest first (optional ?status=)
    """
    permission_classes = [IsAuthenticated, IsDriver]

    def get(self, request, ride_id: int):
        ride = catalog.get_ride(ride_id)
        if ride.driver_id != request.user.id:
            raise NotParticipantError("Only the ride's driver can view its requests")

        requests = ride_management.requests_for_ride(ride.id, status=request.query_params.get("status"))
        return Response({
            "ride_id": ride.id,
            "available_seats": ride.available_seats,
            "requests": RideRequestSerializer(requests, many=True).data,
        })


# ==================== Ride Lifecycle ====================

class DriverDepartRideView(APIView):
    """
    POST: Mark the ride as departed. Remaining pending requests are declined.
    """
    permission_classes = [IsAuthenticated, IsDriver]

    def post(self, request, ride_id: int):
        ride = catalog.mark_departed(ride_id, driver=request.user)
        return Response(RideSerializer(ride).data)


class DriverCancelRideView(APIView):
    """
    POST: Cancel the ride. Pending and accepted requests are declined.
    """
    permission_classes = [IsAuthenticated, IsDriver]

    def post(self, request, ride_id: int):
        ride = catalog.cancel(ride_id, driver=request.user)
        ride.refresh_from_db()
        return Response(RideSerializer(ride).data)


class DriverCompleteRideView(APIView):
    """
    POST: Record every accepted passenger of a departed ride as a completed trip.
    """
    permission_classes = [IsAuthenticated, IsDriver]

    def post(self, request, ride_id: int):
        entries = history.complete_ride(ride_id, driver=request.user)
        return Response({
            "ride_id": ride_id,
            "completed": len(entries),
            "entries": HistoryEntrySerializer(entries, many=True, context={"request": request}).data,
        })


# ==================== Request Decisions ====================

class DriverAcceptRequestView(APIView):
    """
    POST: Accept a pending request. Takes seats and opens a conversation.
    """
    permission_classes = [IsAuthenticated, IsDriver]

    def post(self, request, request_id: int):
        ride_request = ride_management.accept(request_id, driver=request.user)
        return Response({
            "message": "Request accepted",
            "request": RideRequestSerializer(ride_request).data,
            "available_seats": ride_request.ride.available_seats,
        })


class DriverDeclineRequestView(APIView):
    """
    POST: Decline a pending request.
    """
    permission_classes = [IsAuthenticated, IsDriver]

    def post(self, request, request_id: int):
        ride_request = ride_management.decline(request_id, driver=request.user)
        return Response({
            "message": "Request declined",
            "request": RideRequestSerializer(ride_request).data,
        })
