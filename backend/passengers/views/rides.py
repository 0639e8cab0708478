# passengers/views/rides.py

from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from ..permissions import IsPassenger
from rides.serializers import RideRequestCreateSerializer, RideRequestSerializer
from services import ride_management


class PassengerCreateRideRequestView(APIView):
    """
    POST: Passenger requests seats on a ride.

    Body: {"seats": 2, "message": "Two of us, small bags"}
    """
    permission_classes = [IsAuthenticated, IsPassenger]

    def post(self, request, ride_id: int):
        serializer = RideRequestCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        ride_request = ride_management.submit(
            ride_id,
            request.user,
            seats=serializer.validated_data["seats"],
            message=serializer.validated_data["message"],
        )

        return Response(RideRequestSerializer(ride_request).data, status=status.HTTP_201_CREATED)


class PassengerRequestsView(APIView):
    """
    GET: Passenger's own requests, most recent first (optional ?status=).
    """
    permission_classes = [IsAuthenticated, IsPassenger]

    def get(self, request):
        requests = ride_management.requests_for_passenger(
            request.user, status=request.query_params.get("status")
        )
        return Response({
            "count": len(requests),
            "requests": RideRequestSerializer(requests, many=True).data,
        })


class PassengerCancelRequestView(APIView):
    """
    POST: Passenger withdraws a pending request.
    """
    permission_classes = [IsAuthenticated, IsPassenger]

    def post(self, request, request_id: int):
        ride_request = ride_management.cancel_request(request_id, request.user)
        return Response({
            "message": "Request cancelled",
            "request": RideRequestSerializer(ride_request).data,
        })
