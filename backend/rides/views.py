from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from services import catalog
from .serializers import RideSerializer, RideSearchSerializer


# ==================== Ride Catalog APIs ====================

@api_view(['GET'])
@permission_classes([IsAuthenticated])
def search_rides(request):
    """
    Search open rides.

    Query params (all optional): origin, destination, departure_after,
    departure_before, min_price, max_price, min_seats (default 1).
    Results are ordered by departure time.
    """
    params = RideSearchSerializer(data=request.query_params)
    params.is_valid(raise_exception=True)

    rides = catalog.search(params.to_filter())
    serializer = RideSerializer(rides, many=True)
    return Response({
        'count': len(rides),
        'rides': serializer.data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def ride_detail(request, ride_id):
    """Get a single ride"""
    ride = catalog.get_ride(ride_id)
    return Response(RideSerializer(ride).data)
