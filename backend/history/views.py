from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from services import history
from .serializers import HistoryEntrySerializer, RateSerializer, RatingSerializer


class HistoryListView(APIView):
    """
    GET: The user's trips, most recent first.

    Query params:
        role: 'passenger' or 'driver' (optional)
        status: 'completed' or 'cancelled' (optional)
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        entries = history.history(
            request.user,
            role=request.query_params.get('role') or None,
            status=request.query_params.get('status') or None,
        )
        serializer = HistoryEntrySerializer(entries, many=True, context={'request': request})
        return Response({
            'count': len(entries),
            'entries': serializer.data,
        })


class RateTripView(APIView):
    """
    POST: Rate the other participant of a completed trip.

    Body: {"value": "positive"} or {"value": "negative"}
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, entry_id: int):
        serializer = RateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        rating = history.rate(entry_id, request.user, serializer.validated_data['value'])
        return Response(RatingSerializer(rating).data, status=status.HTTP_201_CREATED)


class RatingSummaryView(APIView):
    """GET: Ratings a user has received"""
    permission_classes = [IsAuthenticated]

    def get(self, request, user_id: int):
        return Response(history.rating_summary(user_id))
