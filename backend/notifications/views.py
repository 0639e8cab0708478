from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from services import notifications


class NotificationPreferencesView(APIView):
    """
    GET: Full preference matrix, e.g. {"messages": {"in_app": true, "email": false, "push": true}, ...}
    PUT: Partial matrix with the switches to change
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response({'preferences': notifications.get_preferences(request.user)})

    def put(self, request):
        preferences = notifications.update_preferences(request.user, request.data)
        return Response({
            'message': 'Preferences updated',
            'preferences': preferences,
        })
