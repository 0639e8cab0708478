"""WebSocket URL routing for the realtime app."""

from django.urls import re_path

from .consumers.notification_consumer import NotificationConsumer

websocket_urlpatterns = [
    # Notifications and message acknowledgements (drivers and passengers)
    # URL: ws://localhost:8000/ws/notifications/?token=<access>
    re_path(
        r"ws/notifications/$",
        NotificationConsumer.as_asgi(),
        name="notifications-ws"
    ),
]
