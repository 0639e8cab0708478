"""
Realtime app for WebSocket delivery of user notifications.

This app provides:
- A per-user notification consumer (group ``user_<id>``)
- Message delivery/read acknowledgements over the same socket
- JWT/Cookie authentication middleware for WebSocket connections

Key Components:
    - consumers/: WebSocket consumers
    - middleware.py: WebSocket authentication
    - routing.py: WebSocket URL patterns

Usage:
    from realtime.consumers import NotificationConsumer
"""
