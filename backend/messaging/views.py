from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from services import catalog, messaging
from .serializers import (
    ConversationSerializer,
    MessageSerializer,
    OpenConversationSerializer,
    SendMessageSerializer,
)


# ==================== Conversations ====================

class ConversationListView(APIView):
    """
    GET: The user's conversations, most recently active first
    POST: Open (or fetch) the conversation with another user
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        conversations = messaging.conversations_for_user(request.user.id)
        serializer = ConversationSerializer(
            conversations, many=True, context={'user_id': request.user.id}
        )
        return Response({
            'count': len(conversations),
            'conversations': serializer.data,
        })

    def post(self, request):
        serializer = OpenConversationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        ride = None
        ride_id = serializer.validated_data.get('ride_id')
        if ride_id:
            ride = catalog.get_ride(ride_id)

        conversation = messaging.open_conversation(
            request.user.id, serializer.validated_data['user_id'], ride=ride
        )
        return Response(
            ConversationSerializer(conversation, context={'user_id': request.user.id}).data,
            status=status.HTTP_201_CREATED,
        )


class ConversationDetailView(APIView):
    """
    GET: Messages of a conversation in order. Marks received messages read.

    Query params:
        after: only messages with a higher sequence number (default 0)
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, conversation_id: int):
        try:
            after = int(request.query_params.get('after', 0))
        except (TypeError, ValueError):
            after = 0

        conversation = messaging.get_conversation(conversation_id, request.user.id)
        messaging.mark_conversation_read(conversation.id, request.user.id)
        messages = messaging.messages(conversation.id, request.user.id, after_sequence=after)

        return Response({
            'conversation': ConversationSerializer(
                conversation, context={'user_id': request.user.id}
            ).data,
            'messages': MessageSerializer(messages, many=True).data,
        })


# ==================== Messages ====================

class SendMessageView(APIView):
    """
    POST: Send a message.

    Body: {"text": "On my way", "attachments": [{"url": "https://...", "name": "map.png"}]}
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, conversation_id: int):
        serializer = SendMessageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        message = messaging.send(
            conversation_id,
            request.user.id,
            text=serializer.validated_data['text'],
            attachments=[dict(a) for a in serializer.validated_data['attachments']],
        )
        return Response(MessageSerializer(message).data, status=status.HTTP_201_CREATED)


class MessageDeliveredView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, message_id: int):
        message = messaging.mark_delivered(message_id, request.user.id)
        return Response(MessageSerializer(message).data)


class MessageReadView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, message_id: int):
        message = messaging.mark_read(message_id, request.user.id)
        return Response(MessageSerializer(message).data)
