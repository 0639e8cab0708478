from rest_framework import serializers

from accounts.serializers import UserBasicSerializer
from .models import Conversation, Message


class MessageSerializer(serializers.ModelSerializer):
    class Meta:
        model = Message
        fields = ['id', 'conversation', 'sender', 'sequence', 'text', 'attachments',
                  'status', 'created_at', 'delivered_at', 'read_at']
        read_only_fields = fields


class ConversationSerializer(serializers.ModelSerializer):
    """
    Conversation as seen by one participant (``context['user_id']``).

    ``last_message`` and ``unread_count`` are only present on conversations
    loaded through the chat list.
    """
    other_participant = serializers.SerializerMethodField()
    last_message = serializers.SerializerMethodField()
    unread_count = serializers.SerializerMethodField()

    class Meta:
        model = Conversation
        fields = ['id', 'other_participant', 'ride', 'last_sequence', 'created_at',
                  'last_message_at', 'last_message', 'unread_count']
        read_only_fields = fields

    def get_other_participant(self, obj):
        user_id = self.context.get('user_id')
        other = obj.user_high if user_id == obj.user_low_id else obj.user_low
        return UserBasicSerializer(other).data

    def get_last_message(self, obj):
        message = getattr(obj, 'last_message', None)
        return MessageSerializer(message).data if message else None

    def get_unread_count(self, obj):
        return getattr(obj, 'unread_count', None)


class OpenConversationSerializer(serializers.Serializer):
    user_id = serializers.IntegerField()
    ride_id = serializers.IntegerField(required=False, allow_null=True)


class AttachmentSerializer(serializers.Serializer):
    url = serializers.URLField()
    name = serializers.CharField(required=False, allow_blank=True)


class SendMessageSerializer(serializers.Serializer):
    text = serializers.CharField(required=False, allow_blank=True, default="")
    attachments = AttachmentSerializer(many=True, required=False, default=list)
