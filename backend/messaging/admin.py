from django.contrib import admin
from .models import Conversation, Message


@admin.register(Conversation)
class ConversationAdmin(admin.ModelAdmin):
    list_display = ['id', 'user_low', 'user_high', 'ride', 'last_sequence', 'last_message_at']
    search_fields = ['user_low__username', 'user_high__username']


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ['id', 'conversation', 'sender', 'sequence', 'status', 'created_at']
    list_filter = ['status']
    readonly_fields = ['sequence', 'created_at', 'delivered_at', 'read_at']
