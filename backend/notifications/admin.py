from django.contrib import admin
from .models import NotificationPreference


@admin.register(NotificationPreference)
class NotificationPreferenceAdmin(admin.ModelAdmin):
    list_display = ['user', 'category', 'channel', 'enabled', 'updated_at']
    list_filter = ['category', 'channel', 'enabled']
    search_fields = ['user__username']
