from django.contrib import admin
from .models import HistoryEntry, Rating


class RatingInline(admin.TabularInline):
    model = Rating
    extra = 0
    readonly_fields = ['rater', 'ratee', 'value', 'created_at']


@admin.register(HistoryEntry)
class HistoryEntryAdmin(admin.ModelAdmin):
    list_display = ['id', 'ride', 'passenger', 'driver', 'status', 'created_at']
    list_filter = ['status']
    search_fields = ['passenger__username', 'driver__username']
    inlines = [RatingInline]


@admin.register(Rating)
class RatingAdmin(admin.ModelAdmin):
    list_display = ['id', 'entry', 'rater', 'ratee', 'value', 'created_at']
    list_filter = ['value']
