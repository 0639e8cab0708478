from rest_framework import serializers

from accounts.serializers import UserBasicSerializer
from rides.serializers import RideSummarySerializer
from .models import HistoryEntry, Rating


class RatingSerializer(serializers.ModelSerializer):
    class Meta:
        model = Rating
        fields = ['id', 'entry', 'rater', 'ratee', 'value', 'created_at']
        read_only_fields = fields


class HistoryEntrySerializer(serializers.ModelSerializer):
    """
    A trip from the history. ``my_rating`` is the rating the requesting user
    left on it, if any.
    """
    ride = RideSummarySerializer(read_only=True)
    passenger = UserBasicSerializer(read_only=True)
    driver = UserBasicSerializer(read_only=True)
    seats = serializers.IntegerField(source='request.seats_requested', read_only=True)
    my_rating = serializers.SerializerMethodField()

    class Meta:
        model = HistoryEntry
        fields = ['id', 'ride', 'passenger', 'driver', 'seats', 'status',
                  'created_at', 'my_rating']
        read_only_fields = fields

    def get_my_rating(self, obj):
        request = self.context.get('request')
        if request is None:
            return None
        for rating in obj.ratings.all():
            if rating.rater_id == request.user.id:
                return rating.value
        return None


class RateSerializer(serializers.Serializer):
    value = serializers.ChoiceField(choices=Rating.VALUE_CHOICES)
