"""
Serializers for booking management.
"""
from rest_framework import serializers

from .models import Booking, MAX_SEATS_PER_BOOKING


class BookingSerializer(serializers.ModelSerializer):
    """Serializer for viewing bookings."""
    username = serializers.CharField(source='user.username', read_only=True)
    train_details = serializers.SerializerMethodField()

    class Meta:
        model = Booking
        fields = [
            'id', 'user', 'username', 'train', 'seat_count', 'total_price',
            'status', 'created_at', 'cancelled_at', 'train_details'
        ]
        read_only_fields = fields

    def get_train_details(self, obj):
        """Get train details."""
        train = obj.train
        return {
            'name': train.name,
            'origin': train.origin,
            'destination': train.destination,
            'departure_time': train.departure_time.isoformat(),
            'price': str(train.price),
        }


class BookingCreateSerializer(serializers.Serializer):
    """Validates a booking request before it reaches the reservation workflow."""
    train_id = serializers.IntegerField(min_value=1)
    seat_count = serializers.IntegerField(min_value=1, max_value=MAX_SEATS_PER_BOOKING)


class BookingStatusSerializer(serializers.Serializer):
    """Requested status transition for an existing booking."""
    status = serializers.ChoiceField(choices=[choice for choice, _ in Booking.STATUS_CHOICES])
