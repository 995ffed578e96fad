"""
Serializers for train inventory.
"""
from decimal import Decimal

from rest_framework import serializers

from .models import Train
from . import services


class TrainSerializer(serializers.ModelSerializer):
    """Serializer for Train model."""
    booked_seats = serializers.IntegerField(read_only=True)

    class Meta:
        model = Train
        fields = [
            'id', 'name', 'origin', 'destination', 'departure_time', 'arrival_time',
            'total_seats', 'available_seats', 'booked_seats', 'price', 'created_at'
        ]
        read_only_fields = fields


class TrainWriteSerializer(serializers.Serializer):
    """
    Validates train create/update bodies.

    Accepts the short names used by the admin dashboard (``from``, ``to``,
    ``seats``) as aliases of the model field names.
    """
    ALIASES = {'from': 'origin', 'to': 'destination', 'seats': 'total_seats'}

    name = serializers.CharField(max_length=255)
    origin = serializers.CharField(max_length=100)
    destination = serializers.CharField(max_length=100)
    departure_time = serializers.DateTimeField()
    arrival_time = serializers.DateTimeField(required=False, allow_null=True)
    total_seats = serializers.IntegerField(min_value=1)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.01'))

    def to_internal_value(self, data):
        if hasattr(data, 'items'):
            normalized = {key: value for key, value in data.items() if key not in self.ALIASES}
            for alias, field in self.ALIASES.items():
                if alias in data and field not in normalized:
                    normalized[field] = data[alias]
            data = normalized
        return super().to_internal_value(data)

    def validate(self, attrs):
        """Normalize station names and check the journey makes sense."""
        for field in ('origin', 'destination'):
            if field in attrs:
                attrs[field] = attrs[field].strip().title()

        origin = attrs.get('origin', getattr(self.instance, 'origin', None))
        destination = attrs.get('destination', getattr(self.instance, 'destination', None))
        if origin and destination and origin.lower() == destination.lower():
            raise serializers.ValidationError({
                'destination': "Origin and destination cannot be the same."
            })

        departure = attrs.get('departure_time', getattr(self.instance, 'departure_time', None))
        arrival = attrs.get('arrival_time', getattr(self.instance, 'arrival_time', None))
        if departure and arrival and arrival <= departure:
            raise serializers.ValidationError({
                'arrival_time': "Arrival must be after departure."
            })
        return attrs

    def create(self, validated_data):
        return services.create_train(**validated_data)

    def update(self, instance, validated_data):
        return services.update_train(instance.pk, **validated_data)
