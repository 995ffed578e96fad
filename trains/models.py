"""
Train inventory models.
"""
from django.db import models
from django.db.models import F, Q
from django.core.validators import MinValueValidator
from decimal import Decimal


class Train(models.Model):
    """
    A scheduled train service with a fixed seat capacity and per-seat price.
    Maps to the 'trains' table.

    ``available_seats`` is the capacity left for new bookings. It only moves
    through conditional updates in the booking workflow and the inventory
    service, and the database enforces ``0 <= available_seats <= total_seats``.
    """
    name = models.CharField(max_length=255)
    origin = models.CharField(max_length=100)
    destination = models.CharField(max_length=100)
    departure_time = models.DateTimeField()
    arrival_time = models.DateTimeField(null=True, blank=True)
    total_seats = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    available_seats = models.PositiveIntegerField()
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'trains'
        ordering = ['departure_time', 'id']
        indexes = [
            models.Index(fields=['origin', 'destination', 'departure_time'], name='trains_route_departure_idx'),
            models.Index(fields=['departure_time'], name='trains_departure_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(available_seats__gte=0) & Q(available_seats__lte=F('total_seats')),
                name='trains_available_within_capacity',
            ),
        ]

    def __str__(self):
        return f"{self.name}: {self.origin} -> {self.destination}"

    @property
    def booked_seats(self):
        return self.total_seats - self.available_seats

    def can_book(self, num_seats):
        """Check if the requested number of seats can be booked."""
        return self.available_seats >= num_seats
