"""Booking ledger models."""
from django.conf import settings
from django.db import models
from django.db.models import Q
from django.core.validators import MinValueValidator, MaxValueValidator
from decimal import Decimal

from trains.models import Train

MAX_SEATS_PER_BOOKING = 10


class Booking(models.Model):
    STATUS_PENDING = 'pending'
    STATUS_CONFIRMED = 'confirmed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_CONFIRMED, 'Confirmed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='bookings')
    train = models.ForeignKey(Train, on_delete=models.CASCADE, related_name='bookings')
    seat_count = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(MAX_SEATS_PER_BOOKING)]
    )
    total_price = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0.01'))])
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_CONFIRMED)
    created_at = models.DateTimeField(auto_now_add=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'bookings'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['user', 'created_at'], name='bookings_user_created_idx'),
            models.Index(fields=['train', 'status'], name='bookings_train_status_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(seat_count__gte=1) & Q(seat_count__lte=MAX_SEATS_PER_BOOKING),
                name='bookings_seat_count_range',
            ),
        ]

    def __str__(self):
        return f"Booking #{self.pk} - {self.user} x{self.seat_count} ({self.status})"

    @property
    def is_active(self):
        return self.status == self.STATUS_CONFIRMED
