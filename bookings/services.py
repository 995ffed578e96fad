"""
Reservation workflow: create and cancel bookings against train inventory.

Each operation runs in one transaction and touches the seat counter with a
single conditional UPDATE, so two requests can never oversell a train or
restore the same seats twice. A request that loses a race fails; nothing is
retried here.
"""
import logging

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from core.exceptions import (
    Forbidden,
    InsufficientSeats,
    InvalidState,
    NotFound,
    Unauthenticated,
    ValidationError,
)
from core.permissions import is_admin, is_authenticated
from trains.models import Train
from .models import Booking, MAX_SEATS_PER_BOOKING

logger = logging.getLogger(__name__)


def _check_seat_count(seat_count):
    if isinstance(seat_count, bool) or not isinstance(seat_count, int):
        raise ValidationError({'seat_count': 'A whole number of seats is required.'})
    if not 1 <= seat_count <= MAX_SEATS_PER_BOOKING:
        raise ValidationError({
            'seat_count': f'Between 1 and {MAX_SEATS_PER_BOOKING} seats can be booked at once.'
        })


def create_booking(user, train_id, seat_count):
    """
    Reserve ``seat_count`` seats on a train for ``user``.

    Returns the confirmed booking. Raises ``Unauthenticated``,
    ``ValidationError``, ``NotFound`` or ``InsufficientSeats``.
    """
    if not is_authenticated(user):
        raise Unauthenticated()
    _check_seat_count(seat_count)

    with transaction.atomic():
        reserved = Train.objects.filter(
            pk=train_id,
            available_seats__gte=seat_count,
        ).update(available_seats=F('available_seats') - seat_count)

        if not reserved:
            train = Train.objects.filter(pk=train_id).only('available_seats').first()
            if train is None:
                raise NotFound(f"Train {train_id} not found.")
            logger.info(
                "Booking rejected: user %s asked for %s seats on train %s, %s available",
                user.pk, seat_count, train_id, train.available_seats,
            )
            raise InsufficientSeats(
                f"Only {train.available_seats} seats available; {seat_count} requested."
            )

        train = Train.objects.get(pk=train_id)
        booking = Booking.objects.create(
            user=user,
            train=train,
            seat_count=seat_count,
            total_price=train.price * seat_count,
            status=Booking.STATUS_CONFIRMED,
        )

    logger.info(
        "Booking %s confirmed: user %s, train %s, %s seats, %s left",
        booking.pk, user.pk, train.pk, seat_count, train.available_seats,
    )
    return booking


def cancel_booking(requester, booking_id):
    """
    Cancel a confirmed booking and give its seats back to the train.

    Only the owner or an admin may cancel. Cancelling a booking that is not
    confirmed (including one already cancelled) raises ``InvalidState`` and
    leaves the seat counter untouched.
    """
    if not is_authenticated(requester):
        raise Unauthenticated()

    with transaction.atomic():
        try:
            booking = Booking.objects.select_for_update().get(pk=booking_id)
        except Booking.DoesNotExist:
            raise NotFound(f"Booking {booking_id} not found.")

        if booking.user_id != requester.pk and not is_admin(requester):
            raise Forbidden("You can only cancel your own bookings.")

        now = timezone.now()
        cancelled = Booking.objects.filter(
            pk=booking.pk,
            status=Booking.STATUS_CONFIRMED,
        ).update(status=Booking.STATUS_CANCELLED, cancelled_at=now)
        if not cancelled:
            raise InvalidState(f"Booking {booking.pk} is {booking.status} and cannot be cancelled.")

        restored = Train.objects.filter(
            pk=booking.train_id,
            available_seats__lte=F('total_seats') - booking.seat_count,
        ).update(available_seats=F('available_seats') + booking.seat_count)
        if not restored:
            # Rolls back the status change with the transaction
            raise InvalidState(
                f"Train {booking.train_id} cannot take back {booking.seat_count} seats."
            )

        booking.status = Booking.STATUS_CANCELLED
        booking.cancelled_at = now

    logger.info(
        "Booking %s cancelled by user %s, %s seats returned to train %s",
        booking.pk, requester.pk, booking.seat_count, booking.train_id,
    )
    return booking


def get_booking(requester, booking_id):
    try:
        booking = Booking.objects.select_related('train', 'user').get(pk=booking_id)
    except Booking.DoesNotExist:
        raise NotFound(f"Booking {booking_id} not found.")
    if booking.user_id != requester.pk and not is_admin(requester):
        raise Forbidden("You can only view your own bookings.")
    return booking


def bookings_for(user):
    """A user's own bookings, or every booking for an admin."""
    queryset = Booking.objects.select_related('train', 'user')
    if not is_admin(user):
        queryset = queryset.filter(user=user)
    return queryset.order_by('-created_at', '-id')
