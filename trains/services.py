"""
Train inventory operations.

Seat counters are never written from a value read earlier in the request;
every change to ``available_seats`` is a conditional UPDATE so the
``0 <= available_seats <= total_seats`` invariant holds under concurrency.
"""
import logging

from django.db import transaction
from django.db.models import F

from bookings.models import Booking
from core.exceptions import InvalidCapacity, InvalidState, NotFound
from .models import Train

logger = logging.getLogger(__name__)

SEAT_FIELDS = ('total_seats', 'available_seats')


def get_train(train_id, for_update=False):
    queryset = Train.objects.select_for_update() if for_update else Train.objects.all()
    try:
        return queryset.get(pk=train_id)
    except Train.DoesNotExist:
        raise NotFound(f"Train {train_id} not found.")


def create_train(**fields):
    fields.pop('available_seats', None)
    train = Train.objects.create(available_seats=fields['total_seats'], **fields)
    logger.info("Created train %s (%s seats)", train.pk, train.total_seats)
    return train


def update_train(train_id, **fields):
    """
    Apply a partial update to a train.

    Changing ``total_seats`` shifts ``available_seats`` by the same amount so
    the number of booked seats is unchanged. Shrinking capacity below the
    booked count raises ``InvalidCapacity``.
    """
    new_total = fields.pop('total_seats', None)
    fields.pop('available_seats', None)

    with transaction.atomic():
        train = get_train(train_id, for_update=True)

        if new_total is not None and new_total != train.total_seats:
            delta = new_total - train.total_seats
            updated = Train.objects.filter(
                pk=train.pk,
                total_seats=train.total_seats,
                available_seats__gte=-delta,
            ).update(
                total_seats=new_total,
                available_seats=F('available_seats') + delta,
            )
            if not updated:
                raise InvalidCapacity(
                    f"{train.booked_seats} seats are already booked on this train; "
                    f"total seats cannot be reduced to {new_total}."
                )
            logger.info("Train %s capacity changed %s -> %s", train.pk, train.total_seats, new_total)

        if fields:
            for name, value in fields.items():
                setattr(train, name, value)
            train.save(update_fields=list(fields))

    train.refresh_from_db()
    return train


def delete_train(train_id):
    with transaction.atomic():
        train = get_train(train_id, for_update=True)
        if train.bookings.filter(status=Booking.STATUS_CONFIRMED).exists():
            raise InvalidState("Train has confirmed bookings; cancel them before deleting it.")
        train.delete()
    logger.info("Deleted train %s", train_id)


def search_trains(origin=None, destination=None, travel_date=None):
    """Filter trains by route and departure date; every filter is optional."""
    queryset = Train.objects.all()
    if origin:
        queryset = queryset.filter(origin__iexact=origin.strip())
    if destination:
        queryset = queryset.filter(destination__iexact=destination.strip())
    if travel_date:
        queryset = queryset.filter(departure_time__date=travel_date)
    return queryset.order_by('departure_time', 'id')
