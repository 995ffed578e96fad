"""
Tests for bookings app.
Tests cover: Model constraints, Reservation workflow, Booking API, Concurrency scenarios.
"""
import threading
from decimal import Decimal
from datetime import datetime, time, timedelta

from django.test import TestCase, TransactionTestCase
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.db import IntegrityError, connection, transaction
from django.utils import timezone
from rest_framework.test import APITestCase
from rest_framework import status

from core.exceptions import (
    Forbidden,
    InsufficientSeats,
    InvalidState,
    NotFound,
    Unauthenticated,
    ValidationError,
)
from trains.models import Train
from trains import services as train_services
from bookings.models import Booking
from bookings import services

User = get_user_model()


def make_train(total_seats=10, price=Decimal('100.00')):
    departure = timezone.make_aware(
        datetime.combine(timezone.localdate() + timedelta(days=7), time(10, 0))
    )
    return train_services.create_train(
        name='Test Express',
        origin='Delhi',
        destination='Mumbai',
        departure_time=departure,
        total_seats=total_seats,
        price=price,
    )


class SeatInvariantMixin:
    """Checks that a train's seat counter matches its confirmed bookings."""

    def assertSeatsConsistent(self, train):
        train.refresh_from_db()
        confirmed = sum(
            booking.seat_count
            for booking in Booking.objects.filter(train=train, status=Booking.STATUS_CONFIRMED)
        )
        self.assertGreaterEqual(train.available_seats, 0)
        self.assertLessEqual(train.available_seats, train.total_seats)
        self.assertEqual(train.total_seats - train.available_seats, confirmed)


# =============================================================================
# UNIT TESTS - Models
# =============================================================================

class BookingModelTests(TestCase):
    """Test Booking model constraints."""

    def setUp(self):
        self.user = User.objects.create_user(username='rider', password='test123')
        self.train = make_train()

    def test_default_status_is_confirmed(self):
        booking = Booking.objects.create(
            user=self.user, train=self.train, seat_count=2, total_price=Decimal('200.00')
        )
        self.assertEqual(booking.status, Booking.STATUS_CONFIRMED)
        self.assertTrue(booking.is_active)

    def test_seat_count_upper_bound_enforced(self):
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Booking.objects.create(
                    user=self.user, train=self.train, seat_count=11, total_price=Decimal('1100.00')
                )

    def test_seat_count_lower_bound_enforced(self):
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Booking.objects.create(
                    user=self.user, train=self.train, seat_count=0, total_price=Decimal('1.00')
                )

    def test_booking_string_representation(self):
        booking = Booking.objects.create(
            user=self.user, train=self.train, seat_count=1, total_price=Decimal('100.00')
        )
        self.assertIn('rider', str(booking))
        self.assertIn('confirmed', str(booking))


# =============================================================================
# UNIT TESTS - Reservation workflow
# =============================================================================

class CreateBookingTests(SeatInvariantMixin, TestCase):

    def setUp(self):
        self.user = User.objects.create_user(username='rider', password='test123')
        self.train = make_train(total_seats=10, price=Decimal('100.00'))

    def test_book_three_seats(self):
        booking = services.create_booking(self.user, self.train.pk, 3)

        self.train.refresh_from_db()
        self.assertEqual(self.train.available_seats, 7)
        self.assertEqual(booking.total_price, Decimal('300.00'))
        self.assertEqual(booking.status, Booking.STATUS_CONFIRMED)
        self.assertEqual(booking.user, self.user)
        self.assertSeatsConsistent(self.train)

    def test_overbooking_fails_and_leaves_seats(self):
        services.create_booking(self.user, self.train.pk, 3)

        with self.assertRaises(InsufficientSeats):
            services.create_booking(self.user, self.train.pk, 8)

        self.train.refresh_from_db()
        self.assertEqual(self.train.available_seats, 7)
        self.assertEqual(Booking.objects.count(), 1)
        self.assertSeatsConsistent(self.train)

    def test_book_every_remaining_seat(self):
        services.create_booking(self.user, self.train.pk, 10)

        self.train.refresh_from_db()
        self.assertEqual(self.train.available_seats, 0)
        with self.assertRaises(InsufficientSeats):
            services.create_booking(self.user, self.train.pk, 1)

    def test_missing_train(self):
        with self.assertRaises(NotFound):
            services.create_booking(self.user, 99999, 1)

    def test_anonymous_user(self):
        with self.assertRaises(Unauthenticated):
            services.create_booking(AnonymousUser(), self.train.pk, 1)
        self.assertFalse(Booking.objects.exists())

    def test_seat_count_out_of_range(self):
        for seat_count in (0, 11, -1):
            with self.assertRaises(ValidationError):
                services.create_booking(self.user, self.train.pk, seat_count)

    def test_seat_count_must_be_integer(self):
        for seat_count in ('3', 2.5, True):
            with self.assertRaises(ValidationError):
                services.create_booking(self.user, self.train.pk, seat_count)

        self.train.refresh_from_db()
        self.assertEqual(self.train.available_seats, 10)


class CancelBookingTests(SeatInvariantMixin, TestCase):

    def setUp(self):
        self.user = User.objects.create_user(username='rider', password='test123')
        self.other = User.objects.create_user(username='stranger', password='test123')
        self.admin = User.objects.create_user(username='boss', password='test123', is_admin=True)
        self.train = make_train(total_seats=10)
        self.booking = services.create_booking(self.user, self.train.pk, 3)

    def test_cancel_restores_seats(self):
        booking = services.cancel_booking(self.user, self.booking.pk)

        self.train.refresh_from_db()
        self.assertEqual(self.train.available_seats, 10)
        self.assertEqual(booking.status, Booking.STATUS_CANCELLED)
        self.assertIsNotNone(booking.cancelled_at)
        self.assertSeatsConsistent(self.train)

    def test_cancel_twice_does_not_restore_twice(self):
        services.create_booking(self.other, self.train.pk, 2)
        services.cancel_booking(self.user, self.booking.pk)

        with self.assertRaises(InvalidState):
            services.cancel_booking(self.user, self.booking.pk)

        self.train.refresh_from_db()
        self.assertEqual(self.train.available_seats, 8)
        self.assertSeatsConsistent(self.train)

    def test_other_user_cannot_cancel(self):
        with self.assertRaises(Forbidden):
            services.cancel_booking(self.other, self.booking.pk)

        self.booking.refresh_from_db()
        self.train.refresh_from_db()
        self.assertEqual(self.booking.status, Booking.STATUS_CONFIRMED)
        self.assertEqual(self.train.available_seats, 7)

    def test_admin_can_cancel_any_booking(self):
        services.cancel_booking(self.admin, self.booking.pk)

        self.train.refresh_from_db()
        self.assertEqual(self.train.available_seats, 10)

    def test_cancel_missing_booking(self):
        with self.assertRaises(NotFound):
            services.cancel_booking(self.user, 99999)

    def test_cancel_pending_booking_is_invalid(self):
        Booking.objects.filter(pk=self.booking.pk).update(status=Booking.STATUS_PENDING)

        with self.assertRaises(InvalidState):
            services.cancel_booking(self.user, self.booking.pk)

    def test_cancelled_seats_can_be_rebooked(self):
        services.create_booking(self.other, self.train.pk, 7)
        with self.assertRaises(InsufficientSeats):
            services.create_booking(self.other, self.train.pk, 1)

        services.cancel_booking(self.user, self.booking.pk)
        services.create_booking(self.other, self.train.pk, 3)

        self.train.refresh_from_db()
        self.assertEqual(self.train.available_seats, 0)
        self.assertSeatsConsistent(self.train)


class BookingsForTests(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(username='rider', password='test123')
        self.other = User.objects.create_user(username='stranger', password='test123')
        self.admin = User.objects.create_user(username='boss', password='test123', is_admin=True)
        train = make_train()
        self.own = services.create_booking(self.user, train.pk, 1)
        self.foreign = services.create_booking(self.other, train.pk, 2)

    def test_user_sees_only_own(self):
        self.assertEqual(list(services.bookings_for(self.user)), [self.own])

    def test_admin_sees_all(self):
        self.assertEqual(set(services.bookings_for(self.admin)), {self.own, self.foreign})


# =============================================================================
# UNIT TESTS - Serializers
# =============================================================================

class BookingSerializerTests(TestCase):

    def test_seat_count_bounds(self):
        from bookings.serializers import BookingCreateSerializer

        self.assertFalse(BookingCreateSerializer(data={'train_id': 1, 'seat_count': 0}).is_valid())
        self.assertFalse(BookingCreateSerializer(data={'train_id': 1, 'seat_count': 11}).is_valid())
        self.assertTrue(BookingCreateSerializer(data={'train_id': 1, 'seat_count': 10}).is_valid())

    def test_numeric_strings_are_coerced(self):
        from bookings.serializers import BookingCreateSerializer

        serializer = BookingCreateSerializer(data={'train_id': '1', 'seat_count': '4'})

        self.assertTrue(serializer.is_valid())
        self.assertEqual(serializer.validated_data['seat_count'], 4)

    def test_missing_fields(self):
        from bookings.serializers import BookingCreateSerializer

        serializer = BookingCreateSerializer(data={})

        self.assertFalse(serializer.is_valid())
        self.assertIn('train_id', serializer.errors)
        self.assertIn('seat_count', serializer.errors)


# =============================================================================
# INTEGRATION TESTS - Booking API
# =============================================================================

class BookingAPITests(SeatInvariantMixin, APITestCase):
    """Integration tests for booking flow."""

    def setUp(self):
        self.user = User.objects.create_user(username='user', password='UserPass123!')
        self.other = User.objects.create_user(username='other', password='OtherPass123!')
        self.admin = User.objects.create_user(username='admin', password='AdminPass123!', is_admin=True)
        self.train = make_train(total_seats=10, price=Decimal('100.00'))
        self.login('user', 'UserPass123!')

    def login(self, username, password):
        response = self.client.post('/api/login/', {
            'username': username,
            'password': password
        }, format='json')
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['tokens']['access']}")

    def book(self, seat_count, train_id=None):
        return self.client.post('/api/bookings/', {
            'train_id': train_id or self.train.pk,
            'seat_count': seat_count
        }, format='json')

    def test_create_booking_success(self):
        response = self.book(3)

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['seat_count'], 3)
        self.assertEqual(response.data['total_price'], '300.00')
        self.assertEqual(response.data['status'], 'confirmed')
        self.assertEqual(response.data['user'], self.user.pk)
        self.assertEqual(response.data['train_details']['origin'], 'Delhi')

        self.train.refresh_from_db()
        self.assertEqual(self.train.available_seats, 7)

    def test_booking_exceeds_availability(self):
        self.book(3)

        response = self.book(8)

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error'], 'insufficient_seats')
        self.assertIn('7', str(response.data['detail']))
        self.assertSeatsConsistent(self.train)

    def test_booking_invalid_seat_count(self):
        response = self.book(11)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('seat_count', response.data)

    def test_booking_missing_train(self):
        response = self.book(1, train_id=99999)

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'not_found')

    def test_booking_unauthenticated(self):
        self.client.credentials()

        response = self.book(1)

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(Booking.objects.exists())

    def test_list_own_bookings(self):
        self.book(2)
        services.create_booking(self.other, self.train.pk, 1)

        response = self.client.get('/api/bookings/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['username'], 'user')

    def test_admin_lists_all_bookings(self):
        self.book(2)
        services.create_booking(self.other, self.train.pk, 1)
        self.login('admin', 'AdminPass123!')

        response = self.client.get('/api/bookings/')

        self.assertEqual(len(response.data), 2)

    def test_cancel_booking(self):
        booking_id = self.book(3).data['id']

        response = self.client.put(f'/api/bookings/{booking_id}/', {'status': 'cancelled'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'cancelled')
        self.assertIsNotNone(response.data['cancelled_at'])
        self.train.refresh_from_db()
        self.assertEqual(self.train.available_seats, 10)

    def test_cancel_twice_returns_conflict(self):
        booking_id = self.book(3).data['id']
        self.client.put(f'/api/bookings/{booking_id}/', {'status': 'cancelled'}, format='json')

        response = self.client.put(f'/api/bookings/{booking_id}/', {'status': 'cancelled'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error'], 'invalid_state')
        self.train.refresh_from_db()
        self.assertEqual(self.train.available_seats, 10)

    def test_cancel_someone_elses_booking(self):
        foreign = services.create_booking(self.other, self.train.pk, 2)

        response = self.client.put(f'/api/bookings/{foreign.pk}/', {'status': 'cancelled'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.train.refresh_from_db()
        self.assertEqual(self.train.available_seats, 8)

    def test_other_status_transitions_rejected(self):
        booking_id = self.book(1).data['id']

        response = self.client.put(f'/api/bookings/{booking_id}/', {'status': 'pending'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(Booking.objects.get(pk=booking_id).status, Booking.STATUS_CONFIRMED)

    def test_unknown_status_rejected(self):
        booking_id = self.book(1).data['id']

        response = self.client.patch(f'/api/bookings/{booking_id}/', {'status': 'refunded'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_view_booking_detail(self):
        booking_id = self.book(1).data['id']

        response = self.client.get(f'/api/bookings/{booking_id}/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['id'], booking_id)

    def test_view_foreign_booking_forbidden(self):
        foreign = services.create_booking(self.other, self.train.pk, 1)

        response = self.client.get(f'/api/bookings/{foreign.pk}/')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


# =============================================================================
# CONCURRENCY TESTS - Race Conditions
# =============================================================================

class BookingConcurrencyTests(SeatInvariantMixin, TransactionTestCase):
    """
    Concurrent bookings against one train.
    Uses TransactionTestCase so each thread commits through its own connection.
    """

    def setUp(self):
        self.users = [
            User.objects.create_user(username=f'racer{i}', password='RacePass123!')
            for i in range(8)
        ]
        self.train = make_train(total_seats=10)

    def race(self, requests):
        """Run ``(user, seat_count)`` bookings at the same moment from separate threads."""
        barrier = threading.Barrier(len(requests))
        results = {'success': [], 'insufficient': [], 'errors': []}
        lock = threading.Lock()

        def make_booking(user, seat_count):
            try:
                barrier.wait()
                booking = services.create_booking(user, self.train.pk, seat_count)
                outcome, value = 'success', booking.seat_count
            except InsufficientSeats:
                outcome, value = 'insufficient', seat_count
            except Exception as e:
                outcome, value = 'errors', repr(e)
            finally:
                connection.close()
            with lock:
                results[outcome].append(value)

        threads = [threading.Thread(target=make_booking, args=request) for request in requests]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        return results

    def test_two_requests_for_six_seats(self):
        results = self.race([(self.users[0], 6), (self.users[1], 6)])

        self.assertEqual(results['errors'], [])
        self.assertEqual(results['success'], [6])
        self.assertEqual(results['insufficient'], [6])
        self.train.refresh_from_db()
        self.assertEqual(self.train.available_seats, 4)
        self.assertSeatsConsistent(self.train)

    def test_many_requests_never_oversell(self):
        results = self.race([(user, 3) for user in self.users])

        self.assertEqual(results['errors'], [])
        self.assertEqual(len(results['success']), 3)
        self.assertEqual(len(results['insufficient']), 5)
        self.train.refresh_from_db()
        self.assertEqual(self.train.available_seats, 1)
        self.assertSeatsConsistent(self.train)

    def test_concurrent_cancel_restores_once(self):
        booking = services.create_booking(self.users[0], self.train.pk, 4)
        barrier = threading.Barrier(2)
        outcomes = []
        lock = threading.Lock()

        def cancel():
            try:
                barrier.wait()
                services.cancel_booking(self.users[0], booking.pk)
                outcome = 'cancelled'
            except InvalidState:
                outcome = 'invalid_state'
            except Exception as e:
                outcome = repr(e)
            finally:
                connection.close()
            with lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=cancel) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(sorted(outcomes), ['cancelled', 'invalid_state'])
        self.train.refresh_from_db()
        self.assertEqual(self.train.available_seats, 10)
        self.assertSeatsConsistent(self.train)
