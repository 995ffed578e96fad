"""
Tests for trains app.
Tests cover: Model constraints, Inventory service rules, Search API, Admin-only access.
"""
from decimal import Decimal
from datetime import datetime, time, timedelta
from django.test import TestCase
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework.test import APITestCase
from rest_framework import status

from core.exceptions import InvalidCapacity, InvalidState, NotFound
from trains.models import Train
from trains import services
from bookings.models import Booking

User = get_user_model()


def departure_in(days, at=time(10, 0)):
    """Aware datetime ``days`` from today at a local wall-clock time."""
    run_date = timezone.localdate() + timedelta(days=days)
    return timezone.make_aware(datetime.combine(run_date, at))


def make_train(**overrides):
    fields = {
        'name': 'Test Express',
        'origin': 'Delhi',
        'destination': 'Mumbai',
        'departure_time': departure_in(7),
        'total_seats': 10,
        'price': Decimal('100.00'),
    }
    fields.update(overrides)
    return services.create_train(**fields)


# UNIT TESTS - Models

class TrainModelTests(TestCase):
    """Test Train model constraints."""

    def test_create_train_starts_fully_available(self):
        train = make_train(total_seats=100)

        self.assertEqual(train.total_seats, 100)
        self.assertEqual(train.available_seats, 100)
        self.assertEqual(train.booked_seats, 0)

    def test_train_string_representation(self):
        train = make_train(name='Mumbai Rajdhani')
        self.assertEqual(str(train), 'Mumbai Rajdhani: Delhi -> Mumbai')

    def test_available_seats_cannot_exceed_total(self):
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Train.objects.create(
                    name='Broken', origin='A', destination='B',
                    departure_time=departure_in(1), total_seats=5,
                    available_seats=6, price=Decimal('10.00'),
                )

    def test_can_book(self):
        train = make_train(total_seats=10)
        self.assertTrue(train.can_book(10))
        self.assertFalse(train.can_book(11))


# UNIT TESTS - Inventory service

class UpdateTrainTests(TestCase):
    """Capacity changes keep the booked seat count intact."""

    def setUp(self):
        self.train = make_train(total_seats=10)
        # 3 seats booked
        Train.objects.filter(pk=self.train.pk).update(available_seats=7)

    def test_increase_capacity_shifts_available(self):
        train = services.update_train(self.train.pk, total_seats=15)

        self.assertEqual(train.total_seats, 15)
        self.assertEqual(train.available_seats, 12)
        self.assertEqual(train.booked_seats, 3)

    def test_reduce_capacity_to_booked_seats(self):
        train = services.update_train(self.train.pk, total_seats=3)

        self.assertEqual(train.total_seats, 3)
        self.assertEqual(train.available_seats, 0)

    def test_reduce_capacity_below_booked_seats_fails(self):
        with self.assertRaises(InvalidCapacity):
            services.update_train(self.train.pk, total_seats=2)

        self.train.refresh_from_db()
        self.assertEqual(self.train.total_seats, 10)
        self.assertEqual(self.train.available_seats, 7)

    def test_available_seats_cannot_be_set_directly(self):
        train = services.update_train(self.train.pk, available_seats=10, name='Renamed')

        self.assertEqual(train.available_seats, 7)
        self.assertEqual(train.name, 'Renamed')

    def test_update_missing_train(self):
        with self.assertRaises(NotFound):
            services.update_train(99999, name='Ghost')


class DeleteTrainTests(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(username='rider', password='test123')
        self.train = make_train()

    def test_delete_train(self):
        services.delete_train(self.train.pk)
        self.assertFalse(Train.objects.filter(pk=self.train.pk).exists())

    def test_delete_train_with_confirmed_booking_fails(self):
        Booking.objects.create(user=self.user, train=self.train, seat_count=1,
                               total_price=Decimal('100.00'), status=Booking.STATUS_CONFIRMED)

        with self.assertRaises(InvalidState):
            services.delete_train(self.train.pk)
        self.assertTrue(Train.objects.filter(pk=self.train.pk).exists())

    def test_delete_train_with_only_cancelled_bookings(self):
        Booking.objects.create(user=self.user, train=self.train, seat_count=1,
                               total_price=Decimal('100.00'), status=Booking.STATUS_CANCELLED)

        services.delete_train(self.train.pk)

        self.assertFalse(Train.objects.filter(pk=self.train.pk).exists())
        self.assertFalse(Booking.objects.exists())

    def test_delete_missing_train(self):
        with self.assertRaises(NotFound):
            services.delete_train(99999)


class SearchTrainsTests(TestCase):

    def setUp(self):
        self.delhi_mumbai = make_train(name='A', departure_time=departure_in(7))
        self.delhi_mumbai_later = make_train(name='B', departure_time=departure_in(8))
        self.chennai = make_train(name='C', origin='Chennai', destination='Bangalore')

    def test_no_filters_returns_everything(self):
        self.assertEqual(services.search_trains().count(), 3)

    def test_route_filter_is_case_insensitive(self):
        results = services.search_trains(origin='DELHI', destination='mumbai')
        self.assertEqual(list(results), [self.delhi_mumbai, self.delhi_mumbai_later])

    def test_date_filter(self):
        travel_date = timezone.localtime(self.delhi_mumbai.departure_time).date()
        results = services.search_trains(origin='Delhi', destination='Mumbai', travel_date=travel_date)
        self.assertEqual(list(results), [self.delhi_mumbai])


# UNIT TESTS - Serializers

class TrainWriteSerializerTests(TestCase):

    def valid_data(self, **overrides):
        data = {
            'name': 'Test Express',
            'from': 'delhi',
            'to': 'mumbai',
            'departure_time': departure_in(3).isoformat(),
            'seats': '50',
            'price': '250',
        }
        data.update(overrides)
        return data

    def test_aliases_and_coercion(self):
        from trains.serializers import TrainWriteSerializer

        serializer = TrainWriteSerializer(data=self.valid_data())

        self.assertTrue(serializer.is_valid(), serializer.errors)
        self.assertEqual(serializer.validated_data['origin'], 'Delhi')
        self.assertEqual(serializer.validated_data['destination'], 'Mumbai')
        self.assertEqual(serializer.validated_data['total_seats'], 50)
        self.assertEqual(serializer.validated_data['price'], Decimal('250'))

    def test_missing_fields_rejected(self):
        from trains.serializers import TrainWriteSerializer

        serializer = TrainWriteSerializer(data={'name': 'Only a name'})

        self.assertFalse(serializer.is_valid())
        for field in ('origin', 'destination', 'departure_time', 'total_seats', 'price'):
            self.assertIn(field, serializer.errors)

    def test_same_origin_and_destination_rejected(self):
        from trains.serializers import TrainWriteSerializer

        serializer = TrainWriteSerializer(data=self.valid_data(to='DELHI'))

        self.assertFalse(serializer.is_valid())
        self.assertIn('destination', serializer.errors)

    def test_arrival_before_departure_rejected(self):
        from trains.serializers import TrainWriteSerializer

        serializer = TrainWriteSerializer(data=self.valid_data(arrival_time=departure_in(2).isoformat()))

        self.assertFalse(serializer.is_valid())
        self.assertIn('arrival_time', serializer.errors)

    def test_zero_seats_rejected(self):
        from trains.serializers import TrainWriteSerializer

        serializer = TrainWriteSerializer(data=self.valid_data(seats=0))

        self.assertFalse(serializer.is_valid())
        self.assertIn('total_seats', serializer.errors)


# INTEGRATION TESTS - Train list / search API

class TrainListAPITests(APITestCase):
    """Train listing is public."""

    def setUp(self):
        self.train = make_train(name='Mumbai Rajdhani', departure_time=departure_in(7))
        make_train(name='Chennai Mail', origin='Chennai', destination='Bangalore')

    def test_list_without_authentication(self):
        response = self.client.get('/api/trains/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)

    def test_search_by_route(self):
        response = self.client.get('/api/trains/', {'from': 'DELHI', 'to': 'mumbai'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['name'], 'Mumbai Rajdhani')
        self.assertEqual(response.data[0]['available_seats'], 10)

    def test_search_with_date(self):
        travel_date = timezone.localtime(self.train.departure_time).date()

        matching = self.client.get('/api/trains/', {'from': 'Delhi', 'to': 'Mumbai', 'date': travel_date.isoformat()})
        other_day = self.client.get('/api/trains/', {
            'from': 'Delhi', 'to': 'Mumbai', 'date': (travel_date + timedelta(days=1)).isoformat()
        })

        self.assertEqual(len(matching.data), 1)
        self.assertEqual(len(other_day.data), 0)

    def test_search_invalid_date(self):
        response = self.client.get('/api/trains/', {'date': '15-01-2026'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('date', response.data)

    def test_get_single_train(self):
        response = self.client.get(f'/api/trains/{self.train.pk}/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['id'], self.train.pk)

    def test_get_missing_train(self):
        response = self.client.get('/api/trains/99999/')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'not_found')


# INTEGRATION TESTS - Admin Only Access

class AdminOnlyAPITests(APITestCase):
    """Test admin-only route access control."""

    def setUp(self):
        self.regular_user = User.objects.create_user(username='user', password='UserPass123!')
        self.admin_user = User.objects.create_user(username='admin', password='AdminPass123!', is_admin=True)
        self.train_data = {
            'name': 'Test Train',
            'from': 'Delhi',
            'to': 'Mumbai',
            'departure_time': departure_in(7).isoformat(),
            'seats': 100,
            'price': 1000,
        }

    def get_token(self, username, password):
        """Helper to get JWT token."""
        response = self.client.post('/api/login/', {
            'username': username,
            'password': password
        }, format='json')
        return response.data['tokens']['access']

    def login_as_admin(self):
        token = self.get_token('admin', 'AdminPass123!')
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')

    def test_regular_user_cannot_create_train(self):
        token = self.get_token('user', 'UserPass123!')
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')

        response = self.client.post('/api/trains/', self.train_data, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'permission_denied')
        self.assertFalse(Train.objects.exists())

    def test_unauthenticated_cannot_create_train(self):
        response = self.client.post('/api/trains/', self.train_data, format='json')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(Train.objects.exists())

    def test_admin_can_create_train(self):
        self.login_as_admin()

        response = self.client.post('/api/trains/', self.train_data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['origin'], 'Delhi')
        self.assertEqual(response.data['total_seats'], 100)
        self.assertEqual(response.data['available_seats'], 100)

    def test_admin_create_invalid_train(self):
        self.login_as_admin()

        response = self.client.post('/api/trains/', {'name': 'Incomplete'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Train.objects.exists())

    def test_admin_partial_update(self):
        train = make_train()
        self.login_as_admin()

        response = self.client.put(f'/api/trains/{train.pk}/', {'price': '150.00'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['price'], '150.00')
        self.assertEqual(response.data['name'], 'Test Express')

    def test_admin_capacity_below_booked_returns_422(self):
        train = make_train(total_seats=10)
        Train.objects.filter(pk=train.pk).update(available_seats=4)
        self.login_as_admin()

        response = self.client.put(f'/api/trains/{train.pk}/', {'seats': 5}, format='json')

        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)
        self.assertEqual(response.data['error'], 'invalid_capacity')
        train.refresh_from_db()
        self.assertEqual(train.total_seats, 10)

    def test_regular_user_cannot_update_train(self):
        train = make_train()
        token = self.get_token('user', 'UserPass123!')
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')

        response = self.client.put(f'/api/trains/{train.pk}/', {'price': '1.00'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_can_delete_train(self):
        train = make_train()
        self.login_as_admin()

        response = self.client.delete(f'/api/trains/{train.pk}/')

        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Train.objects.filter(pk=train.pk).exists())

    def test_regular_user_cannot_delete_train(self):
        train = make_train()
        token = self.get_token('user', 'UserPass123!')
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')

        response = self.client.delete(f'/api/trains/{train.pk}/')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertTrue(Train.objects.filter(pk=train.pk).exists())
