"""
Tests for core app - users, access gate and error rendering.
Tests cover: Model constraints, Serializer validation, Auth flow integration,
permission predicates, seed command.
"""
from io import StringIO

from django.test import TestCase
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.core.management import call_command
from rest_framework.test import APITestCase
from rest_framework import status

from core.permissions import is_admin, is_authenticated

User = get_user_model()


# =============================================================================
# UNIT TESTS - Models
# =============================================================================

class UserModelTests(TestCase):
    """Test User model constraints and methods."""

    def test_create_user_with_username(self):
        user = User.objects.create_user(username='traveller', password='testpass123')

        self.assertEqual(user.username, 'traveller')
        self.assertTrue(user.check_password('testpass123'))
        self.assertFalse(user.is_admin)
        self.assertTrue(user.is_active)

    def test_username_is_lowercased(self):
        user = User.objects.create_user(username='Traveller', password='test123')
        self.assertEqual(user.username, 'traveller')

    def test_username_is_unique(self):
        User.objects.create_user(username='unique', password='test123')

        with self.assertRaises(Exception):
            User.objects.create_user(username='unique', password='test123')

    def test_create_user_without_username_raises_error(self):
        with self.assertRaises(ValueError):
            User.objects.create_user(username='', password='test123')

    def test_create_superuser(self):
        user = User.objects.create_superuser(username='root', password='admin123')

        self.assertTrue(user.is_superuser)
        self.assertTrue(user.is_staff)
        self.assertTrue(user.is_admin)

    def test_user_string_representation(self):
        user = User.objects.create_user(username='traveller', password='test123')
        self.assertEqual(str(user), 'traveller')


# =============================================================================
# UNIT TESTS - Access gate
# =============================================================================

class AccessGateTests(TestCase):
    """Test the authentication and admin predicates."""

    def test_anonymous_is_neither(self):
        anonymous = AnonymousUser()
        self.assertFalse(is_authenticated(anonymous))
        self.assertFalse(is_admin(anonymous))

    def test_none_is_not_authenticated(self):
        self.assertFalse(is_authenticated(None))
        self.assertFalse(is_admin(None))

    def test_regular_user(self):
        user = User.objects.create_user(username='regular', password='test123')
        self.assertTrue(is_authenticated(user))
        self.assertFalse(is_admin(user))

    def test_admin_user(self):
        admin = User.objects.create_user(username='boss', password='test123', is_admin=True)
        self.assertTrue(is_authenticated(admin))
        self.assertTrue(is_admin(admin))


# =============================================================================
# UNIT TESTS - Serializers
# =============================================================================

class UserSerializerTests(TestCase):
    """Test User serializers validation."""

    def test_registration_password_mismatch(self):
        from core.serializers import UserRegistrationSerializer

        serializer = UserRegistrationSerializer(data={
            'username': 'traveller',
            'password': 'StrongPass123!',
            'password_confirm': 'DifferentPass123!'
        })

        self.assertFalse(serializer.is_valid())
        self.assertIn('password_confirm', serializer.errors)

    def test_registration_weak_password(self):
        from core.serializers import UserRegistrationSerializer

        serializer = UserRegistrationSerializer(data={
            'username': 'traveller',
            'password': '123',
            'password_confirm': '123'
        })

        self.assertFalse(serializer.is_valid())
        self.assertIn('password', serializer.errors)

    def test_registration_duplicate_username(self):
        from core.serializers import UserRegistrationSerializer

        User.objects.create_user(username='existing', password='test123')

        serializer = UserRegistrationSerializer(data={
            'username': 'Existing',
            'password': 'StrongPass123!',
            'password_confirm': 'StrongPass123!'
        })

        self.assertFalse(serializer.is_valid())
        self.assertIn('username', serializer.errors)

    def test_login_invalid_credentials(self):
        from core.serializers import UserLoginSerializer

        User.objects.create_user(username='traveller', password='correctpass')

        serializer = UserLoginSerializer(data={'username': 'traveller', 'password': 'wrongpass'})

        self.assertFalse(serializer.is_valid())


# =============================================================================
# INTEGRATION TESTS - API Flow
# =============================================================================

class AuthenticationAPITests(APITestCase):
    """Integration tests for authentication flow."""

    def test_register_returns_jwt_tokens(self):
        response = self.client.post('/api/register/', {
            'username': 'newuser',
            'password': 'SecurePass123!',
            'password_confirm': 'SecurePass123!'
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('access', response.data['tokens'])
        self.assertIn('refresh', response.data['tokens'])
        self.assertEqual(response.data['user']['username'], 'newuser')
        self.assertFalse(response.data['user']['is_admin'])

    def test_register_cannot_grant_admin(self):
        response = self.client.post('/api/register/', {
            'username': 'sneaky',
            'password': 'SecurePass123!',
            'password_confirm': 'SecurePass123!',
            'is_admin': True
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(User.objects.get(username='sneaky').is_admin)

    def test_login_returns_jwt_tokens(self):
        User.objects.create_user(username='traveller', password='TestPass123!')

        response = self.client.post('/api/login/', {
            'username': 'traveller',
            'password': 'TestPass123!'
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data['tokens'])

    def test_login_wrong_password(self):
        User.objects.create_user(username='traveller', password='TestPass123!')

        response = self.client.post('/api/login/', {
            'username': 'traveller',
            'password': 'nope'
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_full_auth_flow(self):
        """Register -> login -> access protected route."""
        register_response = self.client.post('/api/register/', {
            'username': 'flowtest',
            'password': 'FlowPass123!',
            'password_confirm': 'FlowPass123!'
        }, format='json')
        self.assertEqual(register_response.status_code, status.HTTP_201_CREATED)

        login_response = self.client.post('/api/login/', {
            'username': 'flowtest',
            'password': 'FlowPass123!'
        }, format='json')
        self.assertEqual(login_response.status_code, status.HTTP_200_OK)

        access_token = login_response.data['tokens']['access']
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {access_token}')

        profile_response = self.client.get('/api/profile/')
        self.assertEqual(profile_response.status_code, status.HTTP_200_OK)
        self.assertEqual(profile_response.data['username'], 'flowtest')

    def test_refresh_token(self):
        User.objects.create_user(username='traveller', password='TestPass123!')
        login_response = self.client.post('/api/login/', {
            'username': 'traveller',
            'password': 'TestPass123!'
        }, format='json')

        response = self.client.post('/api/token/refresh/', {
            'refresh': login_response.data['tokens']['refresh']
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_protected_route_without_token(self):
        response = self.client.get('/api/profile/')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['error'], 'not_authenticated')
        self.assertIn('detail', response.data)

    def test_protected_route_with_invalid_token(self):
        self.client.credentials(HTTP_AUTHORIZATION='Bearer invalid_token_here')

        response = self.client.get('/api/profile/')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


# =============================================================================
# Seed command
# =============================================================================

class SeedCommandTests(TestCase):

    def test_seed_creates_admin_trains_and_bookings(self):
        from trains.models import Train
        from bookings.models import Booking

        call_command('seed_db', stdout=StringIO())

        admin = User.objects.get(username='admin')
        self.assertTrue(admin.is_admin)
        self.assertTrue(admin.check_password('admin123'))
        self.assertTrue(Train.objects.exists())
        self.assertEqual(Booking.objects.count(), 2)

        for train in Train.objects.all():
            confirmed = sum(b.seat_count for b in train.bookings.filter(status=Booking.STATUS_CONFIRMED))
            self.assertEqual(train.total_seats - train.available_seats, confirmed)

    def test_seed_is_idempotent_for_users_and_trains(self):
        from trains.models import Train

        call_command('seed_db', stdout=StringIO())
        trains = Train.objects.count()
        call_command('seed_db', stdout=StringIO())

        self.assertEqual(Train.objects.count(), trains)
        self.assertEqual(User.objects.filter(username='admin').count(), 1)
