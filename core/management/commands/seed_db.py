"""
Management command to seed the database with sample data.

Usage:
    python manage.py seed_db           # Seed with default data
    python manage.py seed_db --clear   # Clear existing data first
"""
from datetime import datetime, time, timedelta
from decimal import Decimal
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from core.models import User
from trains.models import Train
from trains import services as train_services
from bookings.models import Booking
from bookings import services as booking_services

ADMIN_CREDENTIALS = ('admin', 'admin123')
USER_PASSWORD = 'User@123'


class Command(BaseCommand):
    help = 'Seed the database with sample data for testing'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear existing data before seeding',
        )

    def handle(self, *args, **options):
        if options['clear']:
            self.stdout.write('Clearing existing data...')
            self.clear_data()

        self.stdout.write('Seeding database...')

        with transaction.atomic():
            users = self.create_users()
            trains = self.create_trains()
        self.create_sample_bookings(users, trains)

        self.stdout.write(self.style.SUCCESS('Database seeded successfully!'))
        self.print_summary()

    def clear_data(self):
        Booking.objects.all().delete()
        Train.objects.all().delete()
        User.objects.filter(is_superuser=False).delete()
        self.stdout.write(self.style.WARNING('  Cleared all non-superuser data'))

    def create_users(self):
        users = []

        username, password = ADMIN_CREDENTIALS
        admin, created = User.objects.get_or_create(
            username=username,
            defaults={'is_admin': True, 'is_staff': True}
        )
        if created:
            admin.set_password(password)
            admin.save()
            self.stdout.write(f'  Created admin: {username} / {password}')
        users.append(admin)

        for username in ('john', 'jane', 'raj'):
            user, created = User.objects.get_or_create(username=username)
            if created:
                user.set_password(USER_PASSWORD)
                user.save()
                self.stdout.write(f'  Created user: {username} / {USER_PASSWORD}')
            users.append(user)

        return users

    def create_trains(self):
        routes = [
            ('Mumbai Rajdhani', 'Delhi', 'Mumbai', time(16, 55), 16, 120, Decimal('2500.00')),
            ('Howrah Rajdhani', 'Delhi', 'Kolkata', time(17, 0), 17, 100, Decimal('2200.00')),
            ('Tamil Nadu Express', 'Delhi', 'Chennai', time(22, 30), 33, 150, Decimal('1800.00')),
            ('Karnataka Express', 'Delhi', 'Bangalore', time(20, 0), 38, 150, Decimal('1900.00')),
            ('Shatabdi Express', 'Chennai', 'Bangalore', time(6, 0), 5, 80, Decimal('800.00')),
            ('Duronto Express', 'Mumbai', 'Kolkata', time(8, 15), 26, 90, Decimal('2100.00')),
        ]

        trains = []
        today = timezone.localdate()
        tz = timezone.get_current_timezone()

        for day_offset in range(1, 4):
            run_date = today + timedelta(days=day_offset)
            for name, origin, destination, departs, hours, seats, price in routes:
                departure = timezone.make_aware(datetime.combine(run_date, departs), tz)
                if Train.objects.filter(name=name, departure_time=departure).exists():
                    continue
                trains.append(train_services.create_train(
                    name=name,
                    origin=origin,
                    destination=destination,
                    departure_time=departure,
                    arrival_time=departure + timedelta(hours=hours),
                    total_seats=seats,
                    price=price,
                ))

        self.stdout.write(f'  Created {len(trains)} trains')
        return trains

    def create_sample_bookings(self, users, trains):
        if not trains:
            return

        regular_users = [u for u in users if not u.is_admin]
        for i, user in enumerate(regular_users[:2]):
            booking_services.create_booking(user, trains[i % len(trains)].pk, 2)

        self.stdout.write(f'  Created {min(len(regular_users), 2)} sample bookings')

    def print_summary(self):
        self.stdout.write('\n' + '=' * 50)
        self.stdout.write('Database Summary:')
        self.stdout.write(f'  Users: {User.objects.count()}')
        self.stdout.write(f'  Trains: {Train.objects.count()}')
        self.stdout.write(f'  Bookings: {Booking.objects.count()}')
        self.stdout.write('=' * 50)
        self.stdout.write('\nTest Credentials:')
        self.stdout.write(f'  Admin: {ADMIN_CREDENTIALS[0]} / {ADMIN_CREDENTIALS[1]}')
        self.stdout.write(f'  User:  john / {USER_PASSWORD}')
        self.stdout.write('=' * 50 + '\n')
