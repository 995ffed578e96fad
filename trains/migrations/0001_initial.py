import django.core.validators
from decimal import Decimal
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Train',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255)),
                ('origin', models.CharField(max_length=100)),
                ('destination', models.CharField(max_length=100)),
                ('departure_time', models.DateTimeField()),
                ('arrival_time', models.DateTimeField(blank=True, null=True)),
                ('total_seats', models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ('available_seats', models.PositiveIntegerField()),
                ('price', models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'db_table': 'trains',
                'ordering': ['departure_time', 'id'],
                'indexes': [
                    models.Index(fields=['origin', 'destination', 'departure_time'], name='trains_route_departure_idx'),
                    models.Index(fields=['departure_time'], name='trains_departure_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(('available_seats__gte', 0), ('available_seats__lte', models.F('total_seats'))),
                        name='trains_available_within_capacity',
                    ),
                ],
            },
        ),
    ]
