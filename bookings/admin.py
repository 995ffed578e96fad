from django.contrib import admin
from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ['id', 'user', 'train', 'seat_count', 'total_price', 'status', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['user__username', 'train__name']
    # Seat counters only move through the booking API
    readonly_fields = ['user', 'train', 'seat_count', 'total_price', 'status', 'created_at', 'cancelled_at']
    ordering = ['-created_at']

    def has_add_permission(self, request):
        return False
