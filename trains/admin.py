from django.contrib import admin
from .models import Train


@admin.register(Train)
class TrainAdmin(admin.ModelAdmin):
    list_display = ['name', 'origin', 'destination', 'departure_time', 'total_seats', 'available_seats', 'price']
    list_filter = ['origin', 'destination']
    search_fields = ['name', 'origin', 'destination']
    readonly_fields = ['available_seats', 'created_at']
    ordering = ['departure_time']

    def get_readonly_fields(self, request, obj=None):
        # Capacity changes go through the API so booked seats are preserved
        if obj is not None:
            return self.readonly_fields + ['total_seats']
        return self.readonly_fields

    def save_model(self, request, obj, form, change):
        if not change:
            obj.available_seats = obj.total_seats
        super().save_model(request, obj, form, change)
