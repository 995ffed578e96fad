"""Views for booking management."""
from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from drf_spectacular.utils import extend_schema, OpenApiExample, inline_serializer
from rest_framework import serializers as drf_serializers

from core.exceptions import InvalidState
from .models import Booking
from .serializers import BookingSerializer, BookingCreateSerializer, BookingStatusSerializer
from . import services


ERROR_RESPONSE = inline_serializer(
    name='ErrorResponse',
    fields={'error': drf_serializers.CharField(), 'detail': drf_serializers.CharField()},
)


class BookingListCreateView(APIView):
    """List bookings or book seats on a train."""
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List bookings",
        description="Returns the authenticated user's bookings, or every booking for an admin.",
        responses={200: BookingSerializer(many=True)},
        tags=["Bookings"]
    )
    def get(self, request):
        bookings = services.bookings_for(request.user)
        return Response(BookingSerializer(bookings, many=True).data)

    @extend_schema(
        summary="Book seats on a train",
        description="Reserves seats and confirms the booking. Fails with 409 when not enough seats are left.",
        request=BookingCreateSerializer,
        responses={201: BookingSerializer, 404: ERROR_RESPONSE, 409: ERROR_RESPONSE},
        examples=[
            OpenApiExample("Book 3 seats", value={"train_id": 1, "seat_count": 3}, request_only=True)
        ],
        tags=["Bookings"]
    )
    def post(self, request):
        serializer = BookingCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        booking = services.create_booking(
            request.user,
            serializer.validated_data['train_id'],
            serializer.validated_data['seat_count'],
        )
        return Response(BookingSerializer(booking).data, status=status.HTTP_201_CREATED)


class BookingDetailView(APIView):
    """Get a booking or change its status."""
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Get booking",
        description="Owners can view their own bookings; admins can view any.",
        responses={200: BookingSerializer, 403: ERROR_RESPONSE, 404: ERROR_RESPONSE},
        tags=["Bookings"]
    )
    def get(self, request, pk):
        return Response(BookingSerializer(services.get_booking(request.user, pk)).data)

    @extend_schema(
        summary="Change booking status",
        description="Only 'cancelled' is accepted; it releases the booked seats back to the train.",
        request=BookingStatusSerializer,
        responses={200: BookingSerializer, 403: ERROR_RESPONSE, 404: ERROR_RESPONSE, 409: ERROR_RESPONSE},
        examples=[
            OpenApiExample("Cancel", value={"status": "cancelled"}, request_only=True)
        ],
        tags=["Bookings"]
    )
    def put(self, request, pk):
        serializer = BookingStatusSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        target = serializer.validated_data['status']
        if target != Booking.STATUS_CANCELLED:
            booking = services.get_booking(request.user, pk)
            raise InvalidState(f"Booking {booking.pk} cannot move from {booking.status} to {target}.")

        booking = services.cancel_booking(request.user, pk)
        booking = services.get_booking(request.user, booking.pk)
        return Response(BookingSerializer(booking).data)

    @extend_schema(summary="Change booking status", request=BookingStatusSerializer,
                   responses={200: BookingSerializer}, tags=["Bookings"])
    def patch(self, request, pk):
        return self.put(request, pk)
