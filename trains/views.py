"""Views for train inventory and search."""
from datetime import date

from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiExample

from core.exceptions import ValidationError
from core.permissions import IsAdminOrReadOnly
from .serializers import TrainSerializer, TrainWriteSerializer
from . import services


TRAIN_EXAMPLE = OpenApiExample(
    "Create Train",
    value={
        "name": "Mumbai Rajdhani",
        "from": "Delhi",
        "to": "Mumbai",
        "departure_time": "2026-11-15T16:55:00+05:30",
        "arrival_time": "2026-11-16T08:35:00+05:30",
        "seats": 500,
        "price": "2500.00"
    },
    request_only=True
)


def _parse_date(value):
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError({'date': 'Date must be in YYYY-MM-DD format.'})


class TrainListCreateView(APIView):
    permission_classes = [IsAdminOrReadOnly]

    @extend_schema(
        summary="List or search trains",
        description="Returns all trains, filtered by route and departure date when query parameters are given.",
        parameters=[
            OpenApiParameter(name='from', type=str, required=False, description='Origin station (e.g., Delhi)'),
            OpenApiParameter(name='to', type=str, required=False, description='Destination station (e.g., Mumbai)'),
            OpenApiParameter(name='date', type=str, required=False, description='Departure date (YYYY-MM-DD)'),
        ],
        responses={200: TrainSerializer(many=True)},
        tags=["Trains"]
    )
    def get(self, request):
        origin = request.query_params.get('from', '').strip()
        destination = request.query_params.get('to', '').strip()
        travel_date = request.query_params.get('date', '').strip()

        trains = services.search_trains(
            origin=origin or None,
            destination=destination or None,
            travel_date=_parse_date(travel_date) if travel_date else None,
        )
        return Response(TrainSerializer(trains, many=True).data)

    @extend_schema(
        summary="Create train (Admin only)",
        description="Create a train. Available seats start at the full capacity.",
        request=TrainWriteSerializer,
        responses={201: TrainSerializer},
        examples=[TRAIN_EXAMPLE],
        tags=["Trains (Admin)"]
    )
    def post(self, request):
        serializer = TrainWriteSerializer(data=request.data)
        if serializer.is_valid():
            train = serializer.save()
            return Response(TrainSerializer(train).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


class TrainDetailView(APIView):
    permission_classes = [IsAdminOrReadOnly]

    @extend_schema(summary="Get train", responses={200: TrainSerializer}, tags=["Trains"])
    def get(self, request, pk):
        return Response(TrainSerializer(services.get_train(pk)).data)

    @extend_schema(
        summary="Update train (Admin only)",
        description="Partial update. Changing total seats keeps the booked seat count; "
                    "reducing it below the booked seats fails with 422.",
        request=TrainWriteSerializer,
        responses={200: TrainSerializer},
        tags=["Trains (Admin)"]
    )
    def put(self, request, pk):
        train = services.get_train(pk)
        serializer = TrainWriteSerializer(train, data=request.data, partial=True)
        if serializer.is_valid():
            train = serializer.save()
            return Response(TrainSerializer(train).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    @extend_schema(summary="Update train (Admin only)", request=TrainWriteSerializer,
                   responses={200: TrainSerializer}, tags=["Trains (Admin)"])
    def patch(self, request, pk):
        return self.put(request, pk)

    @extend_schema(summary="Delete train (Admin only)", responses={204: None}, tags=["Trains (Admin)"])
    def delete(self, request, pk):
        services.delete_train(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)
