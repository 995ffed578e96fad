"""
Route analytics views backed by the MongoDB request log.
"""
from rest_framework.views import APIView
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiParameter
from rest_framework import serializers as drf_serializers

from core.permissions import IsAdmin
from utils.mongo import get_top_routes

DEFAULT_LIMIT = 5
MAX_LIMIT = 20


# Response serializers for Swagger
class RouteSerializer(drf_serializers.Serializer):
    origin = drf_serializers.CharField()
    destination = drf_serializers.CharField()
    search_count = drf_serializers.IntegerField()


class TopRoutesResponseSerializer(drf_serializers.Serializer):
    count = drf_serializers.IntegerField()
    results = RouteSerializer(many=True)


class TopRoutesView(APIView):
    """Get top searched routes."""
    permission_classes = [IsAdmin]

    @extend_schema(
        summary="Get top searched routes (Admin only)",
        description="Returns the most searched (from, to) pairs aggregated from the MongoDB request log",
        parameters=[
            OpenApiParameter(name='limit', type=int, required=False,
                             description=f'Number of routes (default: {DEFAULT_LIMIT}, max: {MAX_LIMIT})')
        ],
        responses={200: TopRoutesResponseSerializer},
        tags=["Analytics (Admin)"]
    )
    def get(self, request):
        try:
            limit = min(max(int(request.query_params.get('limit', DEFAULT_LIMIT)), 1), MAX_LIMIT)
        except ValueError:
            limit = DEFAULT_LIMIT

        top_routes = get_top_routes(limit=limit)
        return Response({
            'count': len(top_routes),
            'results': top_routes
        })
