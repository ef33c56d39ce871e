"""API views for favorites management."""

from __future__ import annotations

from django.db import IntegrityError, transaction  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore

from apps.core.exceptions import Conflict
from apps.core.responses import success_response

from .models import Favorite
from .serializers import FavoriteCreateSerializer, FavoriteSerializer


class FavoriteViewSet(
    mixins.ListModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """
    Add, list and remove favorite venues.

    Endpoints:
    - GET /api/v1/favorites/ - list favorites
    - POST /api/v1/favorites/ - add a facility
    - DELETE /api/v1/favorites/{id}/ - remove a favorite
    - GET /api/v1/favorites/check/{facility_id}/ - is the facility a favorite
    """

    serializer_class = FavoriteSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):  # type: ignore
        return (
            Favorite.objects.filter(user=self.request.user)
            .select_related('facility')
            .prefetch_related('facility__photos', 'facility__courts')
        )

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = FavoriteCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            with transaction.atomic():
                favorite = Favorite.objects.create(
                    user=request.user,
                    facility_id=serializer.validated_data['facility_id'],
                )
        except IntegrityError:
            raise Conflict("Facility is already in favorites", code="ALREADY_FAVORITED")
        return success_response(
            FavoriteSerializer(favorite).data,
            "Added to favorites",
            status=status.HTTP_201_CREATED,
        )

    def destroy(self, request, *args, **kwargs):  # type: ignore
        self.get_object().delete()
        return success_response(message="Removed from favorites")

    @action(detail=False, methods=['get'], url_path='check/(?P<facility_id>[0-9]+)')
    def check(self, request, facility_id=None):  # type: ignore
        favorite = Favorite.objects.filter(user=request.user, facility_id=facility_id).first()
        return success_response(
            {"is_favorite": favorite is not None, "favorite_id": favorite.pk if favorite else None}
        )
