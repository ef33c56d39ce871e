"""Routes for courts and amenities, mounted at ``/api/v1/``."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import AmenityViewSet, CourtViewSet

router = DefaultRouter()
router.include_root_view = False
router.register(r"courts", CourtViewSet, basename="court")
router.register(r"amenities", AmenityViewSet, basename="amenity")

urlpatterns = [
    path("", include(router.urls)),
]
