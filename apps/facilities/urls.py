"""URL routing for facilities, mounted at ``/api/v1/facilities/``."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import FacilityViewSet

router = DefaultRouter()
router.register(r"", FacilityViewSet, basename="facility")

urlpatterns = [
    path("", include(router.urls)),
]
