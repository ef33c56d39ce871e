"""Booking routes, mounted at ``/api/v1/bookings/``.

Detail actions: ``cancel``, ``pay``, ``payment-status`` and ``receipt``.
"""

from __future__ import annotations

from rest_framework.routers import DefaultRouter  # type: ignore

from .views import BookingViewSet

router = DefaultRouter()
router.include_root_view = False
router.register(r"", BookingViewSet, basename="booking")

urlpatterns = router.urls
