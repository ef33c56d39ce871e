"""URL routing for the admin console, mounted at ``/api/v1/admin/``."""

from django.urls import include, path  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import (
    AdminBookingViewSet,
    AdminCourtViewSet,
    AdminPaymentViewSet,
    AdminReportViewSet,
    AdminUserViewSet,
    VenueApprovalViewSet,
)

router = DefaultRouter()
router.register(r'reports', AdminReportViewSet, basename='admin-report')
router.register(r'approvals', VenueApprovalViewSet, basename='admin-venue')
router.register(r'users', AdminUserViewSet, basename='admin-user')
router.register(r'bookings', AdminBookingViewSet, basename='admin-booking')
router.register(r'courts', AdminCourtViewSet, basename='admin-court')
router.register(r'payments', AdminPaymentViewSet, basename='admin-payment')

urlpatterns = [path('', include(router.urls))]
