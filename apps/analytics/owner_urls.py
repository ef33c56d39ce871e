"""URL routing for the facility owner console, mounted at ``/api/v1/owner/``."""

from django.urls import path  # type: ignore

from .views import OwnerCourtAnalyticsView, OwnerDashboardView, OwnerEarningsExportView, OwnerEarningsView

urlpatterns = [
    path('dashboard/', OwnerDashboardView.as_view(), name='owner-dashboard'),
    path('earnings/', OwnerEarningsView.as_view(), name='owner-earnings'),
    path('earnings/export/', OwnerEarningsExportView.as_view(), name='owner-earnings-export'),
    path('courts/analytics/', OwnerCourtAnalyticsView.as_view(), name='owner-court-analytics'),
    path(
        'courts/<int:court_id>/analytics/',
        OwnerCourtAnalyticsView.as_view(),
        name='owner-court-detail-analytics',
    ),
]
