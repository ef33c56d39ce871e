"""URL routing for admin analytics, mounted at ``/api/v1/analytics/``."""

from django.urls import path  # type: ignore

from .views import OverviewAnalyticsView, RevenueAnalyticsView, SearchAnalyticsView

urlpatterns = [
    path('overview/', OverviewAnalyticsView.as_view(), name='analytics-overview'),
    path('revenue/', RevenueAnalyticsView.as_view(), name='analytics-revenue'),
    path('search/', SearchAnalyticsView.as_view(), name='analytics-search'),
]
