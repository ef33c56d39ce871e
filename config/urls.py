"""URL configuration for the CourtBook project.

The `urlpatterns` list routes URLs to views. It includes the Django admin,
the OpenAPI schema and the application-level routers of each app.
"""
from django.contrib import admin  # type: ignore
from django.urls import path, include  # type: ignore
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView  # type: ignore

# API versioning. v1 is our initial version; future versions can be added here.

urlpatterns = [
    path('admin/', admin.site.urls),
    # OpenAPI
    path('api/v1/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/v1/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='docs'),
    # Application URLs
    path('api/v1/auth/', include(('apps.users.auth_urls', 'auth'), namespace='auth')),
    path('api/v1/users/', include('apps.users.urls')),
    path('api/v1/facilities/', include('apps.facilities.urls')),
    path('api/v1/favorites/', include('apps.favorites.urls')),
    path('api/v1/bookings/', include('apps.bookings.urls')),
    path('api/v1/payments/', include('apps.payments.urls')),
    path('api/v1/coupons/', include('apps.payments.coupon_urls')),
    path('api/v1/reviews/', include('apps.reviews.urls')),
    path('api/v1/notifications/', include('apps.notifications.urls')),
    path('api/v1/reports/', include('apps.moderation.urls')),
    # Admin and owner consoles
    path('api/v1/admin/', include('apps.moderation.admin_urls')),
    path('api/v1/analytics/', include('apps.analytics.urls')),
    path('api/v1/owner/', include('apps.analytics.owner_urls')),
    # Courts, amenities, home feed and sports sit directly under the version prefix
    path('api/v1/', include('apps.facilities.court_urls')),
    path('api/v1/', include('apps.analytics.public_urls')),
]
