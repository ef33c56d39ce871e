"""URL declarations for the current-user endpoints."""

from __future__ import annotations

from django.urls import path  # type: ignore

from apps.payments.views import MyPaymentsView
from apps.reviews.views import MyReviewsView

from .views import AccountView, DashboardView, PasswordChangeView, ProfileView

urlpatterns = [
    path("profile/", ProfileView.as_view(), name="user-profile"),
    path("password/", PasswordChangeView.as_view(), name="user-password"),
    path("account/", AccountView.as_view(), name="user-account"),
    path("dashboard/", DashboardView.as_view(), name="user-dashboard"),
    path("me/payments/", MyPaymentsView.as_view(), name="user-payments"),
    path("me/reviews/", MyReviewsView.as_view(), name="user-reviews"),
]
