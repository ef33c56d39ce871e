"""Public home feed and sport catalog, mounted at ``/api/v1/``."""

from django.urls import path  # type: ignore

from .views import HomeFeedView, PopularSportsView, SportListView

urlpatterns = [
    path('home/', HomeFeedView.as_view(), name='home-feed'),
    path('sports/', SportListView.as_view(), name='sport-list'),
    path('sports/popular/', PopularSportsView.as_view(), name='sport-popular'),
]
