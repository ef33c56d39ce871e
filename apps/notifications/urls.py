"""URL routing for notifications."""

from django.urls import include, path  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import (
    BroadcastView,
    NotificationPreferenceView,
    NotificationViewSet,
    PushSubscribeView,
    PushUnsubscribeView,
)

router = DefaultRouter()
router.register(r'', NotificationViewSet, basename='notification')

urlpatterns = [
    path('preferences/', NotificationPreferenceView.as_view(), name='notification-preferences'),
    path('subscribe/', PushSubscribeView.as_view(), name='notification-subscribe'),
    path('unsubscribe/', PushUnsubscribeView.as_view(), name='notification-unsubscribe'),
    path('broadcast/', BroadcastView.as_view(), name='notification-broadcast'),
    path('', include(router.urls)),
]
