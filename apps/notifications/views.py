"""API views for notifications."""

from __future__ import annotations

from django.conf import settings  # type: ignore
from django.contrib.auth import get_user_model  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.core.permissions import IsAdminRole
from apps.core.responses import success_response

from .models import Notification, PushSubscription
from .serializers import (
    BroadcastSerializer,
    NotificationPreferenceSerializer,
    NotificationSerializer,
    PushSubscriptionSerializer,
)
from .services import active_notifications, create_bulk_notifications, get_preferences, mark_all_read, unread_count

User = get_user_model()


class NotificationViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """List, read and delete the authenticated user's notifications."""

    serializer_class = NotificationSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):  # type: ignore
        qs = active_notifications(self.request.user)
        params = self.request.query_params
        if params.get("unread_only") in {"true", "1"}:
            qs = qs.filter(is_read=False)
        if params.get("type"):
            qs = qs.filter(type=params["type"])
        return qs

    def paginate_queryset(self, queryset):  # type: ignore
        if self.paginator is not None and "limit" not in self.request.query_params:
            self.paginator.page_size = 20
        return super().paginate_queryset(queryset)

    @action(detail=True, methods=["post", "patch"])
    def mark_read(self, request, pk=None):  # type: ignore
        notification: Notification = self.get_object()
        notification.mark_read()
        return success_response(NotificationSerializer(notification).data, "Notification marked as read")

    @action(detail=False, methods=["post"])
    def mark_all_read(self, request):  # type: ignore
        updated = mark_all_read(request.user)
        return success_response({"updated": updated}, "All notifications marked as read")

    @action(detail=False, methods=["get"])
    def count(self, request):  # type: ignore
        return success_response({"unread": unread_count(request.user)})

    @action(detail=False, methods=["delete"])
    def clear_read(self, request):  # type: ignore
        deleted, _ = Notification.objects.filter(user=request.user, is_read=True).delete()
        return success_response({"deleted": deleted}, "Read notifications deleted")

    def destroy(self, request, *args, **kwargs):  # type: ignore
        self.get_object().delete()
        return success_response(message="Notification deleted")


class NotificationPreferenceView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):  # type: ignore
        return success_response(NotificationPreferenceSerializer(get_preferences(request.user)).data)

    def put(self, request):  # type: ignore
        serializer = NotificationPreferenceSerializer(
            get_preferences(request.user), data=request.data, partial=True
        )
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return success_response(serializer.data, "Preferences updated")

    patch = put


class PushSubscribeView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):  # type: ignore
        return success_response({"public_key": settings.WEB_PUSH_PUBLIC_KEY})

    def post(self, request):  # type: ignore
        serializer = PushSubscriptionSerializer(data=request.data, context={"request": request})
        serializer.is_valid(raise_exception=True)
        subscription = serializer.save()
        return success_response({"id": subscription.pk}, "Subscribed to push notifications", status.HTTP_201_CREATED)


class PushUnsubscribeView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):  # type: ignore
        endpoint = request.data.get("endpoint")
        qs = PushSubscription.objects.filter(user=request.user, is_active=True)
        if endpoint:
            qs = qs.filter(endpoint=endpoint)
        updated = qs.update(is_active=False)
        return success_response({"unsubscribed": updated}, "Unsubscribed from push notifications")


class BroadcastView(APIView):
    """Admin broadcast to every active user or to one role."""

    permission_classes = [IsAdminRole]

    def post(self, request):  # type: ignore
        serializer = BroadcastSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        users = User.objects.filter(is_active=True, is_banned=False)
        if data.get("role"):
            users = users.filter(role=data["role"])
        payload = {"message": data["message"]}
        if data.get("title"):
            payload["title"] = data["title"]
        created = create_bulk_notifications(users, data["type"], payload)
        return success_response({"sent": created}, "Broadcast sent", status.HTTP_201_CREATED)
