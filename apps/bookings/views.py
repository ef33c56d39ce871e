"""API views for the booking domain."""

from __future__ import annotations

from django.utils import timezone  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore

from apps.core.exceptions import PermissionDenied
from apps.core.responses import success_response

from . import services
from .models import Booking
from .serializers import BookingCancelSerializer, BookingCreateSerializer, BookingSerializer


class IsBookingStakeholder(permissions.BasePermission):
    """Bookers, owners of the booked facility and admins can see a booking."""

    def has_object_permission(self, request, view, obj: Booking):  # type: ignore
        user = request.user
        if not user.is_authenticated:
            return False
        return services.can_manage(user, obj)


class BookingViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    """Create, list, inspect and cancel court bookings."""

    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated, IsBookingStakeholder]

    def get_serializer_class(self):  # type: ignore
        if self.action == "create":
            return BookingCreateSerializer
        return BookingSerializer

    def get_queryset(self):  # type: ignore
        qs = services.visible_bookings(self.request.user)
        if self.action != "list":
            return qs
        params = self.request.query_params
        if params.get("status"):
            qs = qs.filter(status=params["status"].upper())
        if params.get("facility_id"):
            qs = qs.filter(court__facility_id=params["facility_id"])
        if params.get("upcoming") in {"true", "1"}:
            qs = qs.filter(
                booking_date__gte=timezone.localdate(),
                status__in=Booking.ACTIVE_STATUSES,
            ).order_by("booking_date", "start_time")
        return qs

    def retrieve(self, request, *args, **kwargs):  # type: ignore
        return success_response(BookingSerializer(self.get_object()).data)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        booking = services.create_booking(
            request.user,
            data["court_id"],
            data["date"],
            data["start_time"],
            data["end_time"],
            data.get("notes", ""),
        )
        return success_response(
            BookingSerializer(booking).data,
            "Booking created, complete the payment to confirm it",
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["post", "patch"])
    def cancel(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = BookingCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = services.cancel_booking(booking, request.user, serializer.validated_data.get("reason", ""))
        return success_response(
            {"booking": BookingSerializer(result["booking"]).data, "refund": result["refund"]},
            "Booking cancelled successfully",
        )

    @action(detail=True, methods=["post"])
    def pay(self, request, pk=None):  # type: ignore
        from apps.payments.serializers import PaymentInitiateSerializer
        from apps.payments.services import initiate_payment

        booking: Booking = self.get_object()  # type: ignore
        if booking.user_id != request.user.pk:
            raise PermissionDenied("You can only pay for your own bookings")
        serializer = PaymentInitiateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        checkout = initiate_payment(
            booking,
            request.user,
            serializer.validated_data["method"],
            serializer.validated_data.get("coupon_code") or None,
        )
        return success_response(checkout, "Payment order created", status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["get"], url_path="payment-status")
    def payment_status(self, request, pk=None):  # type: ignore
        return success_response(services.payment_status(self.get_object()))

    @action(detail=True, methods=["get"])
    def receipt(self, request, pk=None):  # type: ignore
        return success_response(services.booking_receipt(self.get_object()))
