"""API views for user reports and the admin console."""

from __future__ import annotations

from django.contrib.auth import get_user_model  # type: ignore
from django.db.models import Count  # type: ignore
from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.filters import OrderingFilter  # type: ignore

from apps.bookings.models import Booking
from apps.bookings.serializers import BookingSerializer
from apps.core.permissions import IsAdminRole
from apps.core.responses import success_response
from apps.facilities.models import Court, Facility
from apps.payments.models import Payment
from apps.payments.serializers import PaymentSerializer

from . import services
from .filters import (
    AdminBookingFilterSet,
    AdminCourtFilterSet,
    AdminPaymentFilterSet,
    AdminUserFilterSet,
    ReportFilterSet,
)
from .models import Report
from .serializers import (
    AdminCourtSerializer,
    AdminUserSerializer,
    BanSerializer,
    PendingVenueSerializer,
    ReportCreateSerializer,
    ReportSerializer,
    ReportUpdateSerializer,
    RoleChangeSerializer,
    VenueDecisionSerializer,
    VerifySerializer,
)

User = get_user_model()


class ReportViewSet(mixins.CreateModelMixin, mixins.ListModelMixin, viewsets.GenericViewSet):
    """``/reports/``: file a report and list the reports you filed."""

    serializer_class = ReportSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):  # type: ignore
        qs = Report.objects.filter(reporter=self.request.user).select_related("reporter", "resolved_by")
        wanted = self.request.query_params.get("status")
        if wanted in Report.Status.values:
            qs = qs.filter(status=wanted)
        return qs

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = ReportCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        report = services.submit_report(request.user, serializer.validated_data)
        return success_response(
            ReportSerializer(report).data,
            "Report submitted successfully. We will review it shortly.",
            status=status.HTTP_201_CREATED,
        )


# ============================================================================
# ADMIN CONSOLE
# ============================================================================

class AdminReportViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    serializer_class = ReportSerializer
    permission_classes = [IsAdminRole]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = ReportFilterSet
    ordering_fields = ["created_at", "priority", "status"]
    queryset = Report.objects.select_related("reporter", "resolved_by")

    def list(self, request, *args, **kwargs):  # type: ignore
        response = super().list(request, *args, **kwargs)
        response.data["data"]["stats"] = services.report_stats()
        return response

    def retrieve(self, request, *args, **kwargs):  # type: ignore
        return success_response(ReportSerializer(self.get_object()).data)

    def partial_update(self, request, *args, **kwargs):  # type: ignore
        serializer = ReportUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        report = services.update_report(
            self.get_object(),
            request.user,
            serializer.validated_data["status"],
            serializer.validated_data.get("admin_notes"),
        )
        return success_response(ReportSerializer(report).data, "Report updated")


class VenueApprovalViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """Queue of venues awaiting approval, oldest first unless ``?order=newest``."""

    serializer_class = PendingVenueSerializer
    permission_classes = [IsAdminRole]
    queryset = Facility.objects.all()

    def get_queryset(self):  # type: ignore
        if self.action == "list":
            return services.pending_venues(self.request.query_params.get("order", "oldest"))
        return Facility.objects.select_related("owner")

    def list(self, request, *args, **kwargs):  # type: ignore
        response = super().list(request, *args, **kwargs)
        response.data["data"]["stats"] = services.approval_stats()
        return response

    @action(detail=True, methods=["post"])
    def approve(self, request, pk=None):  # type: ignore
        serializer = VenueDecisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        facility = services.approve_venue(self.get_object(), request.user, serializer.validated_data.get("admin_note", ""))
        return success_response({"id": facility.pk, "status": facility.status}, "Venue approved")

    @action(detail=True, methods=["post"])
    def reject(self, request, pk=None):  # type: ignore
        serializer = VenueDecisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        facility = services.reject_venue(self.get_object(), request.user, serializer.validated_data.get("admin_note", ""))
        return success_response(
            {"id": facility.pk, "status": facility.status, "admin_note": facility.admin_note},
            "Venue rejected",
        )


class AdminUserViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    serializer_class = AdminUserSerializer
    permission_classes = [IsAdminRole]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = AdminUserFilterSet
    ordering_fields = ["created_at", "name", "email"]
    queryset = User.objects.all()

    def retrieve(self, request, *args, **kwargs):  # type: ignore
        user = self.get_object()
        data = AdminUserSerializer(user).data
        data["activity"] = services.user_activity(user)
        return success_response(data)

    @action(detail=True, methods=["put", "patch"])
    def role(self, request, pk=None):  # type: ignore
        serializer = RoleChangeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = services.change_role(self.get_object(), request.user, serializer.validated_data["role"])
        return success_response(AdminUserSerializer(user).data, "Role updated")

    @action(detail=True, methods=["post"])
    def ban(self, request, pk=None):  # type: ignore
        serializer = BanSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = services.ban_user(self.get_object(), request.user, serializer.validated_data.get("reason", ""))
        data = AdminUserSerializer(result["user"]).data
        data["cancelled_bookings"] = result["cancelled_bookings"]
        return success_response(data, "User has been banned")

    @action(detail=True, methods=["post"])
    def unban(self, request, pk=None):  # type: ignore
        user = services.unban_user(self.get_object(), request.user)
        return success_response(AdminUserSerializer(user).data, "User has been unbanned")

    @action(detail=True, methods=["post"])
    def verify(self, request, pk=None):  # type: ignore
        serializer = VerifySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = services.set_verified(self.get_object(), request.user, serializer.validated_data["is_verified"])
        return success_response(AdminUserSerializer(user).data, "Verification updated")


class AdminBookingViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    serializer_class = BookingSerializer
    permission_classes = [IsAdminRole]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = AdminBookingFilterSet
    ordering_fields = ["booking_date", "created_at", "total_amount"]
    queryset = Booking.objects.select_related("user", "court", "court__facility").order_by("-created_at")

    def retrieve(self, request, *args, **kwargs):  # type: ignore
        booking = self.get_object()
        data = BookingSerializer(booking).data
        data["payments"] = PaymentSerializer(booking.payments.prefetch_related("refunds"), many=True).data
        return success_response(data)


class AdminCourtViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    serializer_class = AdminCourtSerializer
    permission_classes = [IsAdminRole]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = AdminCourtFilterSet
    ordering_fields = ["name", "price_per_hour", "created_at", "booking_count"]
    queryset = (
        Court.objects.select_related("facility", "facility__owner")
        .annotate(booking_count=Count("bookings"))
        .order_by("facility_id", "name")
    )


class AdminPaymentViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    serializer_class = PaymentSerializer
    permission_classes = [IsAdminRole]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = AdminPaymentFilterSet
    ordering_fields = ["created_at", "total_amount"]
    queryset = (
        Payment.objects.select_related("user", "booking", "booking__court", "booking__court__facility", "coupon")
        .prefetch_related("refunds")
        .order_by("-created_at")
    )

    def retrieve(self, request, *args, **kwargs):  # type: ignore
        return success_response(PaymentSerializer(self.get_object()).data)
