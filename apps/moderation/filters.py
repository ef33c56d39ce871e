"""FilterSets for the admin console listings."""

from __future__ import annotations

import django_filters  # type: ignore
from django.contrib.auth import get_user_model  # type: ignore
from django.db.models import Q  # type: ignore

from apps.bookings.models import Booking
from apps.facilities.models import Court
from apps.payments.models import Payment

from .models import Report

User = get_user_model()


class ReportFilterSet(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=Report.Status.choices)
    priority = django_filters.ChoiceFilter(choices=Report.Priority.choices)
    type = django_filters.ChoiceFilter(choices=Report.Type.choices)
    category = django_filters.ChoiceFilter(choices=Report.Category.choices)

    class Meta:
        model = Report
        fields = ["status", "priority", "type", "category"]


class AdminUserFilterSet(django_filters.FilterSet):
    role = django_filters.ChoiceFilter(choices=User.Role.choices)
    is_active = django_filters.BooleanFilter()
    is_banned = django_filters.BooleanFilter()
    is_verified = django_filters.BooleanFilter()
    search = django_filters.CharFilter(method="filter_search")

    class Meta:
        model = User
        fields = ["role", "is_active", "is_banned", "is_verified"]

    def filter_search(self, queryset, name, value):  # type: ignore
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(Q(name__icontains=value) | Q(email__icontains=value) | Q(phone__icontains=value))


class AdminBookingFilterSet(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=Booking.Status.choices)
    date_from = django_filters.DateFilter(field_name="booking_date", lookup_expr="gte")
    date_to = django_filters.DateFilter(field_name="booking_date", lookup_expr="lte")
    facility = django_filters.NumberFilter(field_name="court__facility_id")
    user = django_filters.NumberFilter(field_name="user_id")
    search = django_filters.CharFilter(method="filter_search")

    class Meta:
        model = Booking
        fields = ["status"]

    def filter_search(self, queryset, name, value):  # type: ignore
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(user__name__icontains=value)
            | Q(user__email__icontains=value)
            | Q(court__name__icontains=value)
            | Q(court__facility__name__icontains=value)
        )


class AdminCourtFilterSet(django_filters.FilterSet):
    sport_type = django_filters.ChoiceFilter(choices=Court.SportType.choices)
    is_active = django_filters.BooleanFilter()
    facility = django_filters.NumberFilter(field_name="facility_id")
    search = django_filters.CharFilter(method="filter_search")

    class Meta:
        model = Court
        fields = ["sport_type", "is_active"]

    def filter_search(self, queryset, name, value):  # type: ignore
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(Q(name__icontains=value) | Q(facility__name__icontains=value))


class AdminPaymentFilterSet(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=Payment.Status.choices)
    method = django_filters.ChoiceFilter(choices=Payment.Method.choices)
    date_from = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    date_to = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")
    search = django_filters.CharFilter(method="filter_search")

    class Meta:
        model = Payment
        fields = ["status", "method"]

    def filter_search(self, queryset, name, value):  # type: ignore
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(user__email__icontains=value)
            | Q(gateway_order_id__icontains=value)
            | Q(gateway_payment_id__icontains=value)
        )
