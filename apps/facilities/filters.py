"""FilterSet definitions for facility search and listing."""

from __future__ import annotations

import django_filters  # type: ignore
from django.db.models import Count, Q  # type: ignore

from .models import Court, Facility


class FacilityFilterSet(django_filters.FilterSet):
    """Query-string filters shared by the facility list and search endpoints."""

    q = django_filters.CharFilter(method="filter_text")
    city = django_filters.CharFilter(field_name="city", lookup_expr="icontains")
    state = django_filters.CharFilter(field_name="state", lookup_expr="icontains")
    sport_type = django_filters.ChoiceFilter(choices=Court.SportType.choices, method="filter_sport")
    min_price = django_filters.NumberFilter(method="filter_min_price")
    max_price = django_filters.NumberFilter(method="filter_max_price")
    status = django_filters.ChoiceFilter(choices=Facility.Status.choices)

    # CSV of amenity ids, requires all selected amenities
    amenities = django_filters.CharFilter(method="filter_amenities")

    class Meta:
        model = Facility
        fields = ["city", "state", "status"]

    def filter_text(self, queryset, name, value):  # type: ignore
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(name__icontains=value)
            | Q(description__icontains=value)
            | Q(city__icontains=value)
            | Q(address__icontains=value)
        )

    def filter_sport(self, queryset, name, value):  # type: ignore
        return queryset.filter(courts__sport_type=value, courts__is_active=True).distinct()

    def filter_min_price(self, queryset, name, value):  # type: ignore
        return queryset.filter(courts__price_per_hour__gte=value, courts__is_active=True).distinct()

    def filter_max_price(self, queryset, name, value):  # type: ignore
        return queryset.filter(courts__price_per_hour__lte=value, courts__is_active=True).distinct()

    def filter_amenities(self, queryset, name, value):  # type: ignore
        if not value:
            return queryset
        try:
            ids = [int(x) for x in str(value).replace(" ", "").split(",") if x]
        except ValueError:
            return queryset
        if not ids:
            return queryset
        # Require all of the amenities: annotate count of matched amenities
        matching = (
            Facility.objects.filter(amenities__id__in=ids)
            .annotate(matched_amenities=Count("amenities", filter=Q(amenities__id__in=ids), distinct=True))
            .filter(matched_amenities=len(set(ids)))
            .values("pk")
        )
        return queryset.filter(pk__in=matching)
