"""Facility, court and catalog search API views."""

from __future__ import annotations

from datetime import date

from django.utils.dateparse import parse_date  # type: ignore
from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from rest_framework import mixins, permissions, serializers, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.filters import OrderingFilter  # type: ignore

from apps.core.pagination import paginate_list
from apps.core.permissions import IsAdminRole, IsFacilityOwnerRole, is_admin
from apps.core.responses import success_response

from . import services
from .filters import FacilityFilterSet
from .models import Amenity, Court, Facility
from .serializers import (
    AmenitySerializer,
    AvailableSearchQuerySerializer,
    BlockSlotsSerializer,
    CourtSerializer,
    FacilitySerializer,
    FacilityWriteSerializer,
    NearbyQuerySerializer,
    SearchQuerySerializer,
    TimeSlotSerializer,
    UnblockSlotsSerializer,
)


def query_date(request, name: str = "date", *, required: bool = True) -> date | None:
    raw = request.query_params.get(name)
    if not raw:
        if required:
            raise serializers.ValidationError({name: "This query parameter is required (YYYY-MM-DD)."})
        return None
    try:
        value = parse_date(raw)
    except ValueError:
        value = None
    if value is None:
        raise serializers.ValidationError({name: "Invalid date, expected YYYY-MM-DD."})
    return value


def int_param(request, name: str, default: int, low: int, high: int) -> int:
    try:
        value = int(request.query_params.get(name) or default)
    except ValueError:
        value = default
    return min(high, max(low, value))


class FacilityViewSet(viewsets.ModelViewSet):
    """Venue CRUD plus the public catalog endpoints."""

    permission_classes = [permissions.IsAuthenticatedOrReadOnly]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = FacilityFilterSet
    ordering_fields = ["name", "city", "created_at"]

    def get_permissions(self):  # type: ignore
        if self.action == "create":
            return [IsFacilityOwnerRole()]
        return super().get_permissions()

    def get_queryset(self):  # type: ignore
        user = self.request.user
        if self.action == "list":
            if self.request.query_params.get("mine") in {"true", "1"} and user.is_authenticated:
                qs = Facility.objects.filter(owner=user)
            elif is_admin(user) and self.request.query_params.get("status"):
                qs = Facility.objects.all()
            else:
                qs = services.approved_facilities()
        else:
            qs = services.facility_visible_to(user)
        return services.with_listing_relations(qs)

    def get_serializer_class(self):  # type: ignore
        if self.action in {"create", "update", "partial_update"}:
            return FacilityWriteSerializer
        return FacilitySerializer

    def retrieve(self, request, *args, **kwargs):  # type: ignore
        facility = self.get_object()
        data = FacilitySerializer(facility).data
        avg, total = services.rating_stats([facility.pk]).get(facility.pk, (None, 0))
        data["rating"] = round(avg, 1) if avg else None
        data["review_count"] = total
        return success_response(data)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = FacilityWriteSerializer(data=request.data, context={"request": request})
        serializer.is_valid(raise_exception=True)
        facility = serializer.save()
        return success_response(
            FacilitySerializer(facility).data,
            "Facility submitted for approval",
            status=status.HTTP_201_CREATED,
        )

    def update(self, request, *args, **kwargs):  # type: ignore
        facility = self.get_object()
        services.ensure_can_manage(request.user, facility)
        serializer = FacilityWriteSerializer(
            facility,
            data=request.data,
            partial=kwargs.pop("partial", False),
            context={"request": request},
        )
        serializer.is_valid(raise_exception=True)
        needs_review = services.apply_facility_update(facility, serializer.validated_data)
        facility = serializer.save()
        if needs_review:
            services.set_facility_status(facility, Facility.Status.PENDING)
        message = "Facility updated and resubmitted for approval" if needs_review else "Facility updated"
        return success_response(FacilitySerializer(facility).data, message)

    def destroy(self, request, *args, **kwargs):  # type: ignore
        facility = self.get_object()
        services.ensure_can_manage(request.user, facility)
        facility.delete()
        return success_response(message="Facility deleted")

    @action(detail=True, methods=["get", "post"], url_path="courts")
    def courts(self, request, pk=None):  # type: ignore
        facility = self.get_object()
        if request.method == "GET":
            qs = facility.courts.all()
            if not (is_admin(request.user) or facility.owner_id == request.user.pk):
                qs = qs.filter(is_active=True)
            return success_response(CourtSerializer(qs, many=True).data)

        services.ensure_can_manage(request.user, facility)
        serializer = CourtSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        court = serializer.save(facility=facility)
        return success_response(CourtSerializer(court).data, "Court created", status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["get"], permission_classes=[permissions.AllowAny])
    def similar(self, request, pk=None):  # type: ignore
        facility = self.get_object()
        limit = int_param(request, "limit", 5, 1, 20)
        return success_response({"venues": services.similar_facilities(facility, limit)})

    @action(detail=True, methods=["get"], permission_classes=[permissions.AllowAny])
    def reviews(self, request, pk=None):  # type: ignore
        from apps.reviews import services as review_services
        from apps.reviews.serializers import ReviewSerializer

        facility = self.get_object()
        rating = int_param(request, "rating", 0, 0, 5) or None
        qs = review_services.facility_reviews(facility, request.query_params.get("sort", "recent"), rating)
        page = self.paginate_queryset(qs)
        response = self.get_paginated_response(ReviewSerializer(page, many=True).data)
        response.data["data"]["rating"] = review_services.calculate_venue_rating(facility)
        return response

    @action(detail=True, methods=["get"], permission_classes=[permissions.AllowAny])
    def rating(self, request, pk=None):  # type: ignore
        from apps.reviews.services import calculate_venue_rating

        return success_response(calculate_venue_rating(self.get_object()))

    @action(detail=False, methods=["get"], permission_classes=[permissions.AllowAny])
    def search(self, request):  # type: ignore
        params = SearchQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        filterset = FacilityFilterSet(request.query_params, queryset=services.approved_facilities())
        if not filterset.is_valid():
            raise serializers.ValidationError(filterset.errors)
        cards = services.search_facilities(filterset.qs, **params.validated_data)
        return success_response(
            paginate_list(cards, request.query_params.get("page"), request.query_params.get("limit"))
        )

    @action(
        detail=False,
        methods=["get"],
        url_path="search/available",
        permission_classes=[permissions.AllowAny],
    )
    def search_available(self, request):  # type: ignore
        params = AvailableSearchQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        data = params.validated_data
        filterset = FacilityFilterSet(request.query_params, queryset=services.approved_facilities())
        if not filterset.is_valid():
            raise serializers.ValidationError(filterset.errors)
        cards = services.search_available(
            filterset.qs,
            data["date"],
            start_time=data.get("start_time"),
            end_time=data.get("end_time"),
            sport_type=data.get("sport_type"),
            lat=data.get("lat"),
            lng=data.get("lng"),
            radius=data["radius"],
        )
        return success_response(
            paginate_list(cards, request.query_params.get("page"), request.query_params.get("limit"))
        )

    @action(detail=False, methods=["get"], permission_classes=[permissions.AllowAny])
    def nearby(self, request):  # type: ignore
        params = NearbyQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        venues = services.nearby_facilities(**params.validated_data)
        return success_response({"venues": venues, "total": len(venues)})

    @action(detail=False, methods=["get"], permission_classes=[permissions.AllowAny])
    def trending(self, request):  # type: ignore
        params = request.query_params
        limit = int_param(request, "limit", 10, 1, 50)
        venues = services.trending_facilities(limit, params.get("sport_type"), params.get("city"))
        return success_response({"venues": venues})

    @action(detail=False, methods=["get"], permission_classes=[permissions.AllowAny])
    def cities(self, request):  # type: ignore
        try:
            limit = int(request.query_params.get("limit") or 10)
        except ValueError:
            limit = 0
        if not 1 <= limit <= 50:
            raise serializers.ValidationError({"limit": "Limit must be between 1 and 50."})
        cities = services.featured_cities(limit)
        return success_response({"cities": cities, "total": len(cities)})

    @action(detail=False, methods=["get"], permission_classes=[permissions.AllowAny])
    def filters(self, request):  # type: ignore
        return success_response(services.filter_options(request.query_params.get("city")))

    @action(detail=False, methods=["get"], permission_classes=[permissions.AllowAny])
    def suggestions(self, request):  # type: ignore
        return success_response(services.suggestions(request.query_params.get("q", "")))


class CourtViewSet(
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """Single court management plus availability and slot blocking."""

    serializer_class = CourtSerializer
    permission_classes = [permissions.IsAuthenticatedOrReadOnly]

    def get_queryset(self):  # type: ignore
        qs = Court.objects.select_related("facility")
        user = self.request.user
        if is_admin(user):
            return qs
        visible = qs.filter(is_active=True, facility__status=Facility.Status.APPROVED)
        if user.is_authenticated:
            visible = visible | qs.filter(facility__owner=user)
        return visible

    def retrieve(self, request, *args, **kwargs):  # type: ignore
        return success_response(CourtSerializer(self.get_object()).data)

    def update(self, request, *args, **kwargs):  # type: ignore
        court = self.get_object()
        services.ensure_can_manage(request.user, court.facility)
        serializer = CourtSerializer(court, data=request.data, partial=kwargs.pop("partial", False))
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return success_response(serializer.data, "Court updated")

    def destroy(self, request, *args, **kwargs):  # type: ignore
        court = self.get_object()
        services.ensure_can_manage(request.user, court.facility)
        court.delete()
        return success_response(message="Court deleted")

    @action(detail=True, methods=["get"], permission_classes=[permissions.AllowAny])
    def availability(self, request, pk=None):  # type: ignore
        day = query_date(request)
        return success_response(services.court_availability(pk, day))

    @action(detail=True, methods=["get"], permission_classes=[permissions.AllowAny])
    def timeslots(self, request, pk=None):  # type: ignore
        court = self.get_object()
        day = query_date(request)
        return success_response({"date": day.isoformat(), "slots": services.court_slots(court, day)})

    @action(detail=True, methods=["get", "post", "delete"], url_path="block-slots")
    def block_slots(self, request, pk=None):  # type: ignore
        court = self.get_object()
        services.ensure_can_manage(request.user, court.facility)

        if request.method == "GET":
            slots = services.blocked_slots(
                court,
                query_date(request, "start_date", required=False),
                query_date(request, "end_date", required=False),
            )
            return success_response(TimeSlotSerializer(slots, many=True).data)

        if request.method == "DELETE":
            serializer = UnblockSlotsSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            count = services.unblock_slots(
                court,
                request.user,
                serializer.validated_data["dates"],
                serializer.validated_data.get("time_slots"),
            )
            return success_response({"unblocked": count}, "Slots unblocked")

        serializer = BlockSlotsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = services.block_slots(court, request.user, **serializer.validated_data)
        return success_response(result, "Slots blocked", status=status.HTTP_201_CREATED)


class AmenityViewSet(mixins.ListModelMixin, mixins.CreateModelMixin, viewsets.GenericViewSet):
    queryset = Amenity.objects.all()
    serializer_class = AmenitySerializer
    pagination_class = None

    def get_permissions(self):  # type: ignore
        if self.action == "create":
            return [IsAdminRole()]
        return [permissions.AllowAny()]

    def list(self, request, *args, **kwargs):  # type: ignore
        return success_response(AmenitySerializer(self.get_queryset(), many=True).data)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = AmenitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return success_response(serializer.data, "Amenity created", status=status.HTTP_201_CREATED)
