"""API views for managing reviews."""

from __future__ import annotations

from django.db.models import Q  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.generics import ListAPIView  # type: ignore

from apps.core.permissions import IsAdminRole, IsFacilityOwnerRole, is_admin
from apps.core.responses import success_response
from apps.facilities.views import int_param

from . import services
from .models import Review
from .serializers import (
    BulkApproveSerializer,
    FlagSerializer,
    ModerationReviewSerializer,
    OwnerResponseSerializer,
    RejectSerializer,
    ReviewCreateSerializer,
    ReviewSerializer,
    ReviewUpdateSerializer,
)

ADMIN_ACTIONS = {"pending", "flagged", "approve", "reject", "bulk_approve", "analytics"}


class ReviewViewSet(
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """Write, read, respond to, vote on, flag and moderate reviews."""

    serializer_class = ReviewSerializer
    permission_classes = [permissions.IsAuthenticatedOrReadOnly]

    def get_permissions(self):  # type: ignore
        if self.action in ADMIN_ACTIONS:
            return [IsAdminRole()]
        if self.action == "owner_summary":
            return [IsFacilityOwnerRole()]
        return super().get_permissions()

    def get_queryset(self):  # type: ignore
        qs = Review.objects.select_related("user", "facility", "flagged_by")
        user = self.request.user
        if is_admin(user):
            return qs
        if not user.is_authenticated:
            return qs.filter(is_approved=True)
        return qs.filter(Q(is_approved=True) | Q(user=user) | Q(facility__owner=user))

    def _page(self, queryset, serializer_class=ReviewSerializer):
        page = self.paginate_queryset(queryset)
        return self.get_paginated_response(serializer_class(page, many=True).data)

    def retrieve(self, request, *args, **kwargs):  # type: ignore
        return success_response(ReviewSerializer(self.get_object()).data)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = ReviewCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        review = services.create_review(request.user, **serializer.validated_data)
        message = "Review published" if review.is_approved else "Review submitted for moderation"
        return success_response(ReviewSerializer(review).data, message, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):  # type: ignore
        review = self.get_object()
        serializer = ReviewUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        review = services.update_review(review, request.user, serializer.validated_data)
        return success_response(ReviewSerializer(review).data, "Review updated")

    def destroy(self, request, *args, **kwargs):  # type: ignore
        services.delete_review(self.get_object(), request.user)
        return success_response(message="Review deleted")

    @action(
        detail=True,
        methods=["post", "put", "delete"],
        url_path="response",
        permission_classes=[permissions.IsAuthenticated],
    )
    def owner_response(self, request, pk=None):  # type: ignore
        review = self.get_object()
        if request.method == "DELETE":
            review = services.delete_owner_response(review, request.user)
            return success_response(ReviewSerializer(review).data, "Response removed")
        serializer = OwnerResponseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        review = services.set_owner_response(review, request.user, serializer.validated_data["response"])
        return success_response(ReviewSerializer(review).data, "Response saved")

    @action(detail=True, methods=["post", "delete"], permission_classes=[permissions.IsAuthenticated])
    def helpful(self, request, pk=None):  # type: ignore
        review = self.get_object()
        if request.method == "DELETE":
            count = services.remove_helpful_vote(review, request.user)
            return success_response({"helpful_count": count}, "Vote removed")
        count = services.vote_helpful(review, request.user)
        return success_response({"helpful_count": count}, "Marked as helpful")

    @action(detail=True, methods=["post"], permission_classes=[permissions.IsAuthenticated])
    def flag(self, request, pk=None):  # type: ignore
        serializer = FlagSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        services.flag_review(self.get_object(), request.user, serializer.validated_data["reason"])
        return success_response(message="Review flagged for moderation")

    @action(detail=False, methods=["get"])
    def pending(self, request):  # type: ignore
        return self._page(services.pending_reviews(), ModerationReviewSerializer)

    @action(detail=False, methods=["get"])
    def flagged(self, request):  # type: ignore
        return self._page(services.flagged_reviews(), ModerationReviewSerializer)

    @action(detail=True, methods=["post"])
    def approve(self, request, pk=None):  # type: ignore
        review = services.approve_review(self.get_object(), request.user)
        return success_response(ModerationReviewSerializer(review).data, "Review approved")

    @action(detail=True, methods=["post"])
    def reject(self, request, pk=None):  # type: ignore
        serializer = RejectSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        services.reject_review(self.get_object(), request.user, serializer.validated_data.get("reason", ""))
        return success_response(message="Review rejected and removed")

    @action(detail=False, methods=["post"], url_path="bulk-approve")
    def bulk_approve(self, request):  # type: ignore
        serializer = BulkApproveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        approved = services.bulk_approve(serializer.validated_data["review_ids"], request.user)
        return success_response({"approved": approved}, f"{approved} reviews approved")

    @action(detail=False, methods=["get"])
    def analytics(self, request):  # type: ignore
        return success_response(services.review_analytics())

    @action(detail=False, methods=["get"], url_path="top-rated", permission_classes=[permissions.AllowAny])
    def top_rated(self, request):  # type: ignore
        venues = services.top_rated_facilities(
            limit=int_param(request, "limit", 10, 1, 50),
            min_reviews=int_param(request, "min_reviews", services.DEFAULT_MIN_REVIEWS, 1, 1000),
            city=request.query_params.get("city"),
        )
        return success_response({"venues": venues})

    @action(detail=False, methods=["get"], url_path="owner-summary")
    def owner_summary(self, request):  # type: ignore
        return success_response(services.owner_review_summary(request.user))


class MyReviewsView(ListAPIView):
    """``/users/me/reviews/``: the user's review history with stats."""

    serializer_class = ReviewSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):  # type: ignore
        return Review.objects.filter(user=self.request.user).select_related("user", "facility")

    def list(self, request, *args, **kwargs):  # type: ignore
        response = super().list(request, *args, **kwargs)
        response.data["data"]["stats"] = services.user_review_stats(request.user)
        return response
