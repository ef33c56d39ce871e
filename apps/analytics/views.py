"""API views for analytics.

Admin views cover the whole platform, owner views are scoped to the
requesting user's facilities and the public views feed the home page.
"""

from __future__ import annotations

from django.http import HttpResponse  # type: ignore
from django.utils import timezone  # type: ignore
from rest_framework.permissions import AllowAny  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.core.permissions import IsAdminRole, IsFacilityOwnerRole
from apps.core.responses import success_response
from apps.facilities.services import popular_sports
from apps.facilities.views import int_param

from . import services
from .exports import earnings_workbook

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _facility_param(request) -> int | None:
    raw = request.query_params.get("facility")
    return int(raw) if raw and raw.isdigit() else None


# ============================================================================
# ADMIN
# ============================================================================

class OverviewAnalyticsView(APIView):
    """Platform-wide counters for the admin dashboard."""

    permission_classes = [IsAdminRole]

    def get(self, request, format=None):  # type: ignore
        return success_response(services.admin_overview())


class RevenueAnalyticsView(APIView):
    permission_classes = [IsAdminRole]

    def get(self, request, format=None):  # type: ignore
        days = int_param(request, "days", 30, 1, 365)
        return success_response(services.admin_revenue(days))


class SearchAnalyticsView(APIView):
    permission_classes = [IsAdminRole]

    def get(self, request, format=None):  # type: ignore
        return success_response(services.search_analytics())


# ============================================================================
# OWNER
# ============================================================================

class OwnerDashboardView(APIView):
    permission_classes = [IsFacilityOwnerRole]

    def get(self, request, format=None):  # type: ignore
        return success_response(services.owner_dashboard(request.user))


class OwnerEarningsView(APIView):
    permission_classes = [IsFacilityOwnerRole]

    def get(self, request, format=None):  # type: ignore
        days = int_param(request, "days", 365, 1, 3650)
        return success_response(services.owner_earnings(request.user, days, _facility_param(request)))


class OwnerEarningsExportView(APIView):
    """Same figures as ``OwnerEarningsView`` as an XLSX download."""

    permission_classes = [IsFacilityOwnerRole]

    def get(self, request, format=None):  # type: ignore
        days = int_param(request, "days", 365, 1, 3650)
        earnings = services.owner_earnings(request.user, days, _facility_param(request))
        response = HttpResponse(earnings_workbook(earnings, request.user.name), content_type=XLSX_CONTENT_TYPE)
        filename = f"earnings_{timezone.localdate():%Y%m%d}_{days}d.xlsx"
        response["Content-Disposition"] = f'attachment; filename="{filename}"'
        return response


class OwnerCourtAnalyticsView(APIView):
    permission_classes = [IsFacilityOwnerRole]

    def get(self, request, court_id=None, format=None):  # type: ignore
        days = int_param(request, "days", 30, 1, 365)
        if court_id is not None:
            return success_response(services.court_detail_analytics(request.user, court_id, days))
        return success_response(services.owner_court_analytics(request.user, days, _facility_param(request)))


# ============================================================================
# PUBLIC
# ============================================================================

class HomeFeedView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, format=None):  # type: ignore
        return success_response(services.home_feed(request.query_params.get("city")))


class SportListView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, format=None):  # type: ignore
        return success_response({"sports": services.sports_list()})


class PopularSportsView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, format=None):  # type: ignore
        city = request.query_params.get("city")
        return success_response(
            {"sports": popular_sports(city), "city": city or "All Cities"},
            "Popular sports fetched successfully",
        )
