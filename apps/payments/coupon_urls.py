"""URL routing for coupons, mounted at ``/api/v1/coupons/``."""

from django.urls import include, path  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import CouponViewSet

router = DefaultRouter()
router.register(r'', CouponViewSet, basename='coupon')

urlpatterns = [path('', include(router.urls))]
