"""Favorite venue routes, mounted at ``/api/v1/favorites/``."""

from rest_framework.routers import DefaultRouter  # type: ignore

from .views import FavoriteViewSet

router = DefaultRouter()
router.include_root_view = False
router.register(r'', FavoriteViewSet, basename='favorite')

urlpatterns = router.urls
