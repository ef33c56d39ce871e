from django.contrib import admin  # type: ignore

from .models import Favorite


@admin.register(Favorite)
class FavoriteAdmin(admin.ModelAdmin):
    list_display = ('user', 'facility', 'created_at')
    search_fields = ('user__email', 'facility__name')
