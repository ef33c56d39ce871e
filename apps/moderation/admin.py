"""Admin registration for reports."""

from __future__ import annotations

from django.contrib import admin  # type: ignore

from .models import Report


@admin.register(Report)
class ReportAdmin(admin.ModelAdmin):
    list_display = ("id", "title", "type", "category", "priority", "status", "reporter", "created_at")
    list_filter = ("status", "priority", "type", "category")
    search_fields = ("title", "description", "reporter__email", "target_id")
    readonly_fields = ("created_at", "updated_at", "resolved_at")
