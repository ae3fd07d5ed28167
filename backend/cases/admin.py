from django.contrib import admin

from .models import Case, RoutingRecord, TimelineEvent


class TimelineEventInline(admin.TabularInline):
    model = TimelineEvent
    extra = 0
    can_delete = False
    readonly_fields = ("timestamp", "actor", "action", "detail", "kind")

    def has_add_permission(self, request, obj=None):
        return False


class RoutingRecordInline(admin.TabularInline):
    model = RoutingRecord
    extra = 0
    can_delete = False
    readonly_fields = ("department", "officer", "priority", "expected_date",
                       "outward_number", "routed_by", "routed_at")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Case)
class CaseAdmin(admin.ModelAdmin):
    list_display = ("id", "category", "title", "status", "priority",
                    "assigned_to", "created_at")
    list_filter = ("category", "status", "priority")
    search_fields = ("id", "title", "applicant")
    readonly_fields = ("id", "category", "status", "version", "closed_at")
    inlines = [RoutingRecordInline, TimelineEventInline]


@admin.register(RoutingRecord)
class RoutingRecordAdmin(admin.ModelAdmin):
    list_display = ("outward_number", "case", "department", "officer",
                    "priority", "routed_at")
    list_filter = ("department", "priority")
    search_fields = ("outward_number", "case__id")
