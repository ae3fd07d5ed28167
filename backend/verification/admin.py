from django.contrib import admin

from .models import DocumentReview, VerificationCase


class DocumentReviewInline(admin.TabularInline):
    model = DocumentReview
    fk_name = "verification"
    extra = 0
    can_delete = False
    readonly_fields = ("name", "size", "status", "stage1_reviewer", "stage1_reviewed_at",
                       "stage2_reviewer", "stage2_reviewed_at", "supersedes")


@admin.register(VerificationCase)
class VerificationCaseAdmin(admin.ModelAdmin):
    list_display = ("case", "current_stage", "overall_status",
                    "stage1_completed_at", "stage2_completed_at")
    list_filter = ("overall_status", "current_stage")
    search_fields = ("case__id",)
    inlines = [DocumentReviewInline]
