"""
Queues app serializers.

Query-parameter validation and response shapes for the work-queue
dashboards.  Rows are plain dicts built by ``WorkQueueService``.
"""

from __future__ import annotations

from rest_framework import serializers

from cases.models import CasePriority
from cases.registry import CATEGORY_CHOICES

from .services import ROW_FIELDS


class QueueQuerySerializer(serializers.Serializer):
    """Search / filter / sort / page parameters shared by every queue."""

    search = serializers.CharField(required=False, allow_blank=True, max_length=255)
    category = serializers.ChoiceField(choices=CATEGORY_CHOICES, required=False)
    status = serializers.CharField(required=False, max_length=30)
    priority = serializers.ChoiceField(choices=CasePriority.choices, required=False)
    assigned_to = serializers.CharField(required=False, max_length=255)
    sla_state = serializers.ChoiceField(
        choices=["onTime", "nearBreach", "breached"],
        required=False,
    )
    sort_by = serializers.ChoiceField(choices=list(ROW_FIELDS), required=False)
    descending = serializers.BooleanField(required=False, default=False)
    page = serializers.IntegerField(required=False, default=1, min_value=1)
    page_size = serializers.IntegerField(required=False, min_value=1, max_value=200)
    now = serializers.DateTimeField(required=False)

    def filters(self) -> dict:
        data = self.validated_data
        return {
            field: data[field]
            for field in ("category", "status", "priority", "assigned_to", "sla_state")
            if field in data
        }


class QueueRowSerializer(serializers.Serializer):
    id = serializers.CharField()
    category = serializers.CharField()
    category_label = serializers.CharField()
    title = serializers.CharField()
    applicant = serializers.CharField()
    status = serializers.CharField()
    priority = serializers.CharField(allow_null=True)
    assigned_to = serializers.CharField()
    created_at = serializers.DateTimeField()
    age_days = serializers.IntegerField()
    sla_due_at = serializers.DateTimeField(allow_null=True)
    sla_state = serializers.CharField(allow_null=True)
    awaiting_stage = serializers.IntegerField(allow_null=True)


class QueuePageSerializer(serializers.Serializer):
    count = serializers.IntegerField()
    page = serializers.IntegerField()
    page_size = serializers.IntegerField()
    total_pages = serializers.IntegerField()
    results = QueueRowSerializer(many=True)


class ApprovalSummaryItemSerializer(serializers.Serializer):
    category = serializers.CharField()
    label = serializers.CharField()
    count = serializers.IntegerField()
    worst_sla_state = serializers.CharField(allow_null=True)


class ApprovalsPageSerializer(QueuePageSerializer):
    summary = ApprovalSummaryItemSerializer(many=True)


class SlaSummarySerializer(serializers.Serializer):
    total = serializers.IntegerField()
    on_time = serializers.IntegerField()
    near_breach = serializers.IntegerField()
    breached = serializers.IntegerField()
    compliance = serializers.FloatField(help_text="Percentage of SLA cases not breached.")
    target = serializers.IntegerField()
    meets_target = serializers.BooleanField()


class WorkloadSerializer(serializers.Serializer):
    assignee = serializers.CharField()
    open_cases = serializers.IntegerField()


class VerificationStatsSerializer(serializers.Serializer):
    total = serializers.IntegerField()
    pending_stage1 = serializers.IntegerField()
    pending_stage2 = serializers.IntegerField()
    verified = serializers.IntegerField()
    rejected = serializers.IntegerField()
