"""
Cases app serializers.

Contains all Request and Response serializers for the Cases API.
Serializers handle field definitions, read/write constraints, and field-level
validation only.  **No business logic, transition rules or SLA math live
here** — those belong in ``services.py``, ``registry.py`` and ``sla.py``.

Structure
---------
1. Filter / query-param serializers
2. Case read serializers (list, detail, SLA, timeline, routing)
3. Case write serializers (create)
4. Command serializers (transition, assignment, routing)
"""

from __future__ import annotations

from typing import Any

from django.utils import timezone
from rest_framework import serializers

from core.constants import DEPARTMENTS
from verification.serializers import VerificationCaseSerializer

from .models import AssigneeKind, Case, CasePriority, RoutingPriority, RoutingRecord, TimelineEvent
from .registry import CATEGORY_CHOICES
from .services import CaseQueryService


# ═══════════════════════════════════════════════════════════════════
#  1. Filter / Query-Parameter Serializers
# ═══════════════════════════════════════════════════════════════════


class CaseFilterSerializer(serializers.Serializer):
    """
    Validates and cleans query-parameter filters for ``GET /api/cases/``.

    All fields are optional.  ``status`` is checked against the category's
    vocabulary by the service when ``category`` is given.
    """

    category = serializers.ChoiceField(choices=CATEGORY_CHOICES, required=False)
    status = serializers.CharField(required=False, max_length=30)
    priority = serializers.ChoiceField(choices=CasePriority.choices, required=False)
    assigned_to = serializers.CharField(required=False, max_length=255)
    district = serializers.CharField(required=False, max_length=100)
    open_only = serializers.BooleanField(
        required=False,
        default=False,
        help_text="Hide cases in a terminal status of their category.",
    )
    search = serializers.CharField(
        required=False,
        max_length=255,
        help_text="Free-text match on case id, title and applicant.",
    )


class SlaQuerySerializer(serializers.Serializer):
    now = serializers.DateTimeField(
        required=False,
        help_text="Evaluate the SLA at this instant (ISO 8601). Defaults to the server clock.",
    )


# ═══════════════════════════════════════════════════════════════════
#  2. Read Serializers
# ═══════════════════════════════════════════════════════════════════


class SlaSnapshotSerializer(serializers.Serializer):
    """Serialises ``cases.sla.SlaSnapshot``."""

    applicable = serializers.SerializerMethodField()
    priority = serializers.CharField()
    due_at = serializers.DateTimeField()
    state = serializers.CharField()
    remaining_seconds = serializers.SerializerMethodField()
    overdue_seconds = serializers.SerializerMethodField()
    frozen = serializers.BooleanField()

    def get_applicable(self, obj) -> bool:
        return True

    def get_remaining_seconds(self, obj) -> int:
        return int(obj.remaining.total_seconds())

    def get_overdue_seconds(self, obj) -> int:
        return int(obj.overdue_by.total_seconds())


def serialize_sla(snapshot) -> dict[str, Any]:
    if snapshot is None:
        return {"applicable": False}
    return SlaSnapshotSerializer(snapshot).data


class TimelineEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = TimelineEvent
        fields = ["id", "timestamp", "actor", "actor_id", "action", "detail", "kind"]
        read_only_fields = fields


class RoutingRecordSerializer(serializers.ModelSerializer):
    class Meta:
        model = RoutingRecord
        fields = [
            "id",
            "department",
            "department_code",
            "officer",
            "memo",
            "priority",
            "expected_date",
            "outward_number",
            "routed_by",
            "routed_at",
        ]
        read_only_fields = fields


class CaseListSerializer(serializers.ModelSerializer):
    """Compact representation for list endpoints."""

    category_label = serializers.CharField(source="get_category_display", read_only=True)
    sla = serializers.SerializerMethodField()

    class Meta:
        model = Case
        fields = [
            "id",
            "category",
            "category_label",
            "title",
            "applicant",
            "status",
            "priority",
            "assigned_to",
            "created_at",
            "version",
            "sla",
        ]
        read_only_fields = fields

    def get_sla(self, obj: Case) -> dict[str, Any]:
        return serialize_sla(CaseQueryService.sla_for(obj, self.context.get("now")))


class CaseDetailSerializer(CaseListSerializer):
    """
    Full case representation including the timeline, routing history,
    verification state and the legal next statuses.
    """

    timeline = TimelineEventSerializer(many=True, read_only=True)
    routings = RoutingRecordSerializer(many=True, read_only=True)
    verification = serializers.SerializerMethodField()
    next_statuses = serializers.SerializerMethodField()
    is_terminal = serializers.BooleanField(read_only=True)

    class Meta(CaseListSerializer.Meta):
        fields = CaseListSerializer.Meta.fields + [
            "description",
            "district",
            "details",
            "assigned_to_kind",
            "created_by",
            "updated_at",
            "closed_at",
            "is_terminal",
            "next_statuses",
            "verification",
            "routings",
            "timeline",
        ]
        read_only_fields = fields

    def get_verification(self, obj: Case) -> dict[str, Any] | None:
        verification = getattr(obj, "verification", None)
        if verification is None:
            return None
        return VerificationCaseSerializer(verification).data

    def get_next_statuses(self, obj: Case) -> list[str]:
        return list(obj.workflow.next_statuses(obj.status))


# ═══════════════════════════════════════════════════════════════════
#  3. Write Serializers
# ═══════════════════════════════════════════════════════════════════


class CaseCreateSerializer(serializers.Serializer):
    """
    Request body for ``POST /api/cases/``.

    ``priority`` only applies to SLA-bearing categories (Grievance,
    CMRelief, Dispute, EducationSupport); the service rejects it elsewhere.
    ``details`` carries category-specific intake fields.
    """

    category = serializers.ChoiceField(choices=CATEGORY_CHOICES)
    title = serializers.CharField(max_length=255)
    applicant = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    description = serializers.CharField(required=False, allow_blank=True, default="")
    district = serializers.CharField(
        max_length=100,
        required=False,
        allow_blank=True,
        default="",
        help_text="District name, e.g. 'SPSR Nellore'. Encoded into the case id.",
    )
    priority = serializers.ChoiceField(choices=CasePriority.choices, required=False, allow_null=True)
    details = serializers.DictField(required=False, default=dict)


# ═══════════════════════════════════════════════════════════════════
#  4. Command Serializers
# ═══════════════════════════════════════════════════════════════════


class VersionedCommandSerializer(serializers.Serializer):
    version = serializers.IntegerField(
        required=False,
        min_value=1,
        help_text="Case version the client last read; a mismatch yields 409.",
    )


class CaseTransitionSerializer(VersionedCommandSerializer):
    """Request body for ``POST /api/cases/{id}/transition/``."""

    target_status = serializers.CharField(max_length=30, help_text="Next status in the category's graph.")
    message = serializers.CharField(required=False, allow_blank=True, default="", max_length=2000)


class BulkTransitionItemSerializer(VersionedCommandSerializer):
    case_id = serializers.CharField(max_length=32)
    target_status = serializers.CharField(max_length=30)


class BulkTransitionSerializer(serializers.Serializer):
    """Request body for ``POST /api/cases/bulk-transition/``."""

    items = BulkTransitionItemSerializer(many=True, allow_empty=False)
    message = serializers.CharField(required=False, allow_blank=True, default="", max_length=2000)


class AssignCaseSerializer(VersionedCommandSerializer):
    """Request body for ``POST /api/cases/{id}/assign/``."""

    assignee = serializers.CharField(max_length=255, help_text="Officer name or department id.")
    kind = serializers.ChoiceField(choices=AssigneeKind.choices, default=AssigneeKind.OFFICER)
    notes = serializers.CharField(required=False, allow_blank=True, default="", max_length=2000)


class RouteCaseSerializer(VersionedCommandSerializer):
    """Request body for ``POST /api/cases/{id}/route/``."""

    department = serializers.ChoiceField(choices=[(key, d["name"]) for key, d in DEPARTMENTS.items()])
    officer = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    memo = serializers.CharField(required=False, allow_blank=True, default="")
    priority = serializers.ChoiceField(choices=RoutingPriority.choices, default=RoutingPriority.NORMAL)
    expected_date = serializers.DateField(required=False, allow_null=True)

    def validate_expected_date(self, value):
        if value is not None and value < timezone.localdate():
            raise serializers.ValidationError("The expected response date cannot be in the past.")
        return value
