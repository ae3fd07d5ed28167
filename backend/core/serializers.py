"""
Core app serializers.

Response serializers for the system constants endpoint and the
notification inbox.
"""

from __future__ import annotations

from rest_framework import serializers


# ════════════════════════════════════════════════════════════════════
#  System Constants / Enums
# ════════════════════════════════════════════════════════════════════

class ChoiceItemSerializer(serializers.Serializer):
    """
    A single key-label pair representing one choice/enum option.

    Example::

        {"value": "P1", "label": "P1 - Critical"}
    """

    value = serializers.CharField(
        help_text="Machine-readable value to send in API requests.",
    )
    label = serializers.CharField(
        help_text="Human-readable display label for the UI.",
    )


class CategoryItemSerializer(ChoiceItemSerializer):
    prefix = serializers.CharField(help_text="Case id prefix, e.g. GRV.")
    sla_bearing = serializers.BooleanField()
    initial_status = serializers.CharField()
    statuses = serializers.ListField(child=serializers.CharField())
    terminal_statuses = serializers.ListField(child=serializers.CharField())


class PriorityItemSerializer(ChoiceItemSerializer):
    sla_hours = serializers.IntegerField(help_text="Resolution window in hours.")


class DepartmentItemSerializer(serializers.Serializer):
    id = serializers.CharField()
    name = serializers.CharField()
    code = serializers.CharField(help_text="Initials used in outward numbers, e.g. WSD.")
    officers = serializers.ListField(child=serializers.CharField())


class SystemConstantsSerializer(serializers.Serializer):
    """
    Top-level response serializer for ``GET /api/core/constants/``.

    Response shape::

        {
            "categories": [
                {"value": "Grievance", "label": "Grievance", "prefix": "GRV", ...},
                ...
            ],
            "priorities": [{"value": "P1", "label": "...", "sla_hours": 48}, ...],
            "routing_priorities": [...],
            "departments": [...],
            "roles": [...]
        }
    """

    categories = CategoryItemSerializer(many=True)
    priorities = PriorityItemSerializer(many=True)
    routing_priorities = ChoiceItemSerializer(many=True)
    departments = DepartmentItemSerializer(many=True)
    roles = ChoiceItemSerializer(many=True)


# ════════════════════════════════════════════════════════════════════
#  Notifications
# ════════════════════════════════════════════════════════════════════

class NotificationSerializer(serializers.Serializer):
    """
    Read-only serializer for ``Notification`` instances.
    """

    id = serializers.IntegerField(read_only=True, help_text="Notification PK.")
    event_type = serializers.CharField(read_only=True)
    title = serializers.CharField(
        read_only=True,
        help_text="Short notification title.",
    )
    message = serializers.CharField(
        read_only=True,
        help_text="Full notification message body.",
    )
    is_read = serializers.BooleanField(
        read_only=True,
        help_text="Whether the recipient has marked this notification as read.",
    )
    created_at = serializers.DateTimeField(
        read_only=True,
        help_text="When the notification was created.",
    )
    content_type = serializers.StringRelatedField(
        read_only=True,
        help_text="Related content type (if any).",
    )
    object_id = serializers.CharField(
        read_only=True,
        allow_null=True,
        help_text="PK of the related object (if any), e.g. a case id.",
    )
