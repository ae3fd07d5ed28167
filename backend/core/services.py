"""
Core app Service Layer.

Read-side helpers behind the ``/api/core/`` endpoints:

- ``SystemConstantsService``   — enumerations for frontend dropdowns.
- ``NotificationInboxService`` — list / mark-as-read for one user.

Notification *creation* lives in ``core.domain.notifications`` because
it is a side effect of the case commands, not of a request.
"""

from __future__ import annotations

import logging
from typing import Any

from django.db.models import QuerySet

from core.constants import ROUTING_PRIORITIES, SLA_HOURS
from core.domain.transactions import get_or_not_found

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  System Constants Service
# ═══════════════════════════════════════════════════════════════════


class SystemConstantsService:
    """
    Gathers the category registry, priorities, departments and roles
    into a single dict for the frontend.

    This service is **stateless** — it does not depend on the requesting
    user.
    """

    @staticmethod
    def get_constants() -> dict[str, Any]:
        """Return all system constants as a dict."""
        from accounts.models import Role
        from cases.models import CasePriority
        from cases.registry import all_workflows
        from cases.services import CaseAssignmentService

        to_list = SystemConstantsService._choices_to_list

        categories = [
            {
                "value": workflow.category,
                "label": workflow.label,
                "prefix": workflow.prefix,
                "sla_bearing": workflow.sla_bearing,
                "initial_status": workflow.initial_status,
                "statuses": list(workflow.statuses),
                "terminal_statuses": sorted(workflow.terminal_statuses),
            }
            for workflow in all_workflows()
        ]
        priorities = [
            {"value": value, "label": str(label), "sla_hours": SLA_HOURS[value]}
            for value, label in CasePriority.choices
        ]
        departments = [
            {
                "id": entry["id"],
                "name": entry["name"],
                "code": entry["code"],
                "officers": list(entry["officers"]),
            }
            for entry in CaseAssignmentService.department_directory()
        ]

        return {
            "categories": categories,
            "priorities": priorities,
            "routing_priorities": [
                {"value": value, "label": value.title()} for value in ROUTING_PRIORITIES
            ],
            "departments": departments,
            "roles": to_list(Role),
        }

    @staticmethod
    def _choices_to_list(choices_class: type) -> list[dict[str, str]]:
        """
        Convert a Django ``TextChoices`` class to a list of
        ``{"value": ..., "label": ...}`` dicts.
        """
        return [
            {"value": str(value), "label": str(label)}
            for value, label in choices_class.choices
        ]


# ═══════════════════════════════════════════════════════════════════
#  Notification Inbox Service
# ═══════════════════════════════════════════════════════════════════


class NotificationInboxService:
    """
    Handles listing and marking notifications as read for a given user.

    Notifications are addressed to actor references, so a user's inbox
    is the union of their id, display name, username and department.
    """

    def __init__(self, user: Any) -> None:
        self.user = user

    def addresses(self) -> set[str]:
        user = self.user
        candidates = {
            str(user.pk),
            user.get_full_name(),
            user.username,
            getattr(user, "department", ""),
        }
        return {c for c in candidates if c}

    def list_notifications(self, unread_only: bool = False) -> QuerySet:
        """Return the user's notifications, most recent first."""
        from core.models import Notification

        qs = (
            Notification.objects
            .filter(recipient__in=self.addresses())
            .select_related("content_type")
            .order_by("-created_at", "-id")
        )
        if unread_only:
            qs = qs.filter(is_read=False)
        return qs

    def mark_as_read(self, notification_id: int) -> Any:
        """
        Mark a single notification as read.

        Raises:
            NotFound: The notification does not exist or is addressed to
                      someone else.
        """
        from core.models import Notification

        notification = get_or_not_found(
            Notification,
            f"Notification {notification_id} not found.",
            pk=notification_id,
            recipient__in=self.addresses(),
        )
        if not notification.is_read:
            notification.is_read = True
            notification.save(update_fields=["is_read", "updated_at"])
            logger.debug("Notification %s marked read by %s", notification.pk, self.user)
        return notification
