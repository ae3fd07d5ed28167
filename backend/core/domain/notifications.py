"""
core.domain.notifications — After-commit notification side effects.

Centralises notification creation so every command uses one consistent
entry-point rather than directly constructing ``Notification`` objects.

Design decisions
----------------
* **After commit** — ``NotificationService.notify`` registers the write
  with ``transaction.on_commit``; nothing is written if the command rolls
  back, and a notification failure can never undo a committed case
  change.
* **Best effort** — failures while persisting are logged with the
  traceback and dropped (at-most-once delivery).
* **Generic relation** — ``related_object`` is optional; if provided
  its ``ContentType`` and PK are stored via the ``Notification`` model's
  ``GenericForeignKey``.

Usage::

    from core.domain.notifications import NotificationService

    NotificationService.notify(
        actor=actor,
        recipients=[case.assigned_to],
        event_type="assignment_changed",
        payload={"case_id": case.pk},
        related_object=case,
    )
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable

from django.contrib.contenttypes.models import ContentType
from django.db import models, transaction

if TYPE_CHECKING:
    from core.domain.access import Actor
    from core.models import Notification

logger = logging.getLogger(__name__)

# ── Event-type → human-readable templates ───────────────────────────
_EVENT_TEMPLATES: dict[str, tuple[str, str]] = {
    # event_type: (title_template, message_template)
    "case_status_changed":    ("Case Status Updated",      "Case {case_id} moved from {old} to {new}."),
    "assignment_changed":     ("Case Assigned",            "Case {case_id} has been assigned to you."),
    "case_routed":            ("Case Routed",              "Case {case_id} was routed to you under {outward_number}."),
    "document_reviewed":      ("Document Reviewed",        "A document on case {case_id} was {outcome} at stage {stage}."),
    "verification_advanced":  ("Verification Advanced",    "Stage {stage} verification of case {case_id} is complete."),
    "verification_rejected":  ("Verification Rejected",    "Verification of case {case_id} was rejected."),
}


class _SafeDict(dict):
    def __missing__(self, key):
        return "{" + key + "}"


class NotificationService:
    """
    Stateless helper for creating ``Notification`` records.

    All methods are classmethods — no instance state is needed.
    """

    @classmethod
    def notify(
        cls,
        *,
        actor: Actor,
        recipients: Iterable[str],
        event_type: str,
        payload: dict[str, Any] | None = None,
        related_object: models.Model | None = None,
    ) -> None:
        """
        Schedule notifications to be written once the current transaction
        commits.  Outside a transaction they are written immediately.

        Args:
            actor:          The actor who performed the command; never
                            notified about their own action.
            recipients:     Actor references (blank entries are skipped).
            event_type:     Key into ``_EVENT_TEMPLATES``.  If unknown
                            the raw event_type is used as title.
            payload:        Values interpolated into the message template.
            related_object: Optional model instance linked via
                            ``GenericForeignKey``.
        """
        targets = sorted({r for r in recipients if r and r != actor.id})
        if not targets:
            logger.debug(
                "No recipients for event_type=%s by actor=%s", event_type, actor,
            )
            return

        payload = dict(payload or {})
        transaction.on_commit(
            lambda: cls._deliver(actor, targets, event_type, payload, related_object)
        )

    @classmethod
    def _deliver(
        cls,
        actor: Actor,
        recipients: list[str],
        event_type: str,
        payload: dict[str, Any],
        related_object: models.Model | None,
    ) -> list[Notification]:
        try:
            return cls.create(
                actor=actor,
                recipients=recipients,
                event_type=event_type,
                payload=payload,
                related_object=related_object,
            )
        except Exception:
            logger.exception(
                "Notification delivery failed for event_type=%s by actor=%s",
                event_type,
                actor,
            )
            return []

    @classmethod
    def create(
        cls,
        *,
        actor: Actor,
        recipients: Iterable[str],
        event_type: str,
        payload: dict[str, Any] | None = None,
        related_object: models.Model | None = None,
    ) -> list[Notification]:
        """
        Create one ``Notification`` per recipient, synchronously.

        Returns:
            List of created ``Notification`` instances.
        """
        from core.models import Notification  # lazy import

        recipients = list(recipients)
        if not recipients:
            logger.warning(
                "NotificationService.create called with empty recipients "
                "for event_type=%s by actor=%s",
                event_type,
                actor,
            )
            return []

        title, template = _EVENT_TEMPLATES.get(
            event_type,
            (event_type.replace("_", " ").title(), f"Event: {event_type}"),
        )
        message = template.format_map(_SafeDict(payload or {}))

        content_type = None
        object_id = None
        if related_object is not None:
            content_type = ContentType.objects.get_for_model(related_object)
            object_id = str(related_object.pk)

        notifications = Notification.objects.bulk_create([
            Notification(
                recipient=recipient,
                event_type=event_type,
                title=title,
                message=message,
                content_type=content_type,
                object_id=object_id,
            )
            for recipient in recipients
        ])

        logger.info(
            "Created %d notification(s) [%s] by actor=%s",
            len(notifications),
            event_type,
            actor,
        )
        return notifications
