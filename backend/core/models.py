"""
Core app models.

Provides abstract base models and shared utilities used across the project.
"""

from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType
from django.db import models


class TimeStampedModel(models.Model):
    """
    Abstract base model that provides self-updating ``created_at`` and
    ``updated_at`` timestamp fields for every concrete child model.
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name="Created At",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name="Updated At",
    )

    class Meta:
        abstract = True


class Notification(TimeStampedModel):
    """
    In-app notification produced after a case command commits (status
    change, assignment, routing, verification decisions).

    Recipients are actor references (user id, officer name or department
    id) because assignees are not necessarily portal accounts.  Delivery
    over SMS / e-mail is handled elsewhere and reads from this table.

    Uses a GenericForeignKey so any model instance can be the *source* of
    a notification (usually a ``Case``).
    """

    recipient = models.CharField(
        max_length=255,
        db_index=True,
        verbose_name="Recipient",
        help_text="User id, officer name or department id.",
    )
    event_type = models.CharField(max_length=64, verbose_name="Event Type")
    title = models.CharField(max_length=255, verbose_name="Title")
    message = models.TextField(verbose_name="Message")
    is_read = models.BooleanField(default=False, verbose_name="Read")

    # Generic relation to the object that triggered the notification
    content_type = models.ForeignKey(
        ContentType,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        verbose_name="Related Content Type",
    )
    object_id = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        verbose_name="Related Object ID",
    )
    content_object = GenericForeignKey("content_type", "object_id")

    class Meta:
        verbose_name = "Notification"
        verbose_name_plural = "Notifications"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["recipient", "is_read"], name="core_notifi_recipie_6b1f0e_idx"),
        ]

    def __str__(self):
        return f"[{self.recipient}] {self.title}"
