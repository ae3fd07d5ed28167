"""
Verification app models.

A ``VerificationCase`` is attached 1:1 to a ``cases.Case`` the first time
a document is submitted for review and is owned by it (no independent
lifecycle; it shares the case's optimistic-concurrency version).

Each ``DocumentReview`` carries the outcome of both review passes.  A
rejected document is never reopened in place: a corrective submission
creates a new document pointing at the rejected one via ``supersedes``,
so the rejected record stays on file for audit.
"""

from django.db import models
from django.utils import timezone

from core.models import TimeStampedModel


class OverallStatus(models.TextChoices):
    INITIAL_WORK = "INITIAL_WORK", "Initial Work"
    STAGE_1_REVIEW = "STAGE_1_REVIEW", "Stage 1 Review"
    STAGE_2_REVIEW = "STAGE_2_REVIEW", "Stage 2 Review"
    VERIFIED = "VERIFIED", "Verified"
    REJECTED = "REJECTED", "Rejected"


class DocumentStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    STAGE_1_APPROVED = "STAGE_1_APPROVED", "Stage 1 Approved"
    STAGE_1_REJECTED = "STAGE_1_REJECTED", "Stage 1 Rejected"
    STAGE_2_APPROVED = "STAGE_2_APPROVED", "Stage 2 Approved"
    STAGE_2_REJECTED = "STAGE_2_REJECTED", "Stage 2 Rejected"
    VERIFIED = "VERIFIED", "Verified"


REJECTED_DOCUMENT_STATUSES = frozenset({
    DocumentStatus.STAGE_1_REJECTED,
    DocumentStatus.STAGE_2_REJECTED,
})


class VerificationCase(TimeStampedModel):
    """Two-stage document review attached to a case."""

    case = models.OneToOneField(
        "cases.Case",
        on_delete=models.PROTECT,
        related_name="verification",
        verbose_name="Case",
    )
    current_stage = models.PositiveSmallIntegerField(
        default=1,
        verbose_name="Current Stage",
        help_text="1 = executive review, 2 = master review.",
    )
    overall_status = models.CharField(
        max_length=16,
        choices=OverallStatus.choices,
        default=OverallStatus.INITIAL_WORK,
        verbose_name="Overall Status",
        db_index=True,
    )
    stage1_completed_at = models.DateTimeField(null=True, blank=True, verbose_name="Stage 1 Completed At")
    stage2_completed_at = models.DateTimeField(null=True, blank=True, verbose_name="Stage 2 Completed At")
    rejected_at = models.DateTimeField(null=True, blank=True, verbose_name="Rejected At")
    rejection_reason = models.TextField(blank=True, default="", verbose_name="Rejection Reason")

    class Meta:
        verbose_name = "Verification Case"
        verbose_name_plural = "Verification Cases"

    def __str__(self):
        return f"Verification of {self.case_id} ({self.overall_status})"

    @property
    def is_closed(self) -> bool:
        return self.overall_status in (OverallStatus.VERIFIED, OverallStatus.REJECTED)

    def active_documents(self):
        """Documents that have not been replaced by a corrective submission."""
        return self.documents.filter(superseded_by__isnull=True)


class DocumentReview(models.Model):
    """
    A supporting document and the outcome of its two review passes.

    Each stage's reviewer / timestamp / comments are written together and
    only once.
    """

    verification = models.ForeignKey(
        VerificationCase,
        on_delete=models.PROTECT,
        related_name="documents",
        verbose_name="Verification",
    )
    name = models.CharField(max_length=255, verbose_name="File Name")
    size = models.PositiveBigIntegerField(default=0, verbose_name="Size (bytes)")
    uploaded_at = models.DateTimeField(default=timezone.now, verbose_name="Uploaded At")
    uploaded_by = models.CharField(max_length=255, blank=True, default="", verbose_name="Uploaded By")
    status = models.CharField(
        max_length=20,
        choices=DocumentStatus.choices,
        default=DocumentStatus.PENDING,
        verbose_name="Status",
        db_index=True,
    )

    # ── Stage 1 (executive) ─────────────────────────────────────────
    stage1_reviewer = models.CharField(max_length=255, blank=True, default="")
    stage1_reviewed_at = models.DateTimeField(null=True, blank=True)
    stage1_comments = models.TextField(blank=True, default="")

    # ── Stage 2 (master) ────────────────────────────────────────────
    stage2_reviewer = models.CharField(max_length=255, blank=True, default="")
    stage2_reviewed_at = models.DateTimeField(null=True, blank=True)
    stage2_comments = models.TextField(blank=True, default="")

    supersedes = models.OneToOneField(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="superseded_by",
        verbose_name="Supersedes",
        help_text="Rejected document this submission corrects.",
    )

    class Meta:
        verbose_name = "Document Review"
        verbose_name_plural = "Document Reviews"
        ordering = ["uploaded_at", "id"]

    def __str__(self):
        return f"{self.name} ({self.status})"

    @property
    def is_rejected(self) -> bool:
        return self.status in REJECTED_DOCUMENT_STATUSES
