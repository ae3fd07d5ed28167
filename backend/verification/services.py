"""
Verification app Service Layer.

Gating rules of the two-stage document review.  These methods operate on
already-loaded rows *inside the caller's transaction*; they never open
transactions, bump versions or write timeline entries themselves.  The
case lifecycle orchestrator (``cases.services.CaseLifecycleService``)
wraps every call with the case's optimistic-concurrency check and the
audit trail.

State machine
-------------
::

    INITIAL_WORK ──first review──▶ STAGE_1_REVIEW ──complete(1)──▶ STAGE_2_REVIEW
                                          │                               │
                                          └──────reject──▶ REJECTED ◀─────┤
                                                                          │
                                                         VERIFIED ◀──complete(2)

Document review
---------------
* Stage 1 (executive) decides ``PENDING`` documents.
* Stage 2 (master) decides ``STAGE_1_APPROVED`` documents, and ``PENDING``
  ones submitted after stage 1 closed.
* A stage completes only when every *active* (non-superseded) document
  holds that stage's APPROVED status.
"""

from __future__ import annotations

import logging
from datetime import datetime

from django.db.models import Count, Q

from cases.models import open_cases_q
from core.domain.access import Actor
from core.domain.exceptions import (
    Conflict,
    DocumentNotPending,
    DomainError,
    PermissionDenied,
    StageAlreadyCompleted,
    StageIncomplete,
    StageMismatch,
    VerificationClosed,
)
from core.domain.transactions import get_or_not_found

from .models import DocumentReview, DocumentStatus, OverallStatus, VerificationCase

logger = logging.getLogger(__name__)

_REVIEWABLE: dict[int, frozenset[str]] = {
    1: frozenset({DocumentStatus.PENDING}),
    2: frozenset({DocumentStatus.STAGE_1_APPROVED, DocumentStatus.PENDING}),
}

_OUTCOME: dict[tuple[int, bool], str] = {
    (1, True): DocumentStatus.STAGE_1_APPROVED,
    (1, False): DocumentStatus.STAGE_1_REJECTED,
    (2, True): DocumentStatus.STAGE_2_APPROVED,
    (2, False): DocumentStatus.STAGE_2_REJECTED,
}

_APPROVED_FOR_STAGE: dict[int, str] = {
    1: DocumentStatus.STAGE_1_APPROVED,
    2: DocumentStatus.STAGE_2_APPROVED,
}

_PROGRESS: dict[str, int] = {
    OverallStatus.INITIAL_WORK: 10,
    OverallStatus.STAGE_1_REVIEW: 33,
    OverallStatus.STAGE_2_REVIEW: 66,
    OverallStatus.VERIFIED: 100,
}


class VerificationWorkflow:
    """Two-stage gating rules over ``VerificationCase`` / ``DocumentReview``."""

    @staticmethod
    def ensure_open(verification: VerificationCase) -> None:
        if verification.is_closed:
            raise VerificationClosed(verification.overall_status)

    @staticmethod
    def start(case) -> VerificationCase:
        """Return the case's verification, creating it in INITIAL_WORK."""
        verification, created = VerificationCase.objects.get_or_create(case=case)
        if created:
            logger.info("Verification opened for case %s", case.pk)
        return verification

    @staticmethod
    def get_document(verification: VerificationCase, document_id: int) -> DocumentReview:
        return get_or_not_found(
            DocumentReview,
            f"Document {document_id} not found on case {verification.case_id}.",
            pk=document_id,
            verification=verification,
        )

    # ── Commands ────────────────────────────────────────────────────

    @staticmethod
    def submit_document(
        verification: VerificationCase,
        *,
        name: str,
        size: int,
        uploaded_by: str,
        supersedes: int | None = None,
        now: datetime,
    ) -> DocumentReview:
        """
        Add a PENDING document.  ``supersedes`` names a rejected document
        this submission corrects.

        Raises:
            VerificationClosed: Workflow already VERIFIED / REJECTED.
            NotFound:           ``supersedes`` is not a document of this case.
            Conflict:           ``supersedes`` is not rejected or was
                                already corrected.
        """
        VerificationWorkflow.ensure_open(verification)
        if not name.strip():
            raise DomainError("A document name is required.")

        previous = None
        if supersedes is not None:
            previous = VerificationWorkflow.get_document(verification, supersedes)
            if not previous.is_rejected:
                raise Conflict(
                    f"Document {previous.pk} is {previous.status}; only rejected "
                    f"documents can be replaced."
                )
            if DocumentReview.objects.filter(supersedes=previous).exists():
                raise Conflict(f"Document {previous.pk} has already been replaced.")

        return DocumentReview.objects.create(
            verification=verification,
            name=name.strip(),
            size=size,
            uploaded_at=now,
            uploaded_by=uploaded_by,
            supersedes=previous,
        )

    @staticmethod
    def review_document(
        verification: VerificationCase,
        document_id: int,
        reviewer: Actor,
        *,
        approve: bool,
        comments: str = "",
        now: datetime,
    ) -> DocumentReview:
        """
        Record the reviewer's stage outcome on one document.

        The reviewer's stage is derived from their role and must equal the
        verification's current stage.  Rejecting does not move the stage.

        Raises:
            VerificationClosed, PermissionDenied, StageMismatch, NotFound,
            DocumentNotPending
        """
        VerificationWorkflow.ensure_open(verification)

        stage = reviewer.review_stage
        if stage is None:
            raise PermissionDenied(f"Role '{reviewer.role}' does not review documents.")
        if stage != verification.current_stage:
            raise StageMismatch(stage, verification.current_stage)

        document = VerificationWorkflow.get_document(verification, document_id)
        superseded = DocumentReview.objects.filter(supersedes=document).exists()
        if superseded or document.status not in _REVIEWABLE[stage]:
            raise DocumentNotPending(document.pk, document.status)

        document.status = _OUTCOME[(stage, approve)]
        setattr(document, f"stage{stage}_reviewer", reviewer.name)
        setattr(document, f"stage{stage}_reviewed_at", now)
        setattr(document, f"stage{stage}_comments", comments)
        document.save(update_fields=[
            "status",
            f"stage{stage}_reviewer",
            f"stage{stage}_reviewed_at",
            f"stage{stage}_comments",
        ])

        if verification.overall_status == OverallStatus.INITIAL_WORK:
            verification.overall_status = OverallStatus.STAGE_1_REVIEW
            verification.save(update_fields=["overall_status", "updated_at"])

        return document

    @staticmethod
    def blocking_documents(verification: VerificationCase, stage: int) -> list[int]:
        """Active documents not yet approved for ``stage``."""
        return list(
            verification.active_documents()
            .exclude(status=_APPROVED_FOR_STAGE[stage])
            .order_by("id")
            .values_list("id", flat=True)
        )

    @staticmethod
    def check_stage_completable(verification: VerificationCase, stage: int) -> None:
        """
        Raises:
            StageAlreadyCompleted: ``stage`` is behind the workflow.
            VerificationClosed:    Workflow was rejected.
            StageMismatch:         ``stage`` is ahead of the workflow.
            StageIncomplete:       Some documents still block the stage.
        """
        if stage not in _APPROVED_FOR_STAGE:
            raise DomainError(f"Unknown verification stage {stage}; expected 1 or 2.")

        if verification.overall_status == OverallStatus.REJECTED:
            raise VerificationClosed(verification.overall_status)

        completed_at = getattr(verification, f"stage{stage}_completed_at")
        if completed_at is not None or stage < verification.current_stage:
            raise StageAlreadyCompleted(stage)
        if stage > verification.current_stage:
            raise StageMismatch(stage, verification.current_stage)

        blocking = VerificationWorkflow.blocking_documents(verification, stage)
        if blocking:
            raise StageIncomplete(stage, blocking)

    @staticmethod
    def complete_stage(
        verification: VerificationCase,
        stage: int,
        *,
        now: datetime,
    ) -> VerificationCase:
        """
        Close ``stage``.  Stage 1 advances to stage 2; stage 2 marks the
        workflow and every active document VERIFIED.
        """
        VerificationWorkflow.check_stage_completable(verification, stage)

        if stage == 1:
            verification.stage1_completed_at = now
            verification.current_stage = 2
            verification.overall_status = OverallStatus.STAGE_2_REVIEW
            verification.save(update_fields=[
                "stage1_completed_at", "current_stage", "overall_status", "updated_at",
            ])
        else:
            verification.stage2_completed_at = now
            verification.overall_status = OverallStatus.VERIFIED
            verification.save(update_fields=[
                "stage2_completed_at", "overall_status", "updated_at",
            ])
            verification.active_documents().update(status=DocumentStatus.VERIFIED)

        return verification

    @staticmethod
    def reject(
        verification: VerificationCase,
        *,
        reason: str,
        now: datetime,
    ) -> VerificationCase:
        """
        End the workflow as REJECTED (only from STAGE_1_REVIEW / STAGE_2_REVIEW).
        """
        VerificationWorkflow.ensure_open(verification)
        if not reason.strip():
            raise DomainError("A rejection reason is required.")
        if verification.overall_status == OverallStatus.INITIAL_WORK:
            raise Conflict("Verification cannot be rejected before review has started.")

        verification.overall_status = OverallStatus.REJECTED
        verification.rejected_at = now
        verification.rejection_reason = reason.strip()
        verification.save(update_fields=[
            "overall_status", "rejected_at", "rejection_reason", "updated_at",
        ])
        return verification

    # ── Queries ─────────────────────────────────────────────────────

    @staticmethod
    def progress(verification: VerificationCase | None) -> int:
        """
        Coarse phase indicator: 10 / 33 / 66 / 100.  A rejected workflow
        reports the phase it was stopped in; no workflow reports 0.
        """
        if verification is None:
            return 0
        if verification.overall_status == OverallStatus.REJECTED:
            return 66 if verification.stage1_completed_at else 33
        return _PROGRESS[verification.overall_status]

    @staticmethod
    def awaiting_stage(verification: VerificationCase | None) -> int | None:
        """Stage whose reviewer must act next; ``None`` once the review or the case is closed."""
        if verification is None or verification.is_closed or verification.case.is_terminal:
            return None
        return verification.current_stage

    @staticmethod
    def statistics() -> dict[str, int]:
        """Pending counts leave out reviews whose case is already closed."""
        case_open = open_cases_q("case__")
        return VerificationCase.objects.aggregate(
            total=Count("id"),
            pending_stage1=Count("id", filter=case_open & Q(
                overall_status__in=[OverallStatus.INITIAL_WORK, OverallStatus.STAGE_1_REVIEW],
            )),
            pending_stage2=Count("id", filter=case_open & Q(overall_status=OverallStatus.STAGE_2_REVIEW)),
            verified=Count("id", filter=Q(overall_status=OverallStatus.VERIFIED)),
            rejected=Count("id", filter=Q(overall_status=OverallStatus.REJECTED)),
        )
