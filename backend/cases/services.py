"""
Cases app Service Layer.

This module is the **single source of truth** for all case-lifecycle
business logic.  Views must remain thin: validate input via serializers,
call a service method, and return the result wrapped in a DRF
``Response``.

Architecture
------------
- ``CaseQueryService``       — Reads: case lookup, listing, timeline, SLA,
                               verification progress, officer workload.
- ``CaseAssignmentService``  — Assignee / department resolution and
                               workload counting.
- ``CaseLifecycleService``   — The only mutation entry point: create,
                               transition, assign, route, and the
                               verification commands.

Command pattern
---------------
Every command runs as one ``transaction.atomic()`` unit against one case:

  1. Load the case (``NotFound``) and compare the caller's ``version``
     when one was supplied (``ConcurrentModification``).
  2. Validate everything against the registry / verification rules.
     Nothing has been written yet, so a failure leaves no trace.
  3. ``versioned_update`` the case row (``WHERE version = <read version>``)
     and write child rows (verification, documents, routing records).
     A concurrent command that committed first makes the update match
     zero rows and the whole unit rolls back with
     ``ConcurrentModification``.
  4. Append the timeline event.
  5. Schedule notifications with ``transaction.on_commit``.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

from django.db import transaction
from django.db.models import Q, QuerySet
from django.utils import timezone

from core.constants import BULK_TRANSITION_LIMIT, DEPARTMENTS, ROUTING_PRIORITIES
from core.domain.access import Actor
from core.domain.exceptions import (
    CaseClosed,
    ConcurrentModification,
    DomainError,
    NotFound,
    StageAlreadyCompleted,
    VerificationRequired,
)
from core.domain.notifications import NotificationService
from core.domain.transactions import check_expected_version, get_or_not_found, versioned_update
from verification.models import DocumentReview, OverallStatus, VerificationCase
from verification.services import VerificationWorkflow

from . import sla
from .identifiers import department_code, generate_case_id, generate_outward_number
from .models import AssigneeKind, Case, RoutingRecord, TimelineEvent, TimelineKind, open_cases_q
from .registry import get_workflow, validate_transition

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  Queries
# ═══════════════════════════════════════════════════════════════════


class CaseQueryService:
    """Read-only access to cases and derived state."""

    @staticmethod
    def get_case(case_id: str) -> Case:
        return get_or_not_found(Case, f"Case {case_id} not found.", pk=case_id)

    @staticmethod
    def list_cases(
        category: str | None = None,
        filters: dict[str, Any] | None = None,
    ) -> QuerySet[Case]:
        """
        Cases of one category (or all), with optional equality filters on
        ``status`` / ``priority`` / ``assigned_to`` / ``district`` and a
        free-text ``search`` over id, title and applicant.
        """
        filters = filters or {}
        qs = Case.objects.select_related("verification")

        if category:
            workflow = get_workflow(category)
            qs = qs.filter(category=category)
            if filters.get("status"):
                workflow.require_status(filters["status"])

        for field in ("status", "priority", "assigned_to", "district"):
            value = filters.get(field)
            if value:
                qs = qs.filter(**{field: value})

        if filters.get("open_only"):
            qs = qs.filter(open_cases_q())

        search = (filters.get("search") or "").strip()
        if search:
            qs = qs.filter(
                Q(id__icontains=search)
                | Q(title__icontains=search)
                | Q(applicant__icontains=search)
            )
        return qs.order_by("-created_at")

    @staticmethod
    def get_timeline(case_id: str) -> QuerySet[TimelineEvent]:
        case = CaseQueryService.get_case(case_id)
        return case.timeline.all()

    @staticmethod
    def get_verification(case_id: str) -> VerificationCase | None:
        case = CaseQueryService.get_case(case_id)
        return VerificationCase.objects.filter(case=case).first()

    @staticmethod
    def sla_for(case: Case, now: datetime | None = None) -> sla.SlaSnapshot | None:
        return sla.snapshot(
            category=case.category,
            priority=case.priority,
            created_at=case.created_at,
            now=now or timezone.now(),
            closed_at=case.closed_at,
        )

    @staticmethod
    def sla_status(case_id: str, now: datetime | None = None) -> sla.SlaSnapshot | None:
        """SLA reading at ``now``; ``None`` for categories without an SLA."""
        return CaseQueryService.sla_for(CaseQueryService.get_case(case_id), now)

    @staticmethod
    def verification_progress(case_id: str) -> dict[str, Any]:
        verification = CaseQueryService.get_verification(case_id)
        return {
            "case_id": case_id,
            "overall_status": verification.overall_status if verification else None,
            "current_stage": verification.current_stage if verification else None,
            "progress": VerificationWorkflow.progress(verification),
        }

    @staticmethod
    def officer_workload(assignee: str) -> int:
        return CaseAssignmentService.workload(assignee)


# ═══════════════════════════════════════════════════════════════════
#  Assignment & routing rules
# ═══════════════════════════════════════════════════════════════════


class CaseAssignmentService:
    """Assignee resolution and advisory workload counts."""

    @staticmethod
    def resolve_department(department: str) -> dict[str, Any]:
        try:
            entry = DEPARTMENTS[department]
        except KeyError:
            raise NotFound(f"Department '{department}' not found.")
        return {"id": department, "code": department_code(entry["name"]), **entry}

    @staticmethod
    def validate_assignee(assignee: str, kind: str) -> str:
        assignee = (assignee or "").strip()
        if not assignee:
            raise DomainError("An assignee is required.")
        if kind not in AssigneeKind.values:
            raise DomainError(
                f"Unknown assignee kind '{kind}'. Expected one of: {', '.join(AssigneeKind.values)}."
            )
        if kind == AssigneeKind.DEPARTMENT:
            CaseAssignmentService.resolve_department(assignee)
        return assignee

    @staticmethod
    def workload(assignee: str, cases: QuerySet[Case] | None = None) -> int:
        """Number of non-terminal cases currently held by ``assignee``."""
        qs = Case.objects.all() if cases is None else cases
        return qs.filter(open_cases_q(), assigned_to=assignee).count()

    @staticmethod
    def department_directory() -> list[dict[str, Any]]:
        return [CaseAssignmentService.resolve_department(key) for key in DEPARTMENTS]


# ═══════════════════════════════════════════════════════════════════
#  Lifecycle orchestrator
# ═══════════════════════════════════════════════════════════════════


class CaseLifecycleService:
    """
    Façade and sole mutation entry point for cases.

    All methods are staticmethods taking an explicit ``Actor``; role
    checks about *who may call* a command are the caller's business.
    """

    # ── Helpers ──────────────────────────────────────────────────────

    @staticmethod
    def _load(case_id: str, expected_version: int | None) -> Case:
        case = CaseQueryService.get_case(case_id)
        check_expected_version(case, expected_version)
        return case

    @staticmethod
    def _ensure_open(case: Case) -> None:
        if case.is_terminal:
            raise CaseClosed(case.pk, case.status)

    @staticmethod
    def _append_event(
        case: Case,
        actor: Actor,
        *,
        kind: str,
        action: str,
        detail: str = "",
        now: datetime,
    ) -> TimelineEvent:
        return TimelineEvent.objects.create(
            case=case,
            timestamp=now,
            actor=actor.name,
            actor_id=actor.id,
            action=action,
            detail=detail,
            kind=kind,
        )

    # ── Intake ───────────────────────────────────────────────────────

    @staticmethod
    @transaction.atomic
    def create_case(category: str, initial_data: dict[str, Any], actor: Actor) -> Case:
        """
        Register a new case in the category's initial status.

        Args:
            category:     Registered category name.
            initial_data: ``title`` (required), ``applicant``, ``description``,
                          ``district``, ``priority``, ``details``.
            actor:        Submitting citizen or officer.

        Raises:
            UnknownCategory: Unregistered category.
            DomainError:     Missing title, unknown priority, or a priority
                             on a category without an SLA.
        """
        workflow = get_workflow(category)
        now = timezone.now()

        title = (initial_data.get("title") or "").strip()
        if not title:
            raise DomainError("A case title is required.")

        priority = initial_data.get("priority") or None
        if priority is not None:
            if not workflow.sla_bearing:
                raise DomainError(f"Category {category} does not carry an SLA priority.")
            sla.validate_priority(priority)

        district = (initial_data.get("district") or "").strip()
        case = Case.objects.create(
            id=generate_case_id(workflow.prefix, district, now.year),
            category=category,
            status=workflow.initial_status,
            priority=priority,
            title=title,
            applicant=(initial_data.get("applicant") or "").strip(),
            description=initial_data.get("description") or "",
            district=district,
            details=initial_data.get("details") or {},
            created_by=actor.id,
        )
        CaseLifecycleService._append_event(
            case,
            actor,
            kind=TimelineKind.SYSTEM,
            action="Case created",
            detail=f"{workflow.label} registered in status {case.status}.",
            now=now,
        )

        logger.info("Case %s created [%s] by %s", case.pk, category, actor)
        return case

    # ── Status ───────────────────────────────────────────────────────

    @staticmethod
    @transaction.atomic
    def transition_status(
        case_id: str,
        new_status: str,
        actor: Actor,
        *,
        message: str = "",
        expected_version: int | None = None,
    ) -> Case:
        """
        Move a case along an edge of its category graph.

        Entering a terminal status stamps ``closed_at`` (SLA freeze).
        Entering a verification-gated status requires VERIFIED documents.

        Raises:
            NotFound, ConcurrentModification, UnknownStatus,
            InvalidTransition, VerificationRequired
        """
        case = CaseLifecycleService._load(case_id, expected_version)
        workflow = case.workflow
        old_status = case.status
        validate_transition(case.category, old_status, new_status)

        if new_status in workflow.verification_gated:
            verification = VerificationCase.objects.filter(case=case).first()
            if verification is None or verification.overall_status != OverallStatus.VERIFIED:
                raise VerificationRequired(new_status)

        now = timezone.now()
        changes: dict[str, Any] = {"status": new_status}
        if new_status in workflow.terminal_statuses:
            changes["closed_at"] = now
        versioned_update(case, expected_version=case.version, **changes)

        CaseLifecycleService._append_event(
            case,
            actor,
            kind=TimelineKind.STATUS,
            action=f"Status changed to {new_status}",
            detail=f"{old_status} → {new_status}" + (f": {message}" if message else ""),
            now=now,
        )
        NotificationService.notify(
            actor=actor,
            recipients=[case.created_by, case.assigned_to],
            event_type="case_status_changed",
            payload={"case_id": case.pk, "old": old_status, "new": new_status},
            related_object=case,
        )

        logger.info("Case %s moved %s → %s by %s", case.pk, old_status, new_status, actor)
        return case

    @staticmethod
    def bulk_transition(
        items: list[dict[str, Any]],
        actor: Actor,
        *,
        message: str = "",
    ) -> list[dict[str, Any]]:
        """
        Apply ``transition_status`` to several cases, one atomic unit each.

        Each item holds ``case_id``, ``target_status`` and an optional
        ``version``.  A refused item (an illegal move or missing verified
        documents, for instance) does not stop the others; its result
        carries the error code and detail instead of the new status.

        Raises:
            DomainError: Empty batch, more than ``BULK_TRANSITION_LIMIT``
                         items, or the same case listed twice.
        """
        if not items:
            raise DomainError("Select at least one case.")
        if len(items) > BULK_TRANSITION_LIMIT:
            raise DomainError(f"At most {BULK_TRANSITION_LIMIT} cases can be transitioned at once.")
        case_ids = [item["case_id"] for item in items]
        if len(set(case_ids)) != len(case_ids):
            raise DomainError("Each case may appear only once in a batch.")

        results: list[dict[str, Any]] = []
        for item in items:
            case_id = item["case_id"]
            try:
                case = CaseLifecycleService.transition_status(
                    case_id,
                    item["target_status"],
                    actor,
                    message=message,
                    expected_version=item.get("version"),
                )
            except DomainError as exc:
                results.append({
                    "case_id": case_id,
                    "ok": False,
                    "code": type(exc).__name__,
                    "detail": str(exc),
                    **exc.extra(),
                })
                continue
            results.append({
                "case_id": case_id,
                "ok": True,
                "status": case.status,
                "version": case.version,
            })

        applied = sum(1 for result in results if result["ok"])
        logger.info("Bulk transition by %s: %d of %d case(s) moved", actor, applied, len(results))
        return results

    # ── Assignment & routing ─────────────────────────────────────────

    @staticmethod
    @transaction.atomic
    def assign_case(
        case_id: str,
        assignee: str,
        actor: Actor,
        *,
        kind: str = AssigneeKind.OFFICER,
        notes: str = "",
        expected_version: int | None = None,
    ) -> Case:
        """
        Set (or overwrite) the case's assignee and record the prior holder.

        Re-assigning to the current holder is allowed and still recorded.

        Raises:
            NotFound, ConcurrentModification, CaseClosed, DomainError
        """
        case = CaseLifecycleService._load(case_id, expected_version)
        CaseLifecycleService._ensure_open(case)
        assignee = CaseAssignmentService.validate_assignee(assignee, kind)

        previous = case.assigned_to
        now = timezone.now()
        versioned_update(
            case,
            expected_version=case.version,
            assigned_to=assignee,
            assigned_to_kind=kind,
        )

        detail = f"Previously: {previous}" if previous else "Previously unassigned"
        if notes:
            detail += f". Notes: {notes}"
        CaseLifecycleService._append_event(
            case,
            actor,
            kind=TimelineKind.ASSIGNMENT,
            action=f"Assigned to {assignee}",
            detail=detail,
            now=now,
        )
        NotificationService.notify(
            actor=actor,
            recipients=[assignee],
            event_type="assignment_changed",
            payload={"case_id": case.pk},
            related_object=case,
        )

        logger.info(
            "Case %s assigned to %s (was %s) by %s",
            case.pk, assignee, previous or "nobody", actor,
        )
        return case

    @staticmethod
    @transaction.atomic
    def route_to_department(
        case_id: str,
        department: str,
        actor: Actor,
        *,
        officer: str = "",
        memo: str = "",
        priority: str = "normal",
        expected_date: date | None = None,
        expected_version: int | None = None,
    ) -> RoutingRecord:
        """
        Forward a case to a department under a fresh outward number.

        Status and assignee are left untouched.

        Raises:
            NotFound:    Unknown department or officer.
            DomainError: Unknown routing priority or past expected date.
            CaseClosed, ConcurrentModification
        """
        case = CaseLifecycleService._load(case_id, expected_version)
        CaseLifecycleService._ensure_open(case)
        dept = CaseAssignmentService.resolve_department(department)

        if officer and officer not in dept["officers"]:
            raise NotFound(f"Officer '{officer}' is not listed under {dept['name']}.")
        if priority not in ROUTING_PRIORITIES:
            raise DomainError(
                f"Unknown routing priority '{priority}'. Expected one of: {', '.join(ROUTING_PRIORITIES)}."
            )

        now = timezone.now()
        today = timezone.localdate(now)
        if expected_date is not None and expected_date < today:
            raise DomainError("The expected response date cannot be in the past.")

        versioned_update(case, expected_version=case.version)
        record = RoutingRecord.objects.create(
            case=case,
            department=department,
            department_code=dept["code"],
            officer=officer,
            memo=memo,
            priority=priority,
            expected_date=expected_date,
            outward_number=generate_outward_number(dept["code"], today),
            routed_by=actor.name,
            routed_at=now,
        )

        detail = [f"Outward No. {record.outward_number}", f"Priority: {priority}"]
        if officer:
            detail.append(f"Officer: {officer}")
        if expected_date:
            detail.append(f"Expected by: {expected_date.isoformat()}")
        if memo:
            detail.append(f"Memo: {memo}")
        CaseLifecycleService._append_event(
            case,
            actor,
            kind=TimelineKind.SYSTEM,
            action=f"Routed to {dept['name']}",
            detail="; ".join(detail),
            now=now,
        )
        NotificationService.notify(
            actor=actor,
            recipients=[department, officer],
            event_type="case_routed",
            payload={"case_id": case.pk, "outward_number": record.outward_number},
            related_object=case,
        )

        logger.info(
            "Case %s routed to %s as %s by %s",
            case.pk, department, record.outward_number, actor,
        )
        return record

    # ── Verification ─────────────────────────────────────────────────

    @staticmethod
    @transaction.atomic
    def submit_document(
        case_id: str,
        actor: Actor,
        *,
        name: str,
        size: int = 0,
        supersedes: int | None = None,
        expected_version: int | None = None,
    ) -> DocumentReview:
        """
        Add a document for review, opening the verification if needed.

        Raises:
            NotFound, ConcurrentModification, CaseClosed, VerificationClosed,
            Conflict (bad ``supersedes``), DomainError
        """
        case = CaseLifecycleService._load(case_id, expected_version)
        CaseLifecycleService._ensure_open(case)

        verification = VerificationCase.objects.filter(case=case).first()
        if verification is not None:
            VerificationWorkflow.ensure_open(verification)

        now = timezone.now()
        versioned_update(case, expected_version=case.version)
        if verification is None:
            verification = VerificationWorkflow.start(case)

        document = VerificationWorkflow.submit_document(
            verification,
            name=name,
            size=size,
            uploaded_by=actor.name,
            supersedes=supersedes,
            now=now,
        )

        detail = f"{document.name} ({document.size} bytes)"
        if document.supersedes_id:
            detail += f", replacing rejected document #{document.supersedes_id}"
        CaseLifecycleService._append_event(
            case,
            actor,
            kind=TimelineKind.USER,
            action="Document submitted for review",
            detail=detail,
            now=now,
        )

        logger.info("Document #%d submitted on case %s by %s", document.pk, case.pk, actor)
        return document

    @staticmethod
    @transaction.atomic
    def review_document(
        case_id: str,
        document_id: int,
        actor: Actor,
        *,
        approve: bool,
        comments: str = "",
        expected_version: int | None = None,
    ) -> DocumentReview:
        """
        Record a stage-1 or stage-2 decision on one document.

        Raises:
            NotFound, ConcurrentModification, CaseClosed, VerificationClosed,
            PermissionDenied, StageMismatch, DocumentNotPending
        """
        case = CaseLifecycleService._load(case_id, expected_version)
        CaseLifecycleService._ensure_open(case)
        verification = VerificationCase.objects.filter(case=case).first()
        if verification is None:
            raise NotFound(f"Document {document_id} not found on case {case.pk}.")

        stage = verification.current_stage
        now = timezone.now()
        document = VerificationWorkflow.review_document(
            verification,
            document_id,
            actor,
            approve=approve,
            comments=comments,
            now=now,
        )
        versioned_update(case, expected_version=case.version)

        outcome = "approved" if approve else "rejected"
        detail = document.name
        if stage == 2 and document.stage1_reviewed_at is None:
            # submitted after stage 1 closed
            detail += " (no stage 1 review)"
        if comments:
            detail += f": {comments}"
        CaseLifecycleService._append_event(
            case,
            actor,
            kind=TimelineKind.USER,
            action=f"Document {outcome} at stage {stage}",
            detail=detail,
            now=now,
        )
        NotificationService.notify(
            actor=actor,
            recipients=[case.created_by],
            event_type="document_reviewed",
            payload={"case_id": case.pk, "outcome": outcome, "stage": stage},
            related_object=case,
        )

        logger.info(
            "Document #%d on case %s %s at stage %d by %s",
            document.pk, case.pk, outcome, stage, actor,
        )
        return document

    @staticmethod
    def complete_verification_stage(
        case_id: str,
        stage: int,
        actor: Actor,
        *,
        expected_version: int | None = None,
    ) -> VerificationCase:
        """
        Close verification ``stage`` once every active document is approved.

        A losing concurrent call (its version check fails because the
        winner already committed) re-reads the verification and reports
        ``StageAlreadyCompleted`` when the same stage is now closed.

        Raises:
            NotFound, CaseClosed, StageIncomplete, StageAlreadyCompleted,
            StageMismatch, VerificationClosed, ConcurrentModification
        """
        try:
            return CaseLifecycleService._complete_stage(case_id, stage, actor, expected_version)
        except ConcurrentModification:
            verification = VerificationCase.objects.filter(case_id=case_id).first()
            if verification is not None and getattr(verification, f"stage{stage}_completed_at", None):
                raise StageAlreadyCompleted(stage)
            raise

    @staticmethod
    @transaction.atomic
    def _complete_stage(
        case_id: str,
        stage: int,
        actor: Actor,
        expected_version: int | None,
    ) -> VerificationCase:
        case = CaseQueryService.get_case(case_id)
        verification = VerificationCase.objects.filter(case=case).first()
        if verification is None:
            raise NotFound(f"Case {case.pk} has no documents under verification.")

        # Checked ahead of the version and closed-case guards.
        if getattr(verification, f"stage{stage}_completed_at", None) is not None:
            raise StageAlreadyCompleted(stage)
        check_expected_version(case, expected_version)
        CaseLifecycleService._ensure_open(case)

        now = timezone.now()
        VerificationWorkflow.check_stage_completable(verification, stage)
        versioned_update(case, expected_version=case.version)
        VerificationWorkflow.complete_stage(verification, stage, now=now)

        CaseLifecycleService._append_event(
            case,
            actor,
            kind=TimelineKind.SYSTEM,
            action=f"Verification stage {stage} completed",
            detail=f"Overall status: {verification.overall_status}",
            now=now,
        )
        NotificationService.notify(
            actor=actor,
            recipients=[case.created_by],
            event_type="verification_advanced",
            payload={"case_id": case.pk, "stage": stage},
            related_object=case,
        )

        logger.info("Verification stage %d of case %s completed by %s", stage, case.pk, actor)
        return verification

    @staticmethod
    @transaction.atomic
    def reject_verification(
        case_id: str,
        actor: Actor,
        reason: str,
        *,
        expected_version: int | None = None,
    ) -> VerificationCase:
        """
        End the case's verification as REJECTED.

        Raises:
            NotFound, ConcurrentModification, CaseClosed, VerificationClosed,
            Conflict (review not started), DomainError (empty reason)
        """
        case = CaseLifecycleService._load(case_id, expected_version)
        CaseLifecycleService._ensure_open(case)
        verification = VerificationCase.objects.filter(case=case).first()
        if verification is None:
            raise NotFound(f"Case {case.pk} has no documents under verification.")

        now = timezone.now()
        VerificationWorkflow.reject(verification, reason=reason, now=now)
        versioned_update(case, expected_version=case.version)

        CaseLifecycleService._append_event(
            case,
            actor,
            kind=TimelineKind.SYSTEM,
            action="Verification rejected",
            detail=reason.strip(),
            now=now,
        )
        NotificationService.notify(
            actor=actor,
            recipients=[case.created_by],
            event_type="verification_rejected",
            payload={"case_id": case.pk},
            related_object=case,
        )

        logger.info("Verification of case %s rejected by %s", case.pk, actor)
        return verification
