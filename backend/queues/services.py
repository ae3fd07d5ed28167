"""
Queues app Service Layer.

Read-only projections that merge cases of every category into uniform
work-queue rows.  Nothing here mutates a case; every method works on
committed data and the caller's clock.

Pipeline
--------
``WorkQueueService.work_queue`` runs the same steps for every queue:

  1. Select the cases (all, or the ones awaiting the actor's role).
  2. Project each case into a row (``build_row``).
  3. ``search_rows`` → ``filter_rows`` → ``sort_rows`` → ``paginate``.

The step-3 transforms work on plain lists of dicts and need no
database.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any, Iterable

from django.db.models import Q, QuerySet
from django.utils import timezone

from cases import sla
from cases.models import Case, open_cases_q
from cases.registry import all_workflows, approval_statuses_for, get_workflow
from cases.services import CaseQueryService
from core.constants import REVIEW_STAGE_BY_ROLE, engine_setting
from core.domain.access import Actor
from core.domain.exceptions import DomainError
from verification.models import OverallStatus
from verification.services import VerificationWorkflow

logger = logging.getLogger(__name__)

ROW_FIELDS = (
    "id",
    "category",
    "category_label",
    "title",
    "applicant",
    "status",
    "priority",
    "assigned_to",
    "created_at",
    "age_days",
    "sla_due_at",
    "sla_state",
    "awaiting_stage",
)

SEARCH_FIELDS = ("id", "category_label", "title", "applicant", "status", "assigned_to")
FILTER_FIELDS = ("category", "status", "priority", "assigned_to", "sla_state")


class WorkQueueService:
    """Cross-category queue views for dashboards."""

    # ── Row projection ───────────────────────────────────────────────

    @staticmethod
    def build_row(case: Case, now: datetime) -> dict[str, Any]:
        snapshot = CaseQueryService.sla_for(case, now)
        verification = getattr(case, "verification", None)
        return {
            "id": case.pk,
            "category": case.category,
            "category_label": get_workflow(case.category).label,
            "title": case.title,
            "applicant": case.applicant,
            "status": case.status,
            "priority": case.priority,
            "assigned_to": case.assigned_to,
            "created_at": case.created_at,
            "age_days": max((now - case.created_at).days, 0),
            "sla_due_at": snapshot.due_at if snapshot else None,
            "sla_state": snapshot.state if snapshot else None,
            "awaiting_stage": VerificationWorkflow.awaiting_stage(verification),
        }

    @staticmethod
    def _rows(cases: Iterable[Case], now: datetime) -> list[dict[str, Any]]:
        return [WorkQueueService.build_row(case, now) for case in cases]

    @staticmethod
    def _base_queryset() -> QuerySet[Case]:
        return Case.objects.select_related("verification").order_by("-created_at")

    # ── Queues ───────────────────────────────────────────────────────

    @staticmethod
    def all_items(now: datetime | None = None) -> list[dict[str, Any]]:
        """Every case, flattened into a queue row."""
        now = now or timezone.now()
        return WorkQueueService._rows(WorkQueueService._base_queryset(), now)

    @staticmethod
    def approvals_q(role: str) -> Q:
        """
        Cases waiting on ``role``: the category status is one the role
        approves, or the case's open verification sits at the role's
        review stage while the case itself is still open.
        """
        awaiting = Q(pk__in=[])
        for workflow in all_workflows():
            statuses = approval_statuses_for(workflow.category, role)
            if statuses:
                awaiting |= Q(category=workflow.category, status__in=statuses)

        stage = REVIEW_STAGE_BY_ROLE.get(role)
        if stage is not None:
            open_statuses = [
                s for s in OverallStatus.values
                if s not in (OverallStatus.VERIFIED, OverallStatus.REJECTED)
            ]
            awaiting |= Q(
                verification__current_stage=stage,
                verification__overall_status__in=open_statuses,
            ) & open_cases_q()
        return awaiting

    @staticmethod
    def my_approvals(actor: Actor, now: datetime | None = None) -> list[dict[str, Any]]:
        """Rows of the cases the actor's role must act on."""
        now = now or timezone.now()
        cases = WorkQueueService._base_queryset().filter(WorkQueueService.approvals_q(actor.role))
        return WorkQueueService._rows(cases.distinct(), now)

    @staticmethod
    def approval_summary(rows: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
        """Pending count per category with the worst SLA state among them."""
        order = {sla.BREACHED: 0, sla.NEAR_BREACH: 1, sla.ON_TIME: 2, None: 3}
        summary: dict[str, dict[str, Any]] = {}
        for row in rows:
            entry = summary.setdefault(row["category"], {
                "category": row["category"],
                "label": row["category_label"],
                "count": 0,
                "worst_sla_state": None,
            })
            entry["count"] += 1
            if order[row["sla_state"]] < order[entry["worst_sla_state"]]:
                entry["worst_sla_state"] = row["sla_state"]
        return sorted(summary.values(), key=lambda e: e["category"])

    # ── Pure transforms ──────────────────────────────────────────────

    @staticmethod
    def search_rows(rows: list[dict[str, Any]], text: str | None) -> list[dict[str, Any]]:
        """Case-insensitive substring match across the visible columns."""
        needle = (text or "").strip().lower()
        if not needle:
            return rows
        return [
            row for row in rows
            if any(needle in str(row.get(field) or "").lower() for field in SEARCH_FIELDS)
        ]

    @staticmethod
    def filter_rows(rows: list[dict[str, Any]], filters: dict[str, Any] | None) -> list[dict[str, Any]]:
        """Per-field equality filters; blank values are ignored."""
        active = {
            field: value for field, value in (filters or {}).items()
            if field in FILTER_FIELDS and value not in (None, "")
        }
        if not active:
            return rows
        return [
            row for row in rows
            if all(row.get(field) == value for field, value in active.items())
        ]

    @staticmethod
    def sort_rows(
        rows: list[dict[str, Any]],
        sort_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        """
        Single-column sort.  Rows whose value is ``None`` always go last,
        whatever the direction.

        Raises:
            DomainError: ``sort_by`` is not a row column.
        """
        if not sort_by:
            return rows
        if sort_by not in ROW_FIELDS:
            raise DomainError(
                f"Cannot sort by '{sort_by}'. Expected one of: {', '.join(ROW_FIELDS)}."
            )
        present = [row for row in rows if row.get(sort_by) is not None]
        missing = [row for row in rows if row.get(sort_by) is None]
        present.sort(key=lambda row: row[sort_by], reverse=descending)
        return present + missing

    @staticmethod
    def paginate(
        rows: list[dict[str, Any]],
        page: int = 1,
        page_size: int | None = None,
    ) -> dict[str, Any]:
        """Fixed-size page; pages past the end come back empty."""
        page_size = page_size or engine_setting("QUEUE_PAGE_SIZE")
        if page < 1:
            raise DomainError("Page numbers start at 1.")
        total = len(rows)
        start = (page - 1) * page_size
        return {
            "count": total,
            "page": page,
            "page_size": page_size,
            "total_pages": max(math.ceil(total / page_size), 1),
            "results": rows[start:start + page_size],
        }

    @staticmethod
    def work_queue(
        actor: Actor,
        *,
        scope: str = "all",
        search: str | None = None,
        filters: dict[str, Any] | None = None,
        sort_by: str | None = None,
        descending: bool = False,
        page: int = 1,
        page_size: int | None = None,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """
        Assemble one queue page.

        Args:
            actor: Requesting actor; only its role matters.
            scope: ``"all"`` or ``"approvals"``.
        """
        now = now or timezone.now()
        if scope == "approvals":
            rows = WorkQueueService.my_approvals(actor, now)
        elif scope == "all":
            rows = WorkQueueService.all_items(now)
        else:
            raise DomainError(f"Unknown queue scope '{scope}'.")

        rows = WorkQueueService.search_rows(rows, search)
        rows = WorkQueueService.filter_rows(rows, filters)
        rows = WorkQueueService.sort_rows(rows, sort_by, descending)
        result = WorkQueueService.paginate(rows, page, page_size)

        logger.debug(
            "Queue %s for %s: %d row(s), page %d", scope, actor, result["count"], page,
        )
        return result

    # ── Dashboards ───────────────────────────────────────────────────

    @staticmethod
    def sla_summary(now: datetime | None = None, category: str | None = None) -> dict[str, Any]:
        """Compliance summary over the SLA-bearing cases."""
        now = now or timezone.now()
        cases = Case.objects.filter(
            category__in=[w.category for w in all_workflows() if w.sla_bearing],
        )
        if category:
            get_workflow(category)
            cases = cases.filter(category=category)

        summary = sla.compliance_summary(CaseQueryService.sla_for(case, now) for case in cases)
        target = engine_setting("SLA_COMPLIANCE_TARGET")
        summary["target"] = target
        summary["meets_target"] = summary["compliance"] >= target
        return summary

    @staticmethod
    def workload(assignee: str) -> dict[str, Any]:
        assignee = (assignee or "").strip()
        if not assignee:
            raise DomainError("An assignee is required.")
        return {
            "assignee": assignee,
            "open_cases": CaseQueryService.officer_workload(assignee),
        }

    @staticmethod
    def verification_stats() -> dict[str, int]:
        return VerificationWorkflow.statistics()

