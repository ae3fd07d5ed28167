"""
Case registry — per-category status vocabularies and transition graphs.

Every category owns one authoritative table: its ordered vocabulary (the
first status is the initial one) and the set of legal next statuses for
each status.  Statuses with no outgoing edges are terminal.  Screens,
services and queues consult this module instead of re-declaring status
literals.

The module is pure data plus lookups; it performs no I/O and can be used
without a configured Django project.

Default graph policy
--------------------
Forward through the category's documented path, skipping at most one
step where the path allows it, plus escape statuses (CLOSED / CANCELLED /
REJECTED / EXPIRED) reachable from the early, non-terminal statuses.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from core.constants import ROLE_EXEC_ADMIN, ROLE_MASTER_ADMIN
from core.domain.exceptions import InvalidTransition, UnknownCategory, UnknownStatus


class Category:
    """Case category names (``Case.category`` values)."""

    GRIEVANCE = "Grievance"
    TEMPLE_LETTER = "TempleLetter"
    CM_RELIEF = "CMRelief"
    DISPUTE = "Dispute"
    CSR_INDUSTRIAL = "CSRIndustrial"
    EDUCATION_SUPPORT = "EducationSupport"
    APPOINTMENT = "Appointment"
    PROGRAM = "Program"


@dataclass(frozen=True)
class CategoryWorkflow:
    """
    Rules for one category.

    Attributes:
        category:            Category name.
        label:               Human-readable label for queues.
        prefix:              Three-letter case id prefix.
        statuses:            Ordered vocabulary; ``statuses[0]`` is initial.
        transitions:         ``status -> tuple of legal next statuses``.
        sla_bearing:         Whether cases carry a priority / SLA deadline.
        approval_statuses:   ``role -> statuses awaiting that role``.
        verification_gated:  Statuses that require VERIFIED documents.
    """

    category: str
    label: str
    prefix: str
    statuses: tuple[str, ...]
    transitions: dict[str, tuple[str, ...]]
    sla_bearing: bool = False
    approval_statuses: dict[str, frozenset[str]] = field(default_factory=dict)
    verification_gated: frozenset[str] = frozenset()

    @property
    def initial_status(self) -> str:
        return self.statuses[0]

    @property
    def terminal_statuses(self) -> frozenset[str]:
        return frozenset(s for s in self.statuses if not self.transitions.get(s))

    def next_statuses(self, status: str) -> tuple[str, ...]:
        self.require_status(status)
        return self.transitions.get(status, ())

    def require_status(self, status: str) -> None:
        if status not in self.statuses:
            raise UnknownStatus(self.category, status)


# ═══════════════════════════════════════════════════════════════════
#  Category tables
# ═══════════════════════════════════════════════════════════════════

_WORKFLOWS: tuple[CategoryWorkflow, ...] = (
    CategoryWorkflow(
        category=Category.GRIEVANCE,
        label="Grievance",
        prefix="GRV",
        statuses=("NEW", "TRIAGED", "ASSIGNED", "IN_PROGRESS", "DEPT_ESCALATED", "RESOLVED", "CLOSED"),
        transitions={
            "NEW": ("TRIAGED", "ASSIGNED", "CLOSED"),
            "TRIAGED": ("ASSIGNED", "IN_PROGRESS", "CLOSED"),
            "ASSIGNED": ("IN_PROGRESS", "DEPT_ESCALATED"),
            "IN_PROGRESS": ("DEPT_ESCALATED", "RESOLVED"),
            "DEPT_ESCALATED": ("RESOLVED",),
            "RESOLVED": ("CLOSED",),
        },
        sla_bearing=True,
        approval_statuses={
            ROLE_EXEC_ADMIN: frozenset({"NEW", "TRIAGED"}),
            ROLE_MASTER_ADMIN: frozenset({"DEPT_ESCALATED"}),
        },
    ),
    CategoryWorkflow(
        category=Category.TEMPLE_LETTER,
        label="Temple Letter",
        prefix="TDL",
        statuses=("REQUESTED", "IN_REVIEW", "APPROVED", "LETTER_ISSUED", "UTILIZED", "EXPIRED"),
        transitions={
            "REQUESTED": ("IN_REVIEW", "APPROVED", "EXPIRED"),
            "IN_REVIEW": ("APPROVED", "EXPIRED"),
            "APPROVED": ("LETTER_ISSUED", "EXPIRED"),
            "LETTER_ISSUED": ("UTILIZED", "EXPIRED"),
        },
        approval_statuses={
            ROLE_EXEC_ADMIN: frozenset({"REQUESTED"}),
            ROLE_MASTER_ADMIN: frozenset({"IN_REVIEW"}),
        },
    ),
    CategoryWorkflow(
        category=Category.CM_RELIEF,
        label="CM Relief Fund",
        prefix="CMR",
        statuses=(
            "INTAKE", "DOCS_VERIFIED", "SANCTION_REQUESTED", "SANCTIONED",
            "DISBURSED", "UTILIZATION_SUBMITTED", "CLOSED",
        ),
        transitions={
            "INTAKE": ("DOCS_VERIFIED", "CLOSED"),
            "DOCS_VERIFIED": ("SANCTION_REQUESTED", "CLOSED"),
            "SANCTION_REQUESTED": ("SANCTIONED", "CLOSED"),
            "SANCTIONED": ("DISBURSED",),
            "DISBURSED": ("UTILIZATION_SUBMITTED", "CLOSED"),
            "UTILIZATION_SUBMITTED": ("CLOSED",),
        },
        sla_bearing=True,
        approval_statuses={
            ROLE_EXEC_ADMIN: frozenset({"INTAKE", "DOCS_VERIFIED"}),
            ROLE_MASTER_ADMIN: frozenset({"SANCTION_REQUESTED"}),
        },
        verification_gated=frozenset({"DOCS_VERIFIED"}),
    ),
    CategoryWorkflow(
        category=Category.DISPUTE,
        label="Dispute",
        prefix="DIS",
        statuses=(
            "NEW", "UNDER_REVIEW", "MEDIATION_SCHEDULED", "IN_MEDIATION",
            "SETTLED", "REFERRED_TO_COURT", "CLOSED",
        ),
        transitions={
            "NEW": ("UNDER_REVIEW", "MEDIATION_SCHEDULED", "CLOSED"),
            "UNDER_REVIEW": ("MEDIATION_SCHEDULED", "REFERRED_TO_COURT", "CLOSED"),
            "MEDIATION_SCHEDULED": ("IN_MEDIATION", "REFERRED_TO_COURT", "CLOSED"),
            "IN_MEDIATION": ("SETTLED", "REFERRED_TO_COURT"),
            "SETTLED": ("CLOSED",),
            "REFERRED_TO_COURT": ("CLOSED",),
        },
        sla_bearing=True,
        approval_statuses={
            ROLE_EXEC_ADMIN: frozenset({"NEW", "UNDER_REVIEW"}),
            ROLE_MASTER_ADMIN: frozenset({"IN_MEDIATION"}),
        },
    ),
    CategoryWorkflow(
        category=Category.CSR_INDUSTRIAL,
        label="CSR Industrial",
        prefix="CSR",
        statuses=(
            "LEAD", "DUE_DILIGENCE", "PROPOSAL_SENT", "MOU_SIGNED",
            "IN_EXECUTION", "MILESTONES_APPROVED", "CLOSED", "CANCELLED",
        ),
        transitions={
            "LEAD": ("DUE_DILIGENCE", "CANCELLED"),
            "DUE_DILIGENCE": ("PROPOSAL_SENT", "CANCELLED"),
            "PROPOSAL_SENT": ("MOU_SIGNED", "CANCELLED"),
            "MOU_SIGNED": ("IN_EXECUTION", "CANCELLED"),
            "IN_EXECUTION": ("MILESTONES_APPROVED", "CANCELLED"),
            "MILESTONES_APPROVED": ("CLOSED",),
        },
        approval_statuses={
            ROLE_EXEC_ADMIN: frozenset({"LEAD", "DUE_DILIGENCE"}),
            ROLE_MASTER_ADMIN: frozenset({"PROPOSAL_SENT"}),
        },
    ),
    CategoryWorkflow(
        category=Category.EDUCATION_SUPPORT,
        label="Education Support",
        prefix="EDU",
        statuses=("APPLIED", "UNDER_REVIEW", "RECOMMENDED", "APPROVED", "CLOSED", "REJECTED"),
        transitions={
            "APPLIED": ("UNDER_REVIEW", "REJECTED"),
            "UNDER_REVIEW": ("RECOMMENDED", "REJECTED"),
            "RECOMMENDED": ("APPROVED", "REJECTED"),
            "APPROVED": ("CLOSED",),
        },
        sla_bearing=True,
        approval_statuses={
            ROLE_EXEC_ADMIN: frozenset({"APPLIED", "UNDER_REVIEW"}),
            ROLE_MASTER_ADMIN: frozenset({"RECOMMENDED"}),
        },
        verification_gated=frozenset({"APPROVED"}),
    ),
    CategoryWorkflow(
        category=Category.APPOINTMENT,
        label="Appointment",
        prefix="APP",
        statuses=("REQUESTED", "CONFIRMED", "CHECKED_IN", "COMPLETED", "NO_SHOW", "CANCELLED"),
        transitions={
            "REQUESTED": ("CONFIRMED", "CANCELLED"),
            "CONFIRMED": ("CHECKED_IN", "NO_SHOW", "CANCELLED"),
            "CHECKED_IN": ("COMPLETED",),
        },
        approval_statuses={
            ROLE_EXEC_ADMIN: frozenset({"REQUESTED"}),
        },
    ),
    CategoryWorkflow(
        category=Category.PROGRAM,
        label="Program",
        prefix="PRG",
        statuses=(
            "PLANNED", "REGISTRATION", "REGISTRATION_CLOSED", "SCREENING", "SELECTION",
            "OFFER", "JOINED", "REPORTING_CLOSED", "CANCELLED",
        ),
        transitions={
            "PLANNED": ("REGISTRATION", "CANCELLED"),
            "REGISTRATION": ("REGISTRATION_CLOSED", "CANCELLED"),
            "REGISTRATION_CLOSED": ("SCREENING", "CANCELLED"),
            "SCREENING": ("SELECTION", "CANCELLED"),
            "SELECTION": ("OFFER", "CANCELLED"),
            "OFFER": ("JOINED",),
            "JOINED": ("REPORTING_CLOSED",),
        },
        approval_statuses={
            ROLE_EXEC_ADMIN: frozenset({"REGISTRATION_CLOSED", "SCREENING"}),
            ROLE_MASTER_ADMIN: frozenset({"SELECTION"}),
        },
    ),
)

REGISTRY: dict[str, CategoryWorkflow] = {wf.category: wf for wf in _WORKFLOWS}
_BY_PREFIX: dict[str, CategoryWorkflow] = {wf.prefix: wf for wf in _WORKFLOWS}

CATEGORY_CHOICES: list[tuple[str, str]] = [(wf.category, wf.label) for wf in _WORKFLOWS]


# ═══════════════════════════════════════════════════════════════════
#  Lookups
# ═══════════════════════════════════════════════════════════════════


def get_workflow(category: str) -> CategoryWorkflow:
    try:
        return REGISTRY[category]
    except KeyError:
        raise UnknownCategory(category)


def category_for_prefix(prefix: str) -> str:
    try:
        return _BY_PREFIX[prefix].category
    except KeyError:
        raise UnknownCategory(prefix)


def statuses_for(category: str) -> list[str]:
    """Ordered status vocabulary of ``category``."""
    return list(get_workflow(category).statuses)


def can_transition(category: str, current: str, target: str) -> bool:
    """
    ``True`` when ``current → target`` is an edge of the category graph.

    Raises:
        UnknownCategory: For an unregistered category.
        UnknownStatus:   If either status is outside the vocabulary.
    """
    workflow = get_workflow(category)
    workflow.require_status(target)
    return target in workflow.next_statuses(current)


def validate_transition(category: str, current: str, target: str) -> None:
    """
    Raise unless ``current → target`` is legal for ``category``.

    Raises:
        UnknownCategory, UnknownStatus, InvalidTransition
    """
    if not can_transition(category, current, target):
        raise InvalidTransition(
            category=category,
            current=current,
            target=target,
            allowed=get_workflow(category).next_statuses(current),
        )


def is_terminal(category: str, status: str) -> bool:
    workflow = get_workflow(category)
    workflow.require_status(status)
    return status in workflow.terminal_statuses


def approval_statuses_for(category: str, role: str) -> frozenset[str]:
    return get_workflow(category).approval_statuses.get(role, frozenset())


def all_workflows() -> tuple[CategoryWorkflow, ...]:
    return _WORKFLOWS
