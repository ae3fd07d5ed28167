"""
Cases app models.

Covers the case aggregate of the citizen-services portal — grievances,
temple letters, CM relief requests, disputes, CSR projects, education
support, appointments and programs — together with its append-only
timeline, department routing records, and the database-backed counters
used to hand out case ids and outward numbers.

Status vocabularies are *per category* and live in ``cases.registry``;
``Case.status`` therefore carries no ``choices`` and is validated against
the registry in ``clean()`` and in the service layer.
"""

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from core.domain.exceptions import UnknownCategory, UnknownStatus
from core.models import TimeStampedModel

from .registry import CATEGORY_CHOICES, all_workflows, get_workflow, is_terminal


def open_cases_q(prefix: str = "") -> models.Q:
    """
    Cases whose status is not terminal for their category.

    ``prefix`` reaches the case through a relation, e.g. ``"case__"``.
    """
    closed = models.Q()
    for workflow in all_workflows():
        closed |= models.Q(**{
            f"{prefix}category": workflow.category,
            f"{prefix}status__in": workflow.terminal_statuses,
        })
    return ~closed


# ────────────────────────────────────────────────────────────────────
# Choice enumerations
# ────────────────────────────────────────────────────────────────────

class CasePriority(models.TextChoices):
    """SLA priority; only SLA-bearing categories carry one."""

    P1 = "P1", "P1 (48 hours)"
    P2 = "P2", "P2 (5 days)"
    P3 = "P3", "P3 (10 days)"
    P4 = "P4", "P4 (20 days)"


class AssigneeKind(models.TextChoices):
    OFFICER = "officer", "Officer"
    DEPARTMENT = "department", "Department"


class TimelineKind(models.TextChoices):
    SYSTEM = "system", "System"
    USER = "user", "User"
    STATUS = "status", "Status Change"
    ASSIGNMENT = "assignment", "Assignment"


class RoutingPriority(models.TextChoices):
    URGENT = "urgent", "Urgent"
    HIGH = "high", "High"
    NORMAL = "normal", "Normal"


# ────────────────────────────────────────────────────────────────────
# Models
# ────────────────────────────────────────────────────────────────────

class Case(TimeStampedModel):
    """
    Central entity — one unit of citizen-service work.

    * ``id`` is the generated, category-prefixed identifier
      (``GRV-AP-NLR-2025-000123-0X``).
    * ``category`` is fixed at creation and selects the status graph and
      whether an SLA applies.
    * ``version`` is the optimistic-concurrency token for the whole
      aggregate (case, verification, documents, timeline).
    """

    id = models.CharField(
        primary_key=True,
        max_length=32,
        editable=False,
        verbose_name="Case ID",
    )
    category = models.CharField(
        max_length=20,
        choices=CATEGORY_CHOICES,
        verbose_name="Category",
        db_index=True,
    )
    status = models.CharField(
        max_length=30,
        verbose_name="Current Status",
        db_index=True,
        help_text="Member of the category's status vocabulary.",
    )
    priority = models.CharField(
        max_length=2,
        choices=CasePriority.choices,
        null=True,
        blank=True,
        verbose_name="Priority",
        help_text="SLA priority. Empty on SLA-bearing categories means P3.",
    )

    title = models.CharField(max_length=255, verbose_name="Title")
    applicant = models.CharField(
        max_length=255,
        blank=True,
        default="",
        verbose_name="Applicant",
    )
    description = models.TextField(blank=True, default="", verbose_name="Description")
    district = models.CharField(
        max_length=100,
        blank=True,
        default="",
        verbose_name="District",
    )
    details = models.JSONField(
        default=dict,
        blank=True,
        verbose_name="Category Details",
        help_text="Category-specific intake fields (amounts, dates, parties, ...).",
    )

    # ── Assignment ──────────────────────────────────────────────────
    assigned_to = models.CharField(
        max_length=255,
        blank=True,
        default="",
        db_index=True,
        verbose_name="Assigned To",
        help_text="Officer name or department id.",
    )
    assigned_to_kind = models.CharField(
        max_length=12,
        choices=AssigneeKind.choices,
        blank=True,
        default="",
        verbose_name="Assignee Kind",
    )

    created_by = models.CharField(
        max_length=64,
        blank=True,
        default="",
        verbose_name="Created By",
        help_text="Actor id of the intake submitter.",
    )
    version = models.PositiveIntegerField(default=1, verbose_name="Version")
    closed_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Closed At",
        help_text="When the case entered a terminal status; freezes the SLA clock.",
    )

    class Meta:
        verbose_name = "Case"
        verbose_name_plural = "Cases"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["category", "status"], name="cases_case_categor_3c9e1a_idx"),
        ]

    def __str__(self):
        return f"{self.id} — {self.title}"

    def clean(self):
        try:
            get_workflow(self.category).require_status(self.status)
        except (UnknownCategory, UnknownStatus) as exc:
            raise ValidationError({"status": str(exc)})

    @property
    def workflow(self):
        return get_workflow(self.category)

    @property
    def is_terminal(self) -> bool:
        return is_terminal(self.category, self.status)


class TimelineEvent(models.Model):
    """
    Immutable audit record attached to a case.

    Rows are only ever inserted; ``save()`` on an existing row and
    ``delete()`` are refused.  The auto-increment id gives the order.
    """

    case = models.ForeignKey(
        Case,
        on_delete=models.PROTECT,
        related_name="timeline",
        verbose_name="Case",
    )
    timestamp = models.DateTimeField(default=timezone.now, verbose_name="Timestamp")
    actor = models.CharField(max_length=255, verbose_name="Actor")
    actor_id = models.CharField(max_length=64, blank=True, default="", verbose_name="Actor ID")
    action = models.CharField(max_length=255, verbose_name="Action")
    detail = models.TextField(blank=True, default="", verbose_name="Detail")
    kind = models.CharField(
        max_length=12,
        choices=TimelineKind.choices,
        verbose_name="Kind",
    )

    class Meta:
        verbose_name = "Timeline Event"
        verbose_name_plural = "Timeline Events"
        ordering = ["id"]

    def __str__(self):
        return f"[{self.case_id}] {self.action}"

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise ValueError("Timeline events are append-only and cannot be modified.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Timeline events are append-only and cannot be deleted.")


class RoutingRecord(models.Model):
    """
    Forwarding of a case to an external department under an outward
    reference number.  Routing never changes the case status by itself.
    """

    case = models.ForeignKey(
        Case,
        on_delete=models.PROTECT,
        related_name="routings",
        verbose_name="Case",
    )
    department = models.CharField(max_length=32, verbose_name="Department")
    department_code = models.CharField(max_length=8, verbose_name="Department Code")
    officer = models.CharField(max_length=255, blank=True, default="", verbose_name="Officer")
    memo = models.TextField(blank=True, default="", verbose_name="Memo")
    priority = models.CharField(
        max_length=10,
        choices=RoutingPriority.choices,
        default=RoutingPriority.NORMAL,
        verbose_name="Routing Priority",
    )
    expected_date = models.DateField(null=True, blank=True, verbose_name="Expected Response Date")
    outward_number = models.CharField(max_length=40, unique=True, verbose_name="Outward Number")
    routed_by = models.CharField(max_length=255, verbose_name="Routed By")
    routed_at = models.DateTimeField(default=timezone.now, verbose_name="Routed At")

    class Meta:
        verbose_name = "Routing Record"
        verbose_name_plural = "Routing Records"
        ordering = ["-routed_at", "-id"]

    def __str__(self):
        return f"{self.outward_number} → {self.department}"


class CaseSequence(models.Model):
    """Per (prefix, district, year) counter behind case ids."""

    prefix = models.CharField(max_length=3)
    district_code = models.CharField(max_length=3)
    year = models.PositiveSmallIntegerField()
    last_value = models.PositiveIntegerField(default=0)

    class Meta:
        verbose_name = "Case Sequence"
        constraints = [
            models.UniqueConstraint(
                fields=["prefix", "district_code", "year"],
                name="unique_case_sequence",
            ),
        ]

    def __str__(self):
        return f"{self.prefix}-{self.district_code}-{self.year}: {self.last_value}"


class OutwardSequence(models.Model):
    """Per (department code, day) counter behind outward numbers."""

    department_code = models.CharField(max_length=8)
    date = models.DateField()
    last_value = models.PositiveIntegerField(default=0)

    class Meta:
        verbose_name = "Outward Sequence"
        constraints = [
            models.UniqueConstraint(
                fields=["department_code", "date"],
                name="unique_outward_sequence",
            ),
        ]

    def __str__(self):
        return f"{self.department_code}/{self.date:%Y%m%d}: {self.last_value}"
