"""
SLA clock — deadline and breach state derived at read time.

Nothing here is stored: the deadline is a pure function of
``(priority, created_at)`` and the state a pure function of the deadline
and the caller's clock.  The only "freeze" is the terminal one: once a
case is closed the clock is evaluated at ``closed_at`` instead of ``now``
so a resolved case does not keep accumulating overdue time.

States
------
* ``breached``    — ``now > due_at``
* ``nearBreach``  — ``due_at - 24h <= now <= due_at``
* ``onTime``      — otherwise
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable

from core.constants import DEFAULT_PRIORITY, NEAR_BREACH_HOURS, SLA_HOURS, engine_setting
from core.domain.exceptions import DomainError

from .registry import get_workflow

ON_TIME = "onTime"
NEAR_BREACH = "nearBreach"
BREACHED = "breached"


@dataclass(frozen=True)
class SlaSnapshot:
    """SLA reading for one case at one instant."""

    priority: str
    due_at: datetime
    state: str
    remaining: timedelta
    frozen: bool = False

    @property
    def overdue_by(self) -> timedelta:
        return max(-self.remaining, timedelta(0))


def validate_priority(priority: str) -> str:
    if priority not in SLA_HOURS:
        raise DomainError(
            f"Unknown priority '{priority}'. Expected one of: {', '.join(SLA_HOURS)}."
        )
    return priority


def sla_hours(priority: str | None) -> int:
    """Resolution window in hours; absent priority falls back to P3."""
    return SLA_HOURS[validate_priority(priority or DEFAULT_PRIORITY)]


def due_at(priority: str | None, created_at: datetime) -> datetime:
    return created_at + timedelta(hours=sla_hours(priority))


def remaining(now: datetime, deadline: datetime) -> timedelta:
    """Signed time left; negative values are the overdue duration."""
    return deadline - now


def sla_state(now: datetime, deadline: datetime, near_breach_hours: int = NEAR_BREACH_HOURS) -> str:
    if now > deadline:
        return BREACHED
    if deadline - now <= timedelta(hours=near_breach_hours):
        return NEAR_BREACH
    return ON_TIME


def snapshot(
    *,
    category: str,
    priority: str | None,
    created_at: datetime,
    now: datetime,
    closed_at: datetime | None = None,
) -> SlaSnapshot | None:
    """
    SLA reading for a case, or ``None`` for categories without an SLA.

    ``closed_at`` (set when the case entered a terminal status) caps the
    evaluation instant.
    """
    if not get_workflow(category).sla_bearing:
        return None

    effective_now = now
    frozen = False
    if closed_at is not None and closed_at < now:
        effective_now = closed_at
        frozen = True

    deadline = due_at(priority, created_at)
    return SlaSnapshot(
        priority=priority or DEFAULT_PRIORITY,
        due_at=deadline,
        state=sla_state(effective_now, deadline, engine_setting("NEAR_BREACH_HOURS")),
        remaining=remaining(effective_now, deadline),
        frozen=frozen,
    )


def compliance_summary(snapshots: Iterable[SlaSnapshot | None]) -> dict:
    """
    Aggregate SLA states for a dashboard.

    ``compliance`` is the percentage of SLA-bearing cases not breached
    (100 when there are none).
    """
    counts = {ON_TIME: 0, NEAR_BREACH: 0, BREACHED: 0}
    for snap in snapshots:
        if snap is not None:
            counts[snap.state] += 1

    total = sum(counts.values())
    compliance = 100.0 if total == 0 else round((total - counts[BREACHED]) * 100 / total, 1)
    return {
        "total": total,
        "on_time": counts[ON_TIME],
        "near_breach": counts[NEAR_BREACH],
        "breached": counts[BREACHED],
        "compliance": compliance,
    }
