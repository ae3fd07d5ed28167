"""
Core constants — **Single Source of Truth** for project-wide magic numbers.

Any formula or business rule that references a numeric constant or a
fixed directory should import it from here instead of hardcoding.  This
avoids drift between the registry, the SLA clock and the work queues,
which all rely on the same values.

Deployment-specific knobs (state code, page size, near-breach window)
can be overridden through the ``CASE_ENGINE`` dict in settings; use
``engine_setting`` to read them.
"""

from __future__ import annotations

from typing import Any

# ── Actor roles ─────────────────────────────────────────────────────
# L1 is the master-level (stage 2) reviewer, L2 the executive-level
# (stage 1) reviewer, L3 the citizen submitting requests.
ROLE_MASTER_ADMIN = "L1_MASTER_ADMIN"
ROLE_EXEC_ADMIN = "L2_EXEC_ADMIN"
ROLE_CITIZEN = "L3_CITIZEN"
ROLE_SYSTEM = "SYSTEM"

REVIEW_STAGE_BY_ROLE: dict[str, int] = {
    ROLE_EXEC_ADMIN: 1,
    ROLE_MASTER_ADMIN: 2,
}

# ── SLA ─────────────────────────────────────────────────────────────
# Resolution window per priority, in hours.
SLA_HOURS: dict[str, int] = {
    "P1": 48,
    "P2": 120,
    "P3": 240,
    "P4": 480,
}
DEFAULT_PRIORITY = "P3"
NEAR_BREACH_HOURS = 24
SLA_COMPLIANCE_TARGET = 90  # percent, dashboard goal

# ── Work queues ─────────────────────────────────────────────────────
QUEUE_PAGE_SIZE = 20
BULK_TRANSITION_LIMIT = 50  # max cases per bulk transition

# ── Case identifiers ────────────────────────────────────────────────
STATE_CODE = "AP"
UNKNOWN_DISTRICT_CODE = "UNK"

DISTRICT_CODES: dict[str, str] = {
    "SPSR Nellore": "NLR",
    "Guntur": "GTR",
    "Vijayawada": "VJW",
    "Visakhapatnam": "VSP",
    "Krishna": "KRS",
    "West Godavari": "WGD",
    "East Godavari": "EGD",
    "Chittoor": "CTR",
    "Kadapa": "KDP",
    "Anantapur": "ATP",
    "Kurnool": "KNL",
    "Prakasam": "PKM",
    "Srikakulam": "SKL",
    "Vizianagaram": "VZM",
}

# ── Department directory (routing targets) ──────────────────────────
DEPARTMENTS: dict[str, dict[str, Any]] = {
    "water": {
        "name": "Water Supply Department",
        "description": "Water connections, quality issues, billing",
        "officers": ["Chief Engineer - Water", "Assistant Engineer - Zone 1", "Assistant Engineer - Zone 2"],
    },
    "electricity": {
        "name": "Electricity Department",
        "description": "Power supply, connections, faults",
        "officers": ["Superintending Engineer", "Assistant Engineer - Urban", "Assistant Engineer - Rural"],
    },
    "roads": {
        "name": "Roads & Buildings Department",
        "description": "Road maintenance, construction, infrastructure",
        "officers": ["Executive Engineer", "Assistant Engineer - Roads", "Junior Engineer"],
    },
    "municipal": {
        "name": "Municipal Corporation",
        "description": "Sanitation, permits, local administration",
        "officers": ["Municipal Commissioner", "Health Officer", "Engineering Officer"],
    },
    "health": {
        "name": "Health Department",
        "description": "Healthcare services, hospital administration",
        "officers": ["District Medical Officer", "Civil Surgeon", "Public Health Officer"],
    },
}

ROUTING_PRIORITIES = ("urgent", "high", "normal")


def engine_setting(name: str) -> Any:
    """
    Return ``settings.CASE_ENGINE[name]``, falling back to this module's
    constant of the same name.
    """
    from django.conf import settings  # lazy

    overrides = getattr(settings, "CASE_ENGINE", {}) or {}
    if name in overrides:
        return overrides[name]
    return globals()[name]
