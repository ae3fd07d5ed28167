"""
core.domain — Shared domain utilities for the case-engine service layers.

Modules
-------
exceptions         Domain-specific exceptions that map cleanly to HTTP responses.
exception_handler  DRF handler turning those exceptions into responses.
notifications      After-commit, best-effort notification side effects.
transactions       Optimistic versioning and ``select_for_update`` helpers.
access             The ``Actor`` passed into every command, plus role guards.

Usage from any app::

    from core.domain.exceptions import DomainError, InvalidTransition
    from core.domain.notifications import NotificationService
    from core.domain.transactions import versioned_update
    from core.domain.access import Actor, require_role
"""
