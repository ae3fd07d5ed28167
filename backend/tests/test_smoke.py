"""
Smoke tests — verify that Django boots, URL routing resolves, and
the core domain modules are importable.

These tests do NOT require real data — they just prove the plumbing
works.
"""

from __future__ import annotations

import pytest
from django.urls import resolve, reverse


# ════════════════════════════════════════════════════════════════════
#  URL Routing Smoke Tests
# ════════════════════════════════════════════════════════════════════

class TestURLRouting:
    """Ensure all top-level app URL names reverse to their prefixes."""

    EXPECTED_URLS = [
        # (url_name, expected_path_prefix)
        ("case-list",                 "/api/cases/"),
        ("case-statuses",             "/api/cases/statuses/"),
        ("accounts:login",            "/api/accounts/auth/login/"),
        ("accounts:me",               "/api/accounts/me/"),
        ("core:system-constants",     "/api/core/constants/"),
        ("core:notification-list",    "/api/core/notifications/"),
        ("queues:all-items",          "/api/queues/all/"),
        ("queues:my-approvals",       "/api/queues/my-approvals/"),
        ("queues:sla-summary",        "/api/queues/sla-summary/"),
    ]

    @pytest.mark.parametrize("url_name,expected_prefix", EXPECTED_URLS)
    def test_url_resolves(self, url_name: str, expected_prefix: str):
        """Named URL reverses to the expected path prefix."""
        url = reverse(url_name)
        assert url.startswith(expected_prefix), (
            f"{url_name} resolved to {url}, expected prefix {expected_prefix}"
        )

    @pytest.mark.parametrize("url_name,expected_prefix", EXPECTED_URLS)
    def test_url_resolve_matches_view(self, url_name: str, expected_prefix: str):
        """Path resolves to a view function (not a 404)."""
        match = resolve(expected_prefix)
        assert match.func is not None

    def test_case_action_urls(self):
        case_id = "GRV-AP-NLR-2025-000001-4K"
        assert reverse("case-transition", kwargs={"pk": case_id}) == f"/api/cases/{case_id}/transition/"
        assert (
            reverse("case-review-document", kwargs={"pk": case_id, "document_pk": 7})
            == f"/api/cases/{case_id}/documents/7/review/"
        )
        assert (
            reverse("case-complete-stage", kwargs={"pk": case_id})
            == f"/api/cases/{case_id}/verification/complete-stage/"
        )


# ════════════════════════════════════════════════════════════════════
#  Core Domain Module Import Tests
# ════════════════════════════════════════════════════════════════════

class TestCoreDomainImports:
    """Verify that shared domain utility modules are importable."""

    def test_import_exceptions(self):
        from core.domain.exceptions import (
            CaseClosed,
            Conflict,
            ConcurrentModification,
            DomainError,
            InvalidTransition,
            NotFound,
            PermissionDenied,
            StageAlreadyCompleted,
            UnknownStatus,
        )
        # Ensure they form an inheritance chain
        assert issubclass(InvalidTransition, Conflict)
        assert issubclass(CaseClosed, Conflict)
        assert issubclass(ConcurrentModification, Conflict)
        assert issubclass(StageAlreadyCompleted, Conflict)
        assert issubclass(Conflict, DomainError)
        assert issubclass(UnknownStatus, DomainError)
        assert issubclass(PermissionDenied, DomainError)
        assert issubclass(NotFound, DomainError)

    def test_import_notifications(self):
        from core.domain.notifications import NotificationService
        assert hasattr(NotificationService, "notify")
        assert hasattr(NotificationService, "create")

    def test_import_transactions(self):
        from core.domain.transactions import (
            get_or_not_found,
            lock_for_update,
            run_in_atomic,
            versioned_update,
        )
        assert callable(versioned_update)
        assert callable(run_in_atomic)
        assert callable(lock_for_update)
        assert callable(get_or_not_found)


# ════════════════════════════════════════════════════════════════════
#  Exception Behaviour Tests
# ════════════════════════════════════════════════════════════════════

class TestDomainExceptions:
    """Unit tests for domain exception classes."""

    def test_domain_error_message(self):
        from core.domain.exceptions import DomainError
        err = DomainError("test message")
        assert str(err) == "test message"

    def test_invalid_transition_structured(self):
        from core.domain.exceptions import InvalidTransition
        err = InvalidTransition(
            category="Grievance",
            current="NEW",
            target="RESOLVED",
            allowed=["TRIAGED", "ASSIGNED", "CLOSED"],
        )
        assert "NEW" in str(err)
        assert "RESOLVED" in str(err)
        assert "TRIAGED, ASSIGNED, CLOSED" in str(err)
        assert err.extra() == {"allowed": ["TRIAGED", "ASSIGNED", "CLOSED"]}

    def test_invalid_transition_from_terminal(self):
        from core.domain.exceptions import InvalidTransition
        err = InvalidTransition(current="CLOSED", target="NEW")
        assert "terminal" in str(err)
        assert err.allowed == []

    def test_invalid_transition_plain_message(self):
        from core.domain.exceptions import InvalidTransition
        err = InvalidTransition("Cannot close case.")
        assert str(err) == "Cannot close case."


# ════════════════════════════════════════════════════════════════════
#  Access Helper Unit Tests
# ════════════════════════════════════════════════════════════════════

class TestAccessHelpers:
    """Unit tests for core.domain.access helpers."""

    def test_actor_from_user(self):
        from unittest.mock import MagicMock
        from core.constants import ROLE_EXEC_ADMIN
        from core.domain.access import Actor

        user = MagicMock()
        user.pk = 12
        user.get_full_name.return_value = "Ravi Kumar"
        user.role = ROLE_EXEC_ADMIN

        actor = Actor.from_user(user)
        assert actor.id == "12"
        assert actor.name == "Ravi Kumar"
        assert actor.review_stage == 1

    def test_actor_falls_back_to_username(self):
        from unittest.mock import MagicMock
        from core.constants import ROLE_CITIZEN
        from core.domain.access import Actor

        user = MagicMock()
        user.pk = 3
        user.get_full_name.return_value = ""
        user.username = "lakshmi"
        user.role = ROLE_CITIZEN

        actor = Actor.from_user(user)
        assert actor.name == "lakshmi"
        assert actor.review_stage is None

    def test_require_role_raises(self):
        """require_role raises PermissionDenied for wrong role."""
        from core.constants import ROLE_CITIZEN, ROLE_EXEC_ADMIN, ROLE_MASTER_ADMIN
        from core.domain.access import Actor, require_role
        from core.domain.exceptions import PermissionDenied

        citizen = Actor(id="1", name="Lakshmi", role=ROLE_CITIZEN)
        with pytest.raises(PermissionDenied):
            require_role(citizen, ROLE_EXEC_ADMIN, ROLE_MASTER_ADMIN)

    def test_require_role_passes(self):
        from core.constants import ROLE_MASTER_ADMIN
        from core.domain.access import Actor, require_role

        master = Actor(id="2", name="Suresh", role=ROLE_MASTER_ADMIN)
        assert require_role(master, ROLE_MASTER_ADMIN) is None

    def test_system_actor(self):
        from core.constants import ROLE_SYSTEM
        from core.domain.access import Actor

        system = Actor.system()
        assert system.role == ROLE_SYSTEM
        assert system.review_stage is None
