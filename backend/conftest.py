"""
Root conftest.py — shared fixtures for the entire test suite.

Provides:
  - ``api_client`` fixture returning a DRF ``APIClient``.
  - ``create_user`` factory fixture for creating portal users.
  - ``auth_header`` fixture for authenticated requests (JWT).
  - ``citizen`` / ``exec_actor`` / ``master_actor`` domain actors.
"""

from __future__ import annotations

import pytest
from rest_framework.test import APIClient


@pytest.fixture()
def api_client() -> APIClient:
    """Unauthenticated DRF test client."""
    return APIClient()


@pytest.fixture()
def create_user(db):
    """
    Factory fixture that creates a user with sensible defaults.

    Usage::

        def test_something(create_user):
            user = create_user(username="alice")
            # or a reviewer:
            user = create_user(
                username="bob",
                password="Str0ng!Pass",
                role=Role.EXEC_ADMIN,
                first_name="Bob",
                last_name="Reddy",
            )
    """
    from accounts.models import Role, User

    _counter = 0

    def _factory(
        *,
        username: str | None = None,
        password: str = "TestPass123!",
        email: str | None = None,
        phone_number: str | None = None,
        role: str = Role.CITIZEN,
        is_active: bool = True,
        **kwargs,
    ) -> User:
        nonlocal _counter
        _counter += 1
        if username is None:
            username = f"testuser{_counter}"
        if email is None:
            email = f"{username}@test.local"
        if phone_number is None:
            phone_number = f"98{_counter:08d}"

        return User.objects.create_user(
            username=username,
            password=password,
            email=email,
            phone_number=phone_number,
            role=role,
            is_active=is_active,
            **kwargs,
        )

    return _factory


@pytest.fixture()
def auth_header(create_user):
    """
    Returns a helper function that creates a user and returns an
    ``Authorization`` header dict with a valid JWT access token.

    Usage::

        def test_protected(auth_header, api_client):
            header = auth_header(username="alice", role=Role.EXEC_ADMIN)
            api_client.credentials(HTTP_AUTHORIZATION=header["Authorization"])
            resp = api_client.get("/api/queues/all/")
            assert resp.status_code == 200
    """
    from rest_framework_simplejwt.tokens import AccessToken

    def _make(
        *,
        username: str | None = None,
        role: str | None = None,
        **user_kwargs,
    ) -> dict[str, str]:
        if role is not None:
            user_kwargs["role"] = role
        user = create_user(username=username, **user_kwargs)
        token = AccessToken.for_user(user)
        return {"Authorization": f"Bearer {token}"}

    return _make


# ── Domain actors ───────────────────────────────────────────────────

@pytest.fixture()
def citizen():
    from core.constants import ROLE_CITIZEN
    from core.domain.access import Actor

    return Actor(id="citizen-1", name="Lakshmi Devi", role=ROLE_CITIZEN)


@pytest.fixture()
def exec_actor():
    from core.constants import ROLE_EXEC_ADMIN
    from core.domain.access import Actor

    return Actor(id="exec-1", name="Ravi Kumar", role=ROLE_EXEC_ADMIN)


@pytest.fixture()
def master_actor():
    from core.constants import ROLE_MASTER_ADMIN
    from core.domain.access import Actor

    return Actor(id="master-1", name="Suresh Naidu", role=ROLE_MASTER_ADMIN)
