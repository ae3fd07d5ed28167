"""
core.domain.access — The acting identity passed into every command.

The engine never inspects request objects or authentication state; it
receives an already-authenticated ``Actor`` (id + display name + role).
Role checks that decide *who may call a command* live in the caller
layer (views) through ``require_role``; the verification rules only use
``Actor.review_stage`` to match the reviewer against the current stage.

Usage::

    from core.domain.access import Actor, require_role

    actor = Actor.from_user(request.user)
    require_role(actor, ROLE_EXEC_ADMIN, ROLE_MASTER_ADMIN)
    CaseLifecycleService.transition_status(case_id, "TRIAGED", actor)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from core.constants import REVIEW_STAGE_BY_ROLE, ROLE_SYSTEM
from core.domain.exceptions import PermissionDenied

if TYPE_CHECKING:
    from accounts.models import User


@dataclass(frozen=True)
class Actor:
    """Immutable actor reference recorded on timeline events."""

    id: str
    name: str
    role: str

    @classmethod
    def from_user(cls, user: User) -> Actor:
        name = user.get_full_name() or user.username
        return cls(id=str(user.pk), name=name, role=user.role)

    @classmethod
    def system(cls) -> Actor:
        return cls(id="system", name="System", role=ROLE_SYSTEM)

    @property
    def review_stage(self) -> int | None:
        """Verification stage this actor reviews at, or ``None``."""
        return REVIEW_STAGE_BY_ROLE.get(self.role)

    def __str__(self) -> str:
        return f"{self.name} ({self.role})"


def require_role(actor: Actor, *allowed_roles: str, message: str = "") -> None:
    """
    Guard that raises ``PermissionDenied`` if the actor's role is not
    among ``allowed_roles``.

    Example::

        require_role(actor, ROLE_MASTER_ADMIN)
    """
    if actor.role not in allowed_roles:
        raise PermissionDenied(
            message
            or f"Role '{actor.role}' is not permitted for this operation. "
            f"Required: {', '.join(allowed_roles)}."
        )
