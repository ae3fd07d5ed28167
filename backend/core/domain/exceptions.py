"""
core.domain.exceptions — Domain-specific exception hierarchy.

These exceptions represent business-rule violations inside the case
lifecycle engine.  They are deliberately **not** DRF exceptions so that
the registry, SLA clock and verification rules stay framework-agnostic
and can be exercised without a request.  The global DRF exception
handler (``core.domain.exception_handler``) maps them to responses.

Mapping cheatsheet
------------------
┌─────────────────────────┬──────────────────────────────┬──────┐
│ Domain Exception        │ Meaning                      │ Code │
├─────────────────────────┼──────────────────────────────┼──────┤
│ DomainError             │ Generic business-rule error  │ 400  │
│ UnknownCategory         │ Category not registered      │ 400  │
│ UnknownStatus           │ Status not in vocabulary     │ 400  │
│ PermissionDenied        │ Actor role not allowed       │ 403  │
│ NotFound                │ Case / document / dept       │ 404  │
│ Conflict                │ Clash with current state     │ 409  │
│ InvalidTransition       │ Edge not in category graph   │ 409  │
│ CaseClosed              │ Case is in a terminal status │ 409  │
│ ConcurrentModification  │ Optimistic version mismatch  │ 409  │
│ StageIncomplete         │ Documents still block stage  │ 409  │
│ StageAlreadyCompleted   │ Idempotent race loser        │ 200* │
│ StageMismatch           │ Reviewer stage ≠ current     │ 409  │
│ DocumentNotPending      │ Document already decided     │ 409  │
│ VerificationClosed      │ Verified / rejected workflow │ 409  │
│ VerificationRequired    │ Gated status needs VERIFIED  │ 409  │
└─────────────────────────┴──────────────────────────────┴──────┘

(*) ``StageAlreadyCompleted`` is answered by the view as a no-op success.

Usage inside a service::

    from core.domain.exceptions import InvalidTransition

    raise InvalidTransition(
        category="Grievance",
        current="ASSIGNED",
        target="CLOSED",
        allowed=["IN_PROGRESS", "DEPT_ESCALATED"],
    )
"""

from __future__ import annotations

from typing import Iterable


class DomainError(Exception):
    """
    Base class for all domain / business-rule errors.

    Catch this at the view boundary and convert to a 400 Bad Request.
    """

    def __init__(self, message: str = "A business rule was violated.") -> None:
        self.message = message
        super().__init__(self.message)

    def extra(self) -> dict:
        """Additional payload merged into the error response body."""
        return {}


class PermissionDenied(DomainError):
    """
    The acting user does not hold the role required for this operation.

    Maps to HTTP 403.
    """

    def __init__(self, message: str = "You do not have permission to perform this action.") -> None:
        super().__init__(message)


class NotFound(DomainError):
    """
    The requested case, document or department does not exist.

    Maps to HTTP 404.
    """

    def __init__(self, message: str = "The requested resource was not found.") -> None:
        super().__init__(message)


class UnknownCategory(DomainError):
    """A category name that is not registered with the case registry."""

    def __init__(self, category: str) -> None:
        super().__init__(f"Unknown case category '{category}'.")
        self.category = category


class UnknownStatus(DomainError):
    """A status that is not a member of the category's vocabulary."""

    def __init__(self, category: str, status: str) -> None:
        super().__init__(f"'{status}' is not a valid status for category {category}.")
        self.category = category
        self.status = status


class Conflict(DomainError):
    """
    The operation conflicts with the current state of the resource.

    Maps to HTTP 409.
    """

    def __init__(self, message: str = "The operation conflicts with the current state.") -> None:
        super().__init__(message)


class InvalidTransition(Conflict):
    """
    A status change that is not an edge of the category's transition graph.

    Carries the legal next statuses so that the caller can present them.

    Example::

        raise InvalidTransition(
            category="Grievance",
            current="NEW",
            target="RESOLVED",
            allowed=["TRIAGED", "ASSIGNED", "CLOSED"],
        )
    """

    def __init__(
        self,
        message: str | None = None,
        *,
        category: str | None = None,
        current: str | None = None,
        target: str | None = None,
        allowed: Iterable[str] = (),
    ) -> None:
        self.category = category
        self.current = current
        self.target = target
        self.allowed = list(allowed)
        if message is None:
            message = f"Cannot move to {target} from {current}"
            if category:
                message += f" for category {category}"
            if self.allowed:
                message += f"; allowed next statuses: {', '.join(self.allowed)}"
            else:
                message += f"; {current} is a terminal status"
            message += "."
        super().__init__(message)

    def extra(self) -> dict:
        return {"allowed": self.allowed}


class CaseClosed(Conflict):
    """The case is in a terminal status and no longer accepts commands."""

    def __init__(self, case_id: str, status: str) -> None:
        super().__init__(f"Case {case_id} is closed ({status}); no further changes are permitted.")
        self.case_id = case_id
        self.status = status


class ConcurrentModification(Conflict):
    """
    The case changed between read and write (optimistic-lock failure).

    The caller should refetch the case and retry; the engine never retries
    on its own.
    """

    def __init__(self, case_id: str, expected_version: int | None = None) -> None:
        message = f"Case {case_id} was modified concurrently"
        if expected_version is not None:
            message += f" (expected version {expected_version})"
        super().__init__(message + "; refetch and retry.")
        self.case_id = case_id
        self.expected_version = expected_version


class StageIncomplete(Conflict):
    """``complete_stage`` attempted while some documents are not approved."""

    def __init__(self, stage: int, blocking: Iterable[int]) -> None:
        self.stage = stage
        self.blocking = list(blocking)
        super().__init__(
            f"Stage {stage} cannot be completed: {len(self.blocking)} document(s) "
            f"are pending or rejected."
        )

    def extra(self) -> dict:
        return {"blocking_documents": self.blocking}


class StageAlreadyCompleted(Conflict):
    """The stage was already completed, typically by a concurrent reviewer."""

    def __init__(self, stage: int) -> None:
        super().__init__(f"Stage {stage} has already been completed.")
        self.stage = stage


class StageMismatch(Conflict):
    """The reviewer's stage does not match the verification's current stage."""

    def __init__(self, reviewer_stage: int, current_stage: int) -> None:
        super().__init__(
            f"Stage {reviewer_stage} review is not possible while verification "
            f"is at stage {current_stage}."
        )
        self.reviewer_stage = reviewer_stage
        self.current_stage = current_stage


class DocumentNotPending(Conflict):
    """The document has already been decided for the requested stage."""

    def __init__(self, document_id: int, status: str) -> None:
        super().__init__(
            f"Document {document_id} is not awaiting review (status {status}); "
            f"submit a corrected document instead."
        )
        self.document_id = document_id
        self.status = status


class VerificationClosed(Conflict):
    """The verification workflow has ended (VERIFIED or REJECTED)."""

    def __init__(self, overall_status: str) -> None:
        super().__init__(f"Verification is {overall_status}; documents can no longer change.")
        self.overall_status = overall_status


class VerificationRequired(Conflict):
    """A status gated behind a completed two-stage verification."""

    def __init__(self, target: str) -> None:
        super().__init__(f"Documents must be fully verified before moving to {target}.")
        self.target = target
