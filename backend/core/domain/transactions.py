"""
core.domain.transactions — Helpers for safe, versioned case mutations.

Every command of the lifecycle engine is a single read-modify-write
against one case.  This module wraps the two concurrency tools the
service layer uses:

* **Optimistic versioning** — ``versioned_update`` issues
  ``UPDATE ... WHERE pk = ? AND version = ?`` and raises
  ``ConcurrentModification`` when the row moved on.  Two reviewers who
  both saw "all documents approved" therefore cannot both complete the
  same stage: exactly one UPDATE matches.
* **Row locks for counters** — ``lock_for_update`` wraps
  ``select_for_update`` for the identifier / outward-number sequences,
  which must never hand out the same value twice.

Usage::

    from core.domain.transactions import versioned_update

    with transaction.atomic():
        case = CaseQueryService.get_case(case_id)
        ...validate...
        versioned_update(case, expected_version=case.version, status="TRIAGED")

    # Counters:
    from core.domain.transactions import lock_for_update, run_in_atomic
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar

from django.db import models, transaction
from django.db.models import F
from django.utils import timezone

from core.domain.exceptions import ConcurrentModification, NotFound

T = TypeVar("T")
M = TypeVar("M", bound=models.Model)


def check_expected_version(instance: models.Model, expected_version: int | None) -> None:
    """
    Compare a caller-supplied version with the freshly loaded row.

    ``None`` means the caller did not pin a version (last read wins
    within the command's own atomic unit).

    Raises:
        ConcurrentModification: If the versions differ.
    """
    if expected_version is not None and instance.version != expected_version:
        raise ConcurrentModification(str(instance.pk), expected_version)


def versioned_update(
    instance: M,
    *,
    expected_version: int,
    **changes: Any,
) -> M:
    """
    Persist ``changes`` only if the row still carries ``expected_version``.

    Must be called inside ``transaction.atomic()``.  On success the
    in-memory instance receives the new field values and its ``version``
    is incremented, mirroring the database row.

    Args:
        instance:         Model instance with a ``version`` field.
        expected_version: The version read at the start of the command.
        **changes:        Field values to write together with the bump.

    Returns:
        The same instance, updated in place.

    Raises:
        ConcurrentModification: If no row matched (another command won).
    """
    model_class = type(instance)
    now = timezone.now()

    updated = (
        model_class.objects
        .filter(pk=instance.pk, version=expected_version)
        .update(version=F("version") + 1, updated_at=now, **changes)
    )
    if updated == 0:
        raise ConcurrentModification(str(instance.pk), expected_version)

    for field, value in changes.items():
        setattr(instance, field, value)
    instance.version = expected_version + 1
    instance.updated_at = now
    return instance


def run_in_atomic(fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """
    Execute ``fn(*args, **kwargs)`` inside ``transaction.atomic()``.

    Convenient when a helper should be fully atomic but the caller
    decides on atomicity (e.g. the sequence counters, which may run
    standalone or nested inside a command).

    Raises:
        Any exception raised by ``fn`` — the transaction is rolled back.
    """
    with transaction.atomic():
        return fn(*args, **kwargs)


def lock_for_update(model_class: type[M], **lookup: Any) -> M:
    """
    Acquire a row-level lock, creating the row first when it is missing.

    Convenience wrapper around ``select_for_update().get_or_create()``
    that must be called inside an ``atomic()`` block.

    Args:
        model_class: The Django model class.
        **lookup:    Unique lookup identifying the row.

    Returns:
        The locked model instance.
    """
    instance, _ = model_class.objects.select_for_update().get_or_create(**lookup)
    return instance


def get_or_not_found(model_class: type[M], message: str | None = None, **lookup: Any) -> M:
    """
    ``objects.get(**lookup)`` translating ``DoesNotExist`` to ``NotFound``.
    """
    try:
        return model_class.objects.get(**lookup)
    except model_class.DoesNotExist:
        raise NotFound(
            message or f"{model_class.__name__} matching {lookup} does not exist."
        )
