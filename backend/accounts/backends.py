"""
Login backend for portal users.

Citizens usually remember the phone number or email they registered
with rather than a username, so the login form takes a single
``identifier`` and this backend works out which account it names.
Registered in ``settings.AUTHENTICATION_BACKENDS`` ahead of Django's
``ModelBackend``.
"""

from __future__ import annotations

import logging

from django.contrib.auth import get_user_model
from django.contrib.auth.backends import ModelBackend
from django.db.models import Q

User = get_user_model()
logger = logging.getLogger(__name__)


def identifier_lookup(identifier: str) -> Q:
    """Username (exact), email (case-insensitive) or phone number."""
    phone = identifier.replace(" ", "").replace("-", "")
    return (
        Q(username=identifier)
        | Q(email__iexact=identifier)
        | Q(phone_number=phone)
    )


class MultiFieldAuthBackend(ModelBackend):
    """``authenticate(identifier=..., password=...)`` over the three login fields."""

    def authenticate(self, request, identifier=None, password=None, **kwargs):
        identifier = (identifier or "").strip()
        if not identifier or password is None:
            return None

        candidates = list(User.objects.filter(identifier_lookup(identifier))[:2])
        if len(candidates) != 1:
            if candidates:
                logger.warning("Login identifier %r matches more than one account", identifier)
            # equalise timing with a real check
            User().set_password(password)
            return None

        user = candidates[0]
        if user.check_password(password) and self.user_can_authenticate(user):
            return user
        return None
