"""
Accounts Service Layer.

Views must remain *thin*: they validate input through serializers, call
a service method, and return the result wrapped in a DRF ``Response``.

- ``UserRegistrationService`` — citizen self-registration.
"""

from __future__ import annotations

import logging
from typing import Any

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction

from core.domain.exceptions import Conflict

from .models import Role

User = get_user_model()
logger = logging.getLogger(__name__)


class UserRegistrationService:

    @staticmethod
    @transaction.atomic
    def register_user(validated_data: dict[str, Any]) -> User:
        """
        Create a citizen account.

        Raises:
            Conflict: If the username, email or phone number is taken.
        """
        data = dict(validated_data)
        data.pop("password_confirm", None)
        password = data.pop("password")
        data["phone_number"] = data.get("phone_number") or None

        try:
            user = User.objects.create_user(password=password, role=Role.CITIZEN, **data)
        except IntegrityError:
            raise Conflict("An account with these details already exists.")

        logger.info("Citizen account %s registered", user.username)
        return user
