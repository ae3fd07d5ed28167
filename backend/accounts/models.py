"""
Accounts app models.

Defines the custom ``User`` used by the portal.  Each user holds exactly
one portal role; the role decides which review stage they act at and
which commands the case endpoints let them call:

* ``L1_MASTER_ADMIN`` — master-level reviewer (stage 2, sanctions).
* ``L2_EXEC_ADMIN``   — executive-level reviewer (stage 1, triage).
* ``L3_CITIZEN``      — citizen submitting requests and documents.
"""

from django.contrib.auth.models import AbstractUser
from django.db import models

from core.constants import ROLE_CITIZEN, ROLE_EXEC_ADMIN, ROLE_MASTER_ADMIN


class Role(models.TextChoices):
    MASTER_ADMIN = ROLE_MASTER_ADMIN, "Master Admin"
    EXEC_ADMIN = ROLE_EXEC_ADMIN, "Executive Admin"
    CITIZEN = ROLE_CITIZEN, "Citizen"


class User(AbstractUser):
    """
    Portal user.

    Login is supported via *any one* of username / email / phone_number
    together with the password.  New registrations are citizens; staff
    roles are granted by an administrator.
    """

    email = models.EmailField(
        unique=True,
        verbose_name="Email Address",
    )
    phone_number = models.CharField(
        max_length=15,
        unique=True,
        null=True,
        blank=True,
        verbose_name="Phone Number",
        db_index=True,
    )
    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.CITIZEN,
        verbose_name="Portal Role",
        db_index=True,
    )
    department = models.CharField(
        max_length=100,
        blank=True,
        default="",
        verbose_name="Department",
        help_text="Staff department, e.g. 'Water Supply'. Empty for citizens.",
    )

    REQUIRED_FIELDS = ["email"]

    class Meta:
        verbose_name = "User"
        verbose_name_plural = "Users"

    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"

    @property
    def is_staff_reviewer(self) -> bool:
        return self.role in (Role.MASTER_ADMIN, Role.EXEC_ADMIN)
