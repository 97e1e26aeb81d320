"""
Authentication models.

This module defines the custom User model with email-based authentication.
Beyond login concerns the user carries the one customer-segment flag the
payments core reads: whether the account belongs to a student, who qualify
for the long-term installment plan.

Related files:
    - managers.py: Custom user manager for email-based creation
    - services.py: Identity lookups consumed by the payments core
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique, used for login
        first_name / last_name: Display name used on receipts and tasks
        is_student: Qualifies the user for the long-term installment plan
        is_active: Whether the user account is active
        is_staff: Whether the user can access Django admin
        date_joined: When the user account was created

    Usage:
        user = User.objects.create_user(
            email="client@example.com",
            password="securepassword",
            first_name="Ada",
            is_student=True,
        )
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )
    first_name = models.CharField(
        max_length=150,
        blank=True,
        default="",
        help_text="Given name",
    )
    last_name = models.CharField(
        max_length=150,
        blank=True,
        default="",
        help_text="Family name",
    )

    is_student = models.BooleanField(
        default=False,
        help_text="Student accounts qualify for the long-term installment plan",
    )

    # Account status flags
    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    # Timestamps
    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.email

    def get_full_name(self):
        """Return "first last", falling back to the email address."""
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name or self.email

    def get_short_name(self):
        return self.first_name or self.email
