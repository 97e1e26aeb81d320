"""
Identity lookups exposed to the payments core.

The payments engine never touches the User model directly. It asks an
identity directory for the payer's email, display name and whether the
account qualifies for the long-term installment plan.

Usage:
    from authentication.services import UserIdentityDirectory

    identity = UserIdentityDirectory().get_identity(user_id)
    if identity and identity.is_long_term_customer:
        ...
"""

from __future__ import annotations

import logging

from authentication.models import User
from payments.protocols import PayerIdentity

logger = logging.getLogger(__name__)


class UserIdentityDirectory:
    """IdentityDirectory backed by the local User table."""

    def get_identity(self, user_id: int) -> PayerIdentity | None:
        user = User.objects.filter(pk=user_id, is_active=True).first()
        if user is None:
            logger.info("Identity lookup miss", extra={"user_id": user_id})
            return None

        return PayerIdentity(
            user_id=user.pk,
            email=user.email,
            full_name=user.get_full_name(),
            is_long_term_customer=user.is_student,
        )
