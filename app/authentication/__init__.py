"""
Authentication application.

Email-based custom User model plus the identity directory the payments
core uses to resolve a payer's email and customer segment.

Usage:
    from authentication.models import User
    from authentication.services import UserIdentityDirectory
"""
