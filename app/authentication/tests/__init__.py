"""
Tests for authentication app.

This package contains test modules for:
- test_managers.py: UserManager create_user / create_superuser tests
- test_services.py: UserIdentityDirectory lookup tests

Usage:
    pytest authentication/tests/
    pytest authentication/tests/test_services.py
"""
