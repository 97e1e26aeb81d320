"""
Tests for payments app.

This package contains test modules for:
- test_state_transitions.py: Transaction / Subscription / WebhookEvent state machines
- test_views.py: Checkout, verify, transaction list and cancel endpoints

Adapter, service and webhook tests live beside their packages.

Usage:
    pytest payments/
    pytest payments/tests/test_views.py
"""
