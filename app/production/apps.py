"""
Django app configuration for production.
"""

from django.apps import AppConfig


class ProductionConfig(AppConfig):
    """Configuration for the workshop production application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "production"
    verbose_name = "Production"
