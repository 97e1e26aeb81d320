"""
Provider registry.

Holds one adapter per enabled provider. Built once at startup from
settings (see PaymentsConfig.ready) and read-only afterwards, so it is
safe to share across threads and requests.

Usage:
    from payments.adapters import get_registry

    adapter = get_registry().get("paystack")
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.conf import settings

from payments.exceptions import UnknownProviderError
from payments.state_machines import ProviderName

if TYPE_CHECKING:
    from payments.adapters.base import ProviderAdapter

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Maps provider names to adapter instances."""

    def __init__(self, adapters: list[ProviderAdapter] | None = None):
        self._adapters: dict[str, ProviderAdapter] = {}
        for adapter in adapters or []:
            self.register(adapter)

    def register(self, adapter: ProviderAdapter) -> None:
        if not adapter.name:
            raise ValueError(f"{type(adapter).__name__} has no provider name")
        self._adapters[str(adapter.name)] = adapter

    def get(self, name: str) -> ProviderAdapter:
        """
        Return the adapter registered under name.

        Raises:
            UnknownProviderError: No adapter with that name
        """
        adapter = self._adapters.get((name or "").lower())
        if adapter is None:
            raise UnknownProviderError(
                f"Unknown payment provider: {name}",
                details={"provider": name, "available": self.names()},
            )
        return adapter

    def names(self) -> list[str]:
        return sorted(self._adapters)

    def __contains__(self, name: str) -> bool:
        return (name or "").lower() in self._adapters

    def __len__(self) -> int:
        return len(self._adapters)


def build_from_settings() -> ProviderRegistry:
    """Build the registry for every provider listed in PAYMENT_PROVIDERS."""
    from payments.adapters.paystack_adapter import PaystackAdapter
    from payments.adapters.stripe_adapter import StripeAdapter

    registry = ProviderRegistry()
    for name in settings.PAYMENT_PROVIDERS:
        name = name.strip().lower()
        if name == ProviderName.STRIPE:
            registry.register(
                StripeAdapter(
                    secret_key=settings.STRIPE_SECRET_KEY,
                    webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
                    timeout=settings.STRIPE_API_TIMEOUT_SECONDS,
                )
            )
        elif name == ProviderName.PAYSTACK:
            registry.register(
                PaystackAdapter(
                    secret_key=settings.PAYSTACK_SECRET_KEY,
                    base_url=settings.PAYSTACK_BASE_URL,
                    timeout=settings.PAYSTACK_API_TIMEOUT_SECONDS,
                )
            )
        else:
            logger.warning(
                "Ignoring unsupported payment provider in settings",
                extra={"provider": name},
            )

    logger.info("Payment providers registered", extra={"providers": registry.names()})
    return registry


_registry: ProviderRegistry | None = None


def get_registry() -> ProviderRegistry:
    """Process-wide registry, built lazily if ready() has not run."""
    global _registry
    if _registry is None:
        _registry = build_from_settings()
    return _registry


def set_registry(registry: ProviderRegistry | None) -> None:
    """Install a registry (startup, tests). None forces a rebuild on next use."""
    global _registry
    _registry = registry
