from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from ...core.domain.exceptions import NoProviderError
from ...core.domain.models import AuthConfig, Platform, ProviderHealth
from ...core.ports import ProviderPort

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Ordered collection of provider adapters.

    Lookup returns the first provider whose ``can_handle`` accepts the URL,
    so host-specific adapters must be registered before the generic one.
    """

    def __init__(self, providers: Iterable[ProviderPort] = ()) -> None:
        self._providers: list[ProviderPort] = []
        self._lock = threading.Lock()
        for provider in providers:
            self.register(provider)

    def register(self, provider: ProviderPort) -> None:
        """Append provider; a provider with the same name is replaced in place."""
        with self._lock:
            for i, existing in enumerate(self._providers):
                if existing.name == provider.name:
                    self._providers[i] = provider
                    logger.info("provider_replaced", extra={"provider": provider.name})
                    return
            self._providers.append(provider)
        logger.info("provider_registered", extra={"provider": provider.name})

    def unregister(self, name: str) -> bool:
        with self._lock:
            before = len(self._providers)
            self._providers = [p for p in self._providers if p.name != name]
            removed = len(self._providers) != before
        if removed:
            logger.info("provider_unregistered", extra={"provider": name})
        return removed

    def get(self, name: str) -> Optional[ProviderPort]:
        for provider in self.available_providers():
            if provider.name == name:
                return provider
        return None

    def available_providers(self) -> list[ProviderPort]:
        with self._lock:
            return list(self._providers)

    def get_provider_for_url(self, repo_url: str) -> Optional[ProviderPort]:
        for provider in self.available_providers():
            if provider.can_handle(repo_url):
                return provider
        return None

    def require_provider_for_url(self, repo_url: str) -> ProviderPort:
        provider = self.get_provider_for_url(repo_url)
        if provider is None:
            raise NoProviderError(repo_url)
        return provider

    def providers_for_platform(self, platform: Platform | str) -> list[ProviderPort]:
        value = Platform(platform)
        return [p for p in self.available_providers() if value in p.capabilities.platforms]

    def supported_platforms(self) -> list[Platform]:
        seen: list[Platform] = []
        for provider in self.available_providers():
            for platform in provider.capabilities.platforms:
                if platform not in seen:
                    seen.append(platform)
        return seen

    def supported_hostnames(self) -> list[str]:
        hosts: list[str] = []
        for provider in self.available_providers():
            for host in provider.capabilities.hostnames:
                if host not in hosts:
                    hosts.append(host)
        return hosts

    def is_hostname_supported(self, hostname: str) -> bool:
        return self.get_provider_for_url(f"https://{hostname}/owner/repository") is not None

    def recommendations(self, repo_url: str) -> dict[str, Any]:
        """Primary provider for the URL plus every other provider that accepts it."""
        matching = [p for p in self.available_providers() if p.can_handle(repo_url)]
        return {
            "primary": matching[0] if matching else None,
            "alternatives": matching[1:],
        }

    def statistics(self) -> dict[str, Any]:
        providers = self.available_providers()
        by_platform: dict[str, int] = {}
        for provider in providers:
            key = provider.capabilities.platform.value
            by_platform[key] = by_platform.get(key, 0) + 1
        return {
            "total_providers": len(providers),
            "providers_by_platform": by_platform,
            "api_providers": sum(1 for p in providers if p.capabilities.supports_api),
            "supported_hostnames": len(self.supported_hostnames()),
        }

    def health_checks(self) -> dict[str, ProviderHealth]:
        results: dict[str, ProviderHealth] = {}
        for provider in self.available_providers():
            try:
                results[provider.name] = provider.health_check()
            except Exception as e:
                logger.warning("provider_health_failed", extra={"provider": provider.name, "error": str(e)})
                results[provider.name] = ProviderHealth(
                    is_healthy=False,
                    error=str(e),
                    checked_at=datetime.now(timezone.utc).isoformat(),
                )
        return results

    def configure_platform_auth(self, platform: Platform | str, auth: AuthConfig) -> int:
        """Configure auth on every provider of a platform; returns how many were updated."""
        targets = self.providers_for_platform(platform)
        for provider in targets:
            provider.configure_auth(auth)
        return len(targets)
