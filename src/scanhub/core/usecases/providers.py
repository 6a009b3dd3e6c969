from __future__ import annotations

from typing import Any

from ..domain.models import ApiStatus, ProviderHealth
from ..ports import ProviderRegistryPort


class ProviderHealthUseCase:
    def __init__(self, *, registry: ProviderRegistryPort) -> None:
        self._registry = registry

    def execute(self) -> dict[str, ProviderHealth]:
        return self._registry.health_checks()


class ProviderApiStatusUseCase:
    """API availability and remaining quota of every registered provider."""

    def __init__(self, *, registry: ProviderRegistryPort) -> None:
        self._registry = registry

    def execute(self) -> dict[str, ApiStatus]:
        return {p.name: p.get_api_status() for p in self._registry.available_providers()}


class RegistryStatisticsUseCase:
    def __init__(self, *, registry: ProviderRegistryPort) -> None:
        self._registry = registry

    def execute(self) -> dict[str, Any]:
        stats = dict(self._registry.statistics())
        stats["providers"] = [
            {
                "name": p.capabilities.name,
                "platform": p.capabilities.platform.value,
                "hostnames": list(p.capabilities.hostnames),
                "supports_api": p.capabilities.supports_api,
            }
            for p in self._registry.available_providers()
        ]
        return stats
