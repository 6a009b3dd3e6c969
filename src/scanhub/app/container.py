from __future__ import annotations

from typing import Iterator

import requests
from dependency_injector import containers, providers

from ..core.domain.models import AuthConfig
from ..core.services import ChangeDetector, FindingAggregator, RepositoryAnalyzer, ScannerRunner, ScanOrchestrator
from ..core.usecases.analysis import AnalyzeRepositoryUseCase, FetchMetadataBatchUseCase
from ..core.usecases.cache import CacheStatisticsUseCase, ClearCacheUseCase, InvalidateRepositoryCacheUseCase
from ..core.usecases.code_context import CodeContextUseCase
from ..core.usecases.providers import ProviderApiStatusUseCase, ProviderHealthUseCase, RegistryStatisticsUseCase
from ..core.usecases.scan import ScanRepositoryUseCase
from ..core.usecases.statistics import (
    ListScanRecordsUseCase,
    ScanHistoryUseCase,
    ScanStatisticsUseCase,
    StaleRepositoriesUseCase,
)
from ..infra.logging import ScanLogger
from ..infra.providers import (
    BitbucketProvider,
    GenericGitProvider,
    GiteaProvider,
    GitHubProvider,
    GitLabProvider,
    ProviderRegistry,
)
from ..infra.scan_cache import ScanCache
from ..infra.scan_history import ScanHistoryStore
from ..infra.scanners import build_scanners
from ..infra.webhooks import WebhookNotifier
from ..infra.workspace import Workspace


def _http_session() -> Iterator[requests.Session]:
    session = requests.Session()
    yield session
    session.close()


def _scan_cache(
    *,
    ttl_seconds: float,
    max_entries: int,
    cleanup_interval_seconds: float,
) -> Iterator[ScanCache]:
    cache = ScanCache(
        ttl_seconds=ttl_seconds,
        max_entries=max_entries,
        cleanup_interval_seconds=cleanup_interval_seconds,
    )
    cache.start()
    yield cache
    cache.stop()


class Container(containers.DeclarativeContainer):
    """DI container; populated from AppConfig via ``config.from_pydantic``."""

    config = providers.Configuration()

    # Logger (Resource: manages lifecycle with init/shutdown)
    logger = providers.Resource(
        ScanLogger,
        logs_dir=config.directories.logs_dir,
        logger_name=config.logging.logger_name,
        console_output=config.logging.console_output,
        file_output=config.logging.file_output,
        level=config.logging.level,
    )

    http_session = providers.Resource(_http_session)

    workspace = providers.Singleton(
        Workspace,
        base_dir=config.directories.workspace_dir,
    )

    # State shared by every scan in this process
    cache = providers.Resource(
        _scan_cache,
        ttl_seconds=config.cache.ttl_seconds,
        max_entries=config.cache.max_entries,
        cleanup_interval_seconds=config.cache.cleanup_interval_seconds,
    )

    history = providers.Singleton(ScanHistoryStore)

    # Provider adapters; host-specific first, generic git last
    github = providers.Singleton(
        GitHubProvider,
        session=http_session,
        api_timeout=config.git.api_timeout_seconds,
        clone_timeout=config.git.clone_timeout_seconds,
        workspace=workspace,
        auth=providers.Factory(AuthConfig.from_token, config.auth.github_token),
    )

    gitlab = providers.Singleton(
        GitLabProvider,
        session=http_session,
        api_timeout=config.git.api_timeout_seconds,
        clone_timeout=config.git.clone_timeout_seconds,
        workspace=workspace,
        auth=providers.Factory(AuthConfig.from_token, config.auth.gitlab_token),
    )

    bitbucket = providers.Singleton(
        BitbucketProvider,
        session=http_session,
        api_timeout=config.git.api_timeout_seconds,
        clone_timeout=config.git.clone_timeout_seconds,
        workspace=workspace,
        auth=providers.Factory(AuthConfig.from_token, config.auth.bitbucket_token),
    )

    gitea = providers.Singleton(
        GiteaProvider,
        session=http_session,
        api_timeout=config.git.api_timeout_seconds,
        clone_timeout=config.git.clone_timeout_seconds,
        workspace=workspace,
        auth=providers.Factory(AuthConfig.from_token, config.auth.gitea_token),
    )

    generic = providers.Singleton(
        GenericGitProvider,
        clone_timeout=config.git.clone_timeout_seconds,
        workspace=workspace,
    )

    registry = providers.Singleton(
        ProviderRegistry,
        providers.List(github, gitlab, bitbucket, gitea, generic),
    )

    # Scanners
    scanners = providers.Singleton(
        build_scanners,
        config.scanners.enabled,
        timeout=config.scanners.timeout_seconds,
    )

    notifier = providers.Singleton(
        WebhookNotifier,
        urls=config.webhooks.urls,
        secret=config.webhooks.secret,
        timeout=config.webhooks.timeout_seconds,
        session=http_session,
    )

    # Domain services
    aggregator = providers.Singleton(FindingAggregator)

    detector = providers.Singleton(ChangeDetector)

    analyzer = providers.Singleton(RepositoryAnalyzer)

    scanner_runner = providers.Factory(
        ScannerRunner,
        scanners=scanners,
        aggregator=aggregator,
        logger=logger,
        parallel=config.scanners.parallel,
        max_workers=config.scanners.max_workers,
    )

    orchestrator = providers.Factory(
        ScanOrchestrator,
        registry=registry,
        cache=cache,
        history=history,
        workspace=workspace,
        runner=scanner_runner,
        aggregator=aggregator,
        detector=detector,
        logger=logger,
        clone_depth=config.git.clone_depth,
        notifier=notifier,
    )

    # Use cases
    scan_uc = providers.Factory(ScanRepositoryUseCase, orchestrator=orchestrator)

    scan_statistics_uc = providers.Factory(ScanStatisticsUseCase, history=history)

    scan_records_uc = providers.Factory(ListScanRecordsUseCase, history=history)

    scan_history_uc = providers.Factory(ScanHistoryUseCase, history=history)

    stale_repositories_uc = providers.Factory(StaleRepositoriesUseCase, history=history)

    cache_statistics_uc = providers.Factory(CacheStatisticsUseCase, cache=cache)

    clear_cache_uc = providers.Factory(ClearCacheUseCase, cache=cache, logger=logger)

    invalidate_cache_uc = providers.Factory(InvalidateRepositoryCacheUseCase, cache=cache, logger=logger)

    code_context_uc = providers.Factory(
        CodeContextUseCase,
        registry=registry,
        workspace=workspace,
        logger=logger,
    )

    provider_health_uc = providers.Factory(ProviderHealthUseCase, registry=registry)

    registry_statistics_uc = providers.Factory(RegistryStatisticsUseCase, registry=registry)

    provider_api_status_uc = providers.Factory(ProviderApiStatusUseCase, registry=registry)

    analyze_repository_uc = providers.Factory(
        AnalyzeRepositoryUseCase,
        registry=registry,
        analyzer=analyzer,
        logger=logger,
    )

    metadata_batch_uc = providers.Factory(
        FetchMetadataBatchUseCase,
        registry=registry,
        logger=logger,
        max_workers=config.analysis.metadata_workers,
    )
