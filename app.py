from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from dotenv import load_dotenv

from docstore.backup import Backup, export_backup, restore_backup
from docstore.bridge import AsyncBridgeClient, BridgeServer
from docstore.cache import SecondaryCache
from docstore.cleaner import DatabaseCleaner, ResetSummary
from docstore.disk_store import DiskJsonDocumentStore
from docstore.flags import CleanMarkers, SkipSeed
from docstore.paths import cache_path, data_dir, flags_path
from docstore.recovery import RecoveringReader, SyncResult, sync_ledger_data
from docstore.registry import SeedReport, StoreRegistry
from docstore.services import LedgerService
from settings import Settings, get_settings

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@dataclass
class LedgerApp:
    settings: Settings
    registry: StoreRegistry
    server: BridgeServer
    client: AsyncBridgeClient
    cache: SecondaryCache
    markers: CleanMarkers
    services: LedgerService
    reader: RecoveringReader
    cleaner: DatabaseCleaner
    seed_report: SeedReport = field(default_factory=SeedReport)
    force_reloaded: bool = False

    async def clean_database(self) -> ResetSummary:
        return await self.cleaner.clean()

    async def sync_ledger_data(self) -> SyncResult:
        return await sync_ledger_data(self.reader, self.cache)

    async def export_backup(self) -> Backup:
        return await export_backup(self.client)

    async def restore_backup(self, backup: Backup | dict, *, replace: bool = False) -> dict[str, int]:
        return await restore_backup(self.client, backup, replace=replace)

    def repair_cache(self) -> list[str]:
        return self.cache.repair()


def create_app(settings: Settings | None = None, *, on_reload: Callable[[], object] | None = None) -> LedgerApp:
    """
    Open the store, seed it (unless a recent reset asked us not to) and wire
    up the bridge and the caller-side layers. Seeding completes before the
    bridge accepts its first call.
    """
    load_dotenv("local.env")
    settings = settings or get_settings()

    base = data_dir(settings.data_dir or None)
    registry = StoreRegistry(base)
    markers = CleanMarkers(DiskJsonDocumentStore(flags_path(base)), ttl_seconds=settings.clean_marker_ttl_seconds)
    cache = SecondaryCache(DiskJsonDocumentStore(cache_path(base)))

    force_reloaded = markers.consume_force_reload()
    skip = markers.skip_seed()
    if not settings.seed_on_start:
        skip = SkipSeed(active=True, reason="seeding disabled by LEDGER_SEED_ON_START")
    report = registry.initialize(skip_seed=skip)

    # The reset marker suppresses exactly one initialization.
    if report.skipped and markers.is_just_cleaned():
        markers.clear()
    if force_reloaded:
        logger.info("clean reload detected, starting from an empty store")

    server = BridgeServer(registry, log_requests=settings.debug_log_requests)
    client = AsyncBridgeClient(server)
    services = LedgerService(client, cache)
    reader = RecoveringReader.default(services, cache)
    cleaner = DatabaseCleaner(
        client,
        cache,
        markers,
        reload_delay_seconds=settings.reload_delay_seconds,
        on_reload=on_reload,
    )

    return LedgerApp(
        settings=settings,
        registry=registry,
        server=server,
        client=client,
        cache=cache,
        markers=markers,
        services=services,
        reader=reader,
        cleaner=cleaner,
        seed_report=report,
        force_reloaded=force_reloaded,
    )


if __name__ == "__main__":
    _settings = get_settings()
    configure_logging(_settings.log_level)
    _app = create_app(_settings)
    logger.info(
        "store ready at %s (seeded: %s)",
        _app.registry.data_dir,
        ", ".join(_app.seed_report.seeded) or "nothing",
    )
