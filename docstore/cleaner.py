from __future__ import annotations

import asyncio
import logging
from typing import Callable

from pydantic import BaseModel, Field, computed_field

from .bridge import AsyncBridgeClient
from .cache import EMPTY_ENTRY, SecondaryCache
from .datasets import AUXILIARY_CACHE_KEYS, CRITICAL_CACHE_KEYS, DATASETS, reset_targets
from .errors import UnknownCollection
from .flags import CleanMarkers

logger = logging.getLogger(__name__)


class TargetResult(BaseModel):
    target: str
    registered: bool = True
    overwritten: bool = False
    removed: int | None = None
    cache_cleared: bool = False
    errors: list[str] = Field(default_factory=list)


class ResetSummary(BaseModel):
    targets: list[TargetResult] = Field(default_factory=list)
    poisoned_keys: list[str] = Field(default_factory=list)
    failed_datasets: list[str] = Field(default_factory=list)
    reload_scheduled: bool = False

    @computed_field
    @property
    def success(self) -> bool:
        return not self.failed_datasets

    @computed_field
    @property
    def partial(self) -> bool:
        """Succeeded overall, but at least one sub-step failed somewhere."""
        return self.success and any(t.errors for t in self.targets)


class DatabaseCleaner:
    """
    Best-effort destructive reset ("clean database").

    Every target is attempted independently: overwrite with an empty set,
    bulk remove, then drop the matching cache entry. A failure in any step is
    logged and recorded, never raised. The reset counts as successful when the
    overwrite succeeded for the canonical collection of every dataset.
    """

    def __init__(
        self,
        client: AsyncBridgeClient,
        cache: SecondaryCache,
        markers: CleanMarkers,
        *,
        reload_delay_seconds: float = 2.0,
        on_reload: Callable[[], object] | None = None,
    ):
        self._client = client
        self._cache = cache
        self._markers = markers
        self._reload_delay = reload_delay_seconds
        self._on_reload = on_reload

    async def _clean_target(self, name: str) -> TargetResult:
        result = TargetResult(target=name)
        try:
            await self._client.set(name, [])
            result.overwritten = True
        except UnknownCollection:
            # Legacy alias with no collection behind it; only its cache entry can exist.
            result.registered = False
        except Exception as e:
            result.errors.append(f"set: {e}")

        if result.registered:
            try:
                result.removed = await self._client.remove(name, {}, {"multi": True})
            except Exception as e:
                result.errors.append(f"remove: {e}")

        try:
            await asyncio.to_thread(self._cache.remove_item, name)
            result.cache_cleared = True
        except Exception as e:
            result.errors.append(f"cache: {e}")

        if result.errors:
            logger.warning("cleaning %s: %s", name, "; ".join(result.errors))
        else:
            logger.debug("cleaned %s", name)
        return result

    def _poison_critical_keys(self) -> list[str]:
        poisoned: list[str] = []
        for key in CRITICAL_CACHE_KEYS:
            try:
                value = self._cache.get_item(key)
                if value is None or value == EMPTY_ENTRY:
                    continue
                logger.warning("%s still present after reset, forcing it empty", key)
                self._cache.set_item(key, EMPTY_ENTRY)
                poisoned.append(key)
            except Exception as e:
                logger.warning("could not verify cache key %s: %s", key, e)
        return poisoned

    async def clean(self) -> ResetSummary:
        logger.warning("performing complete database cleanup")
        summary = ResetSummary()

        for name in reset_targets():
            summary.targets.append(await self._clean_target(name))

        for key in AUXILIARY_CACHE_KEYS:
            try:
                await asyncio.to_thread(self._cache.remove_item, key)
            except Exception as e:
                logger.warning("could not remove cache key %s: %s", key, e)

        summary.poisoned_keys = await asyncio.to_thread(self._poison_critical_keys)

        by_target = {t.target: t for t in summary.targets}
        summary.failed_datasets = [
            d.name for d in DATASETS.values() if not by_target[d.collection].overwritten
        ]

        try:
            await asyncio.to_thread(self._markers.mark_cleaned)
        except Exception as e:
            logger.warning("could not persist clean markers: %s", e)

        if self._on_reload is not None:
            asyncio.get_running_loop().call_later(self._reload_delay, self._on_reload)
            summary.reload_scheduled = True

        if summary.success:
            logger.info("database cleaned (%d targets)", len(summary.targets))
        else:
            logger.warning("database cleaned with failures: %s", ", ".join(summary.failed_datasets))
        return summary
