from __future__ import annotations

import logging
import threading
import time
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict

from .disk_store import DiskJsonDocumentStore

logger = logging.getLogger(__name__)


class SkipSeed(BaseModel):
    """
    Explicit "do not seed" state handed to StoreRegistry.initialize.

    Carries its own expiry so the check happens when initialization runs,
    not through a timer that flips a global.
    """

    model_config = ConfigDict(frozen=True)

    active: bool = False
    expires_at: float | None = None
    reason: str | None = None

    @classmethod
    def never(cls) -> "SkipSeed":
        return cls()

    @classmethod
    def until(cls, expires_at: float, *, reason: str | None = None) -> "SkipSeed":
        return cls(active=True, expires_at=expires_at, reason=reason)

    def in_effect(self, now: float | None = None) -> bool:
        if not self.active:
            return False
        if self.expires_at is None:
            return True
        ts = time.time() if now is None else now
        return ts < self.expires_at


class PersistedFlags(BaseModel):
    """
    Mirrors the on-disk flags.json schema:
      { "just_cleaned_until": 1700000000.0 | null, "force_clean_reload_until": ... | null }
    """

    just_cleaned_until: float | None = None
    force_clean_reload_until: float | None = None

    @classmethod
    def from_disk_doc(cls, doc: Mapping[str, Any]) -> "PersistedFlags":
        clean = {k: v for k, v in doc.items() if k in cls.model_fields and isinstance(v, (int, float))}
        return cls.model_validate(clean)

    def to_disk_doc(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    def drop_expired(self, now: float) -> bool:
        changed = False
        if self.just_cleaned_until is not None and now >= self.just_cleaned_until:
            self.just_cleaned_until = None
            changed = True
        if self.force_clean_reload_until is not None and now >= self.force_clean_reload_until:
            self.force_clean_reload_until = None
            changed = True
        return changed


class CleanMarkers:
    """
    The "just cleaned" and "force clean reload" markers set by a destructive reset.

    Two layers: an expiry held by this instance only, and persisted flags in
    flags.json. A reload builds a new instance, so only the persisted flags
    carry over to it. Both expire after ``ttl_seconds``.
    """

    def __init__(self, store: DiskJsonDocumentStore, *, ttl_seconds: float = 60.0):
        self._store = store
        self._ttl = float(ttl_seconds)
        self._lock = threading.Lock()
        self._instance_until: float | None = None

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def _load(self, now: float) -> PersistedFlags:
        flags = PersistedFlags.from_disk_doc(self._store.load())
        if flags.drop_expired(now):
            self._store.save(flags.to_disk_doc())
        return flags

    def mark_cleaned(self, now: float | None = None) -> SkipSeed:
        ts = time.time() if now is None else now
        until = ts + self._ttl
        with self._lock:
            self._instance_until = until
            flags = PersistedFlags(just_cleaned_until=until, force_clean_reload_until=until)
            self._store.save(flags.to_disk_doc())
        logger.info("clean markers set, reseeding suppressed for %.0fs", self._ttl)
        return SkipSeed.until(until, reason="just cleaned")

    def skip_seed(self, now: float | None = None) -> SkipSeed:
        """Current seeding suppression, combining the instance flag with the persisted one."""
        ts = time.time() if now is None else now
        with self._lock:
            if self._instance_until is not None and ts >= self._instance_until:
                self._instance_until = None
            candidates = [self._instance_until, self._load(ts).just_cleaned_until]
        live = [c for c in candidates if c is not None]
        if not live:
            return SkipSeed.never()
        return SkipSeed.until(max(live), reason="just cleaned")

    def is_just_cleaned(self, now: float | None = None) -> bool:
        return self.skip_seed(now).in_effect(now)

    def consume_force_reload(self, now: float | None = None) -> bool:
        """True once after a reset requested a clean reload; the flag is cleared on read."""
        ts = time.time() if now is None else now
        with self._lock:
            flags = self._load(ts)
            if flags.force_clean_reload_until is None:
                return False
            flags.force_clean_reload_until = None
            self._store.save(flags.to_disk_doc())
            return True

    def clear(self) -> None:
        with self._lock:
            self._instance_until = None
            self._store.save(PersistedFlags().to_disk_doc())
        logger.debug("clean markers cleared")
