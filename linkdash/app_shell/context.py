from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from linkdash.adapters.clock import SystemClock
from linkdash.adapters.fallback_cache import JsonFileFallbackCache
from linkdash.adapters.fs.blobstore import FileSystemBlobStore
from linkdash.components.store import BlobStorePort, FallbackCachePort, LayeredLinkStore
from linkdash.ports.clock import ClockPort
from linkdash.ports.identity import IdentityPort
from linkdash.rules.models import Rules


@dataclass
class StoreContext:
    """Shared adapters; each session gets its own store on top of them."""

    blobs: BlobStorePort
    cache: FallbackCachePort | None
    rules: Rules
    clock: ClockPort

    @classmethod
    def create(cls, rules: Rules) -> StoreContext:
        blobs = FileSystemBlobStore(rules.storage.data_dir)
        cache = JsonFileFallbackCache(Path(rules.fallback.path)) if rules.fallback.enabled else None
        return cls(blobs=blobs, cache=cache, rules=rules, clock=SystemClock())

    def open_store(self, identity: IdentityPort, *, load: bool = True) -> LayeredLinkStore:
        store = LayeredLinkStore(
            self.blobs,
            identity,
            cache=self.cache,
            clock=self.clock,
            settings=self.rules.store_settings(),
        )
        if load:
            store.load_all()
        return store
