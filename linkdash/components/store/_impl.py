"""
LayeredLinkStore - Global and per-user link collections.

Owns the global collection, one personal collection per user, the user
registry and the merged view. One store per session: created when the
session starts, loaded once, discarded when the session ends.

Key behaviors:
- Every mutating operation passes the can_edit gate first
- Mutations apply in memory before persistence (optimistic); a failed
  write leaves that collection dirty and is reported as a warning
- Each collection is written independently. Moving a link between layers
  writes the destination, then the source. The source is held back until
  the destination is on disk; if the second write fails the link stays on
  disk in both places until the source is saved again.
- A personal collection is only written after it has been read (or
  replaced by an import) in this session.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from typing import Any

from linkdash.adapters.clock import SystemClock
from linkdash.components.records import (
    hydrate_link,
    normalize_url,
    to_record,
    unique_groups,
    validate_link,
)
from linkdash.domain.entities import Link, LinkLayer, new_link_id

from ._codec import (
    build_export_bundle,
    decode_cached_links,
    decode_collection,
    decode_registry,
    encode_cached_links,
    encode_collection,
    encode_registry,
    is_valid_username,
    parse_import_bundle,
)
from .models import (
    DirtyState,
    FilterInput,
    ImportOutput,
    LoadOutput,
    MoveOutput,
    SaveOrderOutput,
    StoreError,
    StoreOperationOutput,
    StoreSettings,
    UpsertLinkInput,
)
from .ports import BlobStorePort, ClockPort, FallbackCachePort, IdentityPort

logger = logging.getLogger(__name__)


# --- Pure Functions ---


def can_edit(link: Link, current_user: str, is_admin: bool) -> bool:
    """Administrators edit anything; users edit only their own personal links."""
    if is_admin:
        return True
    return link.layer == "personal" and bool(current_user) and link.owner == current_user


def matches_filter(link: Link, query: str = "", group: str = "") -> bool:
    """Case-insensitive group equality and substring search."""
    q = query.strip().lower()
    g = group.strip().lower()
    if g and link.group.lower() != g:
        return False
    if not q:
        return True
    haystack = f"{link.name} {link.group} {link.url} {link.description} {link.owner}".lower()
    return q in haystack


def _ordered_users(usernames: list[str]) -> list[str]:
    return sorted({u for u in usernames if u}, key=lambda u: (u.casefold(), u))


# (layer, owner) of one persisted collection
CollectionKey = tuple[LinkLayer, str]
GLOBAL_COLLECTION: CollectionKey = ("global", "")


# --- Store ---


class LayeredLinkStore:
    """
    Layered link store.

    Merges the global and personal collections and enforces per-link
    edit permissions derived from ownership.
    """

    def __init__(
        self,
        blobs: BlobStorePort,
        identity: IdentityPort,
        *,
        cache: FallbackCachePort | None = None,
        clock: ClockPort | None = None,
        settings: StoreSettings | None = None,
    ) -> None:
        """Initialize store and subscribe to identity changes."""
        self._blobs = blobs
        self._identity = identity
        self._cache = cache
        self._clock = clock or SystemClock()
        self.settings = settings or StoreSettings()

        self._global: list[Link] = []
        self._personal: dict[str, list[Link]] = {}
        self._loaded: set[str] = set()
        # Source collections that must wait for these destinations to be saved
        self._awaiting: dict[CollectionKey, set[CollectionKey]] = {}
        self._registry: list[str] = []
        self._merged: list[Link] = []
        self._dirty_global = False
        self._dirty_personal: set[str] = set()

        self.current_user = identity.get_current_username()
        self.is_admin = identity.is_administrator()
        self._unsubscribe: Callable[[], None] | None = identity.subscribe(
            self._on_identity_changed
        )

    def close(self) -> None:
        """Stop listening for identity changes."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # --- Identity ---

    def _on_identity_changed(self) -> None:
        self.current_user = self._identity.get_current_username()
        self.is_admin = self._identity.is_administrator()
        logger.debug("Identity refreshed: user=%r admin=%s", self.current_user, self.is_admin)
        self._load_visible_personal()
        self._rebuild_merged()

    def can_edit(self, link: Link) -> bool:
        return can_edit(link, self.current_user, self.is_admin)

    # --- Views ---

    def _rebuild_merged(self) -> None:
        if self.is_admin:
            personal = [link for links in self._personal.values() for link in links]
        else:
            personal = list(self._personal.get(self.current_user, []))
        self._merged = [*self._global, *personal]

    @property
    def links(self) -> list[Link]:
        """Merged view: global first, then personal collections."""
        return list(self._merged)

    @property
    def global_links(self) -> list[Link]:
        return list(self._global)

    def personal_links(self, username: str) -> list[Link]:
        return list(self._personal.get(username, []))

    @property
    def known_users(self) -> list[str]:
        return _ordered_users([*self._registry, *self._personal])

    def get(self, link_id: str) -> Link | None:
        return next((link for link in self._merged if link.id == link_id), None)

    def filter(self, criteria: FilterInput | None = None) -> list[Link]:
        criteria = criteria or FilterInput()
        return [
            link for link in self._merged if matches_filter(link, criteria.query, criteria.group)
        ]

    def groups(self) -> list[str]:
        return unique_groups((link.group for link in self._merged), self.settings.default_group)

    def dirty_state(self) -> DirtyState:
        return DirtyState(
            global_dirty=self._dirty_global,
            personal=tuple(_ordered_users(list(self._dirty_personal))),
        )

    # --- Collections ---

    def _collection(self, layer: LinkLayer, owner: str, *, create: bool = False) -> list[Link]:
        if layer == "global":
            return self._global
        if create:
            return self._personal.setdefault(owner, [])
        return self._personal.get(owner, [])

    def _locate(self, link_id: str) -> tuple[list[Link], int] | None:
        for collection in (self._global, *self._personal.values()):
            for index, link in enumerate(collection):
                if link.id == link_id:
                    return collection, index
        return None

    def _find(self, link_id: str) -> Link | None:
        found = self._locate(link_id)
        if found is None:
            return None
        collection, index = found
        return collection[index]

    def _mark_dirty(self, layer: LinkLayer, owner: str) -> None:
        if layer == "global":
            self._dirty_global = True
        else:
            self._dirty_personal.add(owner)

    def _hydrate_into(self, raw: Any, layer: LinkLayer, owner: str) -> Link:
        data = dict(raw) if isinstance(raw, Mapping) else {}
        data["layer"] = layer
        data["owner"] = owner
        return hydrate_link(
            data, layer, owner, default_group=self.settings.default_group, clock=self._clock
        )

    # --- Load ---

    def _read_links(self, key: str, layer: LinkLayer, owner: str, cache_key: str | None) -> tuple[list[Link], bool]:
        raw_links = decode_collection(self._blobs.read(key), key)
        from_cache = False
        if raw_links is None and cache_key and self._cache is not None:
            raw_links = decode_cached_links(self._cache.get(cache_key))
            from_cache = raw_links is not None
            if from_cache:
                logger.warning("%s unreadable; using cached copy", key)
        if raw_links is None:
            logger.info("%s unreadable or missing; starting empty", key)
            return [], False
        return [self._hydrate_into(raw, layer, owner) for raw in raw_links], from_cache

    def _read_registry(self) -> list[str]:
        return decode_registry(self._blobs.read(self.settings.userlist_key))

    def _load_visible_personal(self) -> list[str]:
        """
        Read every personal collection the current identity may see and
        that is not in memory yet. Returns the keys served from the cache.
        """
        s = self.settings
        if self.is_admin:
            self._registry = _ordered_users([*self._registry, *self._read_registry()])
            users = _ordered_users([*self._registry, self.current_user])
        else:
            users = [self.current_user] if self.current_user else []

        from_cache: list[str] = []
        for user in users:
            if user in self._loaded:
                continue
            if not is_valid_username(user):
                logger.warning("Skipping invalid username %r", user)
                continue
            cache_key = s.cache_personal_key if user == self.current_user else None
            links, cached = self._read_links(s.personal_key(user), "personal", user, cache_key)
            self._personal[user] = links
            self._loaded.add(user)
            if cached:
                from_cache.append(s.personal_key(user))
        return from_cache

    def load_all(self) -> LoadOutput:
        """
        Load the global collection and the visible personal collections.

        Administrators load every registered user plus themselves. Read
        failures yield empty collections; they never raise.
        """
        s = self.settings
        from_cache: list[str] = []

        self._global, cached = self._read_links(s.global_key, "global", "", s.cache_global_key)
        if cached:
            from_cache.append(s.global_key)

        self._personal = {}
        self._loaded = set()
        self._awaiting = {}
        self._registry = []
        from_cache.extend(self._load_visible_personal())

        self._dirty_global = False
        self._dirty_personal = set()
        self._rebuild_merged()
        logger.info(
            "Loaded %d global and %d personal collections for %r",
            len(self._global),
            len(self._personal),
            self.current_user,
        )
        return LoadOutput(
            global_count=len(self._global),
            personal_counts={user: len(links) for user, links in self._personal.items()},
            from_cache=from_cache,
        )

    # --- Persistence ---

    def _register_user(self, username: str) -> None:
        on_disk = self._read_registry()
        merged = list(on_disk)
        for user in [*self._registry, username]:
            if user not in merged:
                merged.append(user)
        self._registry = merged
        if merged != on_disk:
            if not self._blobs.write(self.settings.userlist_key, encode_registry(merged)):
                logger.warning("Could not register user %r", username)

    def _storage_key(self, collection: CollectionKey) -> str:
        layer, owner = collection
        if layer == "global":
            return self.settings.global_key
        return self.settings.personal_key(owner)

    def _is_dirty(self, collection: CollectionKey) -> bool:
        layer, owner = collection
        if layer == "global":
            return self._dirty_global
        return owner in self._dirty_personal

    def _settle(self, collection: CollectionKey) -> None:
        """Record a successful write of `collection`."""
        self._awaiting.pop(collection, None)
        for source in list(self._awaiting):
            self._awaiting[source].discard(collection)
            if not self._awaiting[source]:
                del self._awaiting[source]

    def _persist_global(self) -> StoreError | None:
        key = self.settings.global_key
        if not self.is_admin:
            logger.info("Refusing to write %s without administrator rights", key)
            return StoreError.write_failed(key, "global links")
        if not self._blobs.write(key, encode_collection(self._global, self._clock.now_iso())):
            return StoreError.write_failed(key, "global links")
        self._dirty_global = False
        if self._cache is not None:
            self._cache.set(self.settings.cache_global_key, encode_cached_links(self._global))
        return None

    def _persist_personal(self, username: str) -> StoreError | None:
        key = self.settings.personal_key(username)
        if not is_valid_username(username):
            return StoreError.write_failed(key, "personal links")
        if username not in self._loaded:
            # Writing an unread collection would replace the user's file
            logger.warning("Refusing to write %s: collection was never loaded", key)
            return StoreError.not_loaded(key)
        self._register_user(username)
        links = self._personal.get(username, [])
        if not self._blobs.write(key, encode_collection(links, self._clock.now_iso())):
            return StoreError.write_failed(key, "personal links")
        self._dirty_personal.discard(username)
        if self._cache is not None and username == self.current_user:
            self._cache.set(self.settings.cache_personal_key, encode_cached_links(links))
        return None

    def _persist(self, layer: LinkLayer, owner: str) -> StoreError | None:
        collection: CollectionKey = (layer, owner)
        pending = [c for c in self._awaiting.get(collection, ()) if self._is_dirty(c)]
        if pending:
            key = self._storage_key(collection)
            logger.info(
                "Holding back %s until %s is saved",
                key,
                ", ".join(sorted(self._storage_key(c) for c in pending)),
            )
            return StoreError.held_back(key, self._storage_key(pending[0]))
        failure = self._persist_global() if layer == "global" else self._persist_personal(owner)
        if failure is None:
            self._settle(collection)
        return failure

    # --- Mutations ---

    def upsert(self, draft: UpsertLinkInput, previous: Link | None = None) -> StoreOperationOutput:
        """
        Create a link, or replace `previous` with the edited draft.

        Non-administrators always write to their own personal collection.
        A change of layer removes the link from its former collection on
        disk as well.
        """
        stored: Link | None = None
        if previous is not None:
            stored = self._find(previous.id)
            if stored is None:
                return StoreOperationOutput.not_found(previous.id)

        if stored is not None and not self.can_edit(stored):
            logger.info("Refused edit of %s by %r", stored.id, self.current_user)
            return StoreOperationOutput.refusal()

        layer: LinkLayer
        if self.is_admin and draft.layer == "global":
            layer, owner = "global", ""
        else:
            layer = "personal"
            if self.is_admin and stored is not None and stored.layer == "personal":
                owner = stored.owner
            else:
                owner = self.current_user
        if layer == "personal" and not is_valid_username(owner):
            logger.info("Refused personal write without a valid username")
            return StoreOperationOutput.refusal()

        description = draft.description.strip()
        tag = self.settings.admin_edited_tag
        if (
            self.is_admin
            and stored is not None
            and stored.layer == "personal"
            and stored.owner != self.current_user
            and tag not in description
        ):
            description = f"{description} {tag}" if description else tag

        now = self._clock.now_iso()
        link = hydrate_link(
            {
                "id": stored.id if stored else new_link_id(),
                "name": draft.name,
                "url": normalize_url(draft.url),
                "group": draft.group,
                "description": description,
                "open_in_frame": draft.open_in_frame,
                "created_at": stored.created_at if stored else now,
                "updated_at": now,
            },
            layer,
            owner,
            default_group=self.settings.default_group,
            clock=self._clock,
        )

        error = validate_link(link)
        if error is not None:
            return StoreOperationOutput(link=None, errors=[StoreError.from_validation(error)])

        target = self._collection(layer, owner, create=True)
        migrated = stored is not None and not stored.same_collection(link)
        position: int | None = None
        if stored is not None:
            source = self._collection(stored.layer, stored.owner)
            index = next(i for i, x in enumerate(source) if x.id == stored.id)
            del source[index]
            if not migrated:
                position = index
        if position is None:
            target.append(link)
        else:
            target.insert(position, link)
        self._mark_dirty(layer, owner)
        if migrated:
            assert stored is not None
            self._mark_dirty(stored.layer, stored.owner)
            self._awaiting.setdefault((stored.layer, stored.owner), set()).add((layer, owner))
        self._rebuild_merged()

        warnings: list[StoreError] = []
        failure = self._persist(layer, owner)
        if failure:
            warnings.append(failure)
        if migrated:
            assert stored is not None
            if failure is None:
                failure = self._persist(stored.layer, stored.owner)
                if failure:
                    warnings.append(failure)
            else:
                # The source keeps its copy on disk until the destination is saved
                logger.info(
                    "Left %s unsaved: destination write failed",
                    self._storage_key((stored.layer, stored.owner)),
                )
            logger.info(
                "Moved %s from %s:%r to %s:%r", link.id, stored.layer, stored.owner, layer, owner
            )

        return StoreOperationOutput(link=link, warnings=warnings, success=True)

    def duplicate(self, link: Link) -> StoreOperationOutput:
        """Clone into the same collection with a new id and a "(copy)" name."""
        source = self._find(link.id)
        if source is None:
            return StoreOperationOutput.not_found(link.id)
        if not self.can_edit(source):
            return StoreOperationOutput.refusal()

        now = self._clock.now_iso()
        owner = source.owner if source.layer == "personal" else ""
        clone = hydrate_link(
            {
                **to_record(source),
                "id": new_link_id(),
                "name": f"{source.name}{self.settings.copy_suffix}",
                "created_at": now,
                "updated_at": now,
            },
            source.layer,
            owner,
            default_group=self.settings.default_group,
            clock=self._clock,
        )
        self._collection(clone.layer, clone.owner, create=True).append(clone)
        self._mark_dirty(clone.layer, clone.owner)
        self._rebuild_merged()

        failure = self._persist(clone.layer, clone.owner)
        return StoreOperationOutput(
            link=clone, warnings=[failure] if failure else [], success=True
        )

    def remove(self, link: Link) -> StoreOperationOutput:
        """Remove from the owning collection and persist that collection."""
        found = self._locate(link.id)
        if found is None:
            return StoreOperationOutput.not_found(link.id)
        collection, index = found
        stored = collection[index]
        if not self.can_edit(stored):
            logger.info("Refused delete of %s by %r", stored.id, self.current_user)
            return StoreOperationOutput.refusal()

        del collection[index]
        self._mark_dirty(stored.layer, stored.owner)
        self._rebuild_merged()

        failure = self._persist(stored.layer, stored.owner)
        return StoreOperationOutput(
            link=stored, warnings=[failure] if failure else [], success=True
        )

    def move(self, from_id: str, to_id: str) -> MoveOutput:
        """
        Reorder within one collection (in memory only until save_order).

        The moved link takes the array position of the target link.
        """
        if not from_id or not to_id or from_id == to_id:
            return MoveOutput(success=False, reason="noop")
        from_link = self._find(from_id)
        to_link = self._find(to_id)
        if from_link is None or to_link is None:
            return MoveOutput(success=False, reason="not_found")
        if not from_link.same_collection(to_link):
            logger.debug("Rejected cross-collection move %s -> %s", from_id, to_id)
            return MoveOutput(success=False, reason="cross_layer")
        if not self.can_edit(from_link):
            return MoveOutput(success=False, reason="refused")

        collection = self._collection(from_link.layer, from_link.owner)
        src = next(i for i, x in enumerate(collection) if x.id == from_id)
        dst = next(i for i, x in enumerate(collection) if x.id == to_id)
        moved = collection.pop(src)
        collection.insert(dst, moved)
        self._mark_dirty(from_link.layer, from_link.owner)
        self._rebuild_merged()
        return MoveOutput(success=True)

    def save_order(self) -> SaveOrderOutput:
        """Persist every dirty collection, across all users."""
        result = SaveOrderOutput()
        dirty: list[CollectionKey] = []
        if self._dirty_global:
            if self.is_admin:
                dirty.append(GLOBAL_COLLECTION)
            else:
                logger.info("Global order left unsaved: no administrator rights")
        dirty.extend(("personal", user) for user in _ordered_users(list(self._dirty_personal)))
        # Destinations of moved links go before the collections they left
        dirty.sort(key=lambda c: bool(self._awaiting.get(c)))

        for layer, owner in dirty:
            failure = self._persist(layer, owner)
            if failure:
                result.warnings.append(failure)
            else:
                result.saved.append(self._storage_key((layer, owner)))
        return result

    # --- Import / Export ---

    def import_bundle(self, parsed: Any) -> ImportOutput:
        """
        Replace collections from a parsed import payload (administrators only).

        The layered shape replaces the global collection and each listed
        user's collection; the flat shape replaces the global collection.
        """
        if not self.is_admin:
            logger.info("Refused import by %r", self.current_user)
            return ImportOutput(refused=True)

        bundle = parse_import_bundle(parsed)
        if isinstance(bundle, StoreError):
            return ImportOutput(errors=[bundle])

        # Ids must stay unique across the union, including untouched collections
        replaced = set(bundle.personal_links or {})
        seen: set[str] = set()
        if bundle.global_links is None:
            seen |= {link.id for link in self._global}
        for user, links in self._personal.items():
            if user not in replaced:
                seen |= {link.id for link in links}

        def hydrate_all(raw_links: list[Any], layer: LinkLayer, owner: str) -> list[Link]:
            result = []
            for raw in raw_links:
                link = self._hydrate_into(raw, layer, owner)
                update: dict[str, str] = {"url": normalize_url(link.url)}
                if link.id in seen:
                    logger.warning("Import reassigned duplicate id %s", link.id)
                    update["id"] = new_link_id()
                link = link.model_copy(update=update)
                seen.add(link.id)
                result.append(link)
            return result

        output = ImportOutput(success=True)
        if bundle.global_links is not None:
            self._global = hydrate_all(bundle.global_links, "global", "")
            self._dirty_global = True
            output.global_count = len(self._global)
        for user, raw_links in (bundle.personal_links or {}).items():
            self._personal[user] = hydrate_all(raw_links, "personal", user)
            self._loaded.add(user)
            self._dirty_personal.add(user)
            output.personal_counts[user] = len(self._personal[user])
        # Replaced collections no longer hold links waiting to be moved out
        touched: list[CollectionKey] = [("personal", user) for user in output.personal_counts]
        if bundle.global_links is not None:
            touched.insert(0, GLOBAL_COLLECTION)
        for collection in touched:
            self._awaiting.pop(collection, None)
        self._rebuild_merged()

        for layer, owner in touched:
            failure = self._persist(layer, owner)
            if failure:
                output.warnings.append(failure)

        logger.info(
            "Imported %s global links and %d personal collections",
            output.global_count,
            len(output.personal_counts),
        )
        return output

    def import_json(self, text: str | bytes) -> ImportOutput:
        try:
            parsed = json.loads(text)
        except ValueError as e:
            if not self.is_admin:
                return ImportOutput(refused=True)
            return ImportOutput(
                errors=[StoreError(kind="format", code="invalid_json", message=f"Invalid JSON: {e}")]
            )
        return self.import_bundle(parsed)

    def export_bundle(self) -> dict[str, Any]:
        """Export the visible collections in the layered import shape."""
        if self.is_admin:
            personal = dict(self._personal)
        else:
            personal = {u: links for u, links in self._personal.items() if u == self.current_user}
        return build_export_bundle(self._global, personal, self._clock.now_iso())
