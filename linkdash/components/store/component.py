"""
Store component - Layered link store entry points.

Handles link CRUD, reordering, import and export for one session store.

Shell Layer - resolves ids and converts results to output models.
"""

from __future__ import annotations

from typing import Any

from ._impl import LayeredLinkStore
from .models import (
    DeleteLinkInput,
    DuplicateLinkInput,
    FilterInput,
    ImportLinksInput,
    ImportOutput,
    LinkListOutput,
    LoadOutput,
    MoveLinkInput,
    MoveOutput,
    SaveOrderOutput,
    StoreOperationOutput,
    UpdateLinkInput,
    UpsertLinkInput,
)

# --- Shell Layer Functions ---


def run_load(store: LayeredLinkStore) -> LoadOutput:
    """Load every collection visible to the session."""
    return store.load_all()


def run_list(store: LayeredLinkStore, input_data: FilterInput | None = None) -> LinkListOutput:
    """List the merged view, optionally filtered."""
    links = store.filter(input_data)
    return LinkListOutput(links=links, total=len(links))


def run_create(input_data: UpsertLinkInput, store: LayeredLinkStore) -> StoreOperationOutput:
    """Create a new link."""
    return store.upsert(input_data)


def run_update(input_data: UpdateLinkInput, store: LayeredLinkStore) -> StoreOperationOutput:
    """Edit an existing link, possibly moving it to another layer."""
    previous = store.get(input_data.link_id)
    if previous is None:
        return StoreOperationOutput.not_found(input_data.link_id)
    return store.upsert(input_data.draft, previous)


def run_duplicate(input_data: DuplicateLinkInput, store: LayeredLinkStore) -> StoreOperationOutput:
    """Duplicate a link into its own collection."""
    link = store.get(input_data.link_id)
    if link is None:
        return StoreOperationOutput.not_found(input_data.link_id)
    return store.duplicate(link)


def run_delete(input_data: DeleteLinkInput, store: LayeredLinkStore) -> StoreOperationOutput:
    """Delete a link."""
    link = store.get(input_data.link_id)
    if link is None:
        return StoreOperationOutput.not_found(input_data.link_id)
    return store.remove(link)


def run_move(input_data: MoveLinkInput, store: LayeredLinkStore) -> MoveOutput:
    """Reorder in memory; call run_save_order to persist."""
    return store.move(input_data.from_id, input_data.to_id)


def run_save_order(store: LayeredLinkStore) -> SaveOrderOutput:
    """Persist every collection with unsaved changes."""
    return store.save_order()


def run_import(input_data: ImportLinksInput, store: LayeredLinkStore) -> ImportOutput:
    """Import a layered or legacy flat bundle."""
    if input_data.is_text:
        return store.import_json(input_data.payload)
    return store.import_bundle(input_data.payload)


def run_export(store: LayeredLinkStore) -> dict[str, Any]:
    """Export collections as a layered bundle."""
    return store.export_bundle()
