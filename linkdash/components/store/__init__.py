"""
Store component - Layered global/personal link store.
"""

from ._impl import LayeredLinkStore, can_edit, matches_filter
from .component import (
    run_create,
    run_delete,
    run_duplicate,
    run_export,
    run_import,
    run_list,
    run_load,
    run_move,
    run_save_order,
    run_update,
)
from .models import (
    DeleteLinkInput,
    DirtyState,
    DuplicateLinkInput,
    FilterInput,
    ImportLinksInput,
    ImportOutput,
    LinkListOutput,
    LoadOutput,
    MoveLinkInput,
    MoveOutput,
    SaveOrderOutput,
    StoreError,
    StoreOperationOutput,
    StoreSettings,
    UpdateLinkInput,
    UpsertLinkInput,
)
from .ports import BlobStorePort, FallbackCachePort

__all__ = [
    # Store
    "LayeredLinkStore",
    "can_edit",
    "matches_filter",
    # Entry points
    "run_load",
    "run_list",
    "run_create",
    "run_update",
    "run_duplicate",
    "run_delete",
    "run_move",
    "run_save_order",
    "run_import",
    "run_export",
    # Input models
    "UpsertLinkInput",
    "UpdateLinkInput",
    "DuplicateLinkInput",
    "DeleteLinkInput",
    "MoveLinkInput",
    "ImportLinksInput",
    "FilterInput",
    "StoreSettings",
    # Output models
    "StoreOperationOutput",
    "MoveOutput",
    "SaveOrderOutput",
    "ImportOutput",
    "LoadOutput",
    "LinkListOutput",
    "DirtyState",
    "StoreError",
    # Ports
    "BlobStorePort",
    "FallbackCachePort",
]
