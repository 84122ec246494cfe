"""
Store component - Data models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from linkdash.components.records import LinkValidationError
from linkdash.domain.entities import (
    ADMIN_EDITED_TAG,
    COPY_SUFFIX,
    DEFAULT_GROUP,
    ErrorKind,
    Link,
    LinkLayer,
)

# --- Settings ---


@dataclass(frozen=True)
class StoreSettings:
    """Storage keys and link defaults used by the store."""

    global_key: str = "global.json"
    users_dir: str = "users"
    userlist_key: str = "userlist.json"
    cache_global_key: str = "linkdash.global.v2"
    cache_personal_key: str = "linkdash.personal.v2"
    default_group: str = DEFAULT_GROUP
    admin_edited_tag: str = ADMIN_EDITED_TAG
    copy_suffix: str = COPY_SUFFIX

    def personal_key(self, username: str) -> str:
        return f"{self.users_dir}/{username}.json"


# --- Errors ---


@dataclass(frozen=True)
class StoreError:
    """Store error. Only validation and format errors block a mutation."""

    kind: ErrorKind
    code: str
    message: str
    field: str | None = None

    @classmethod
    def from_validation(cls, error: LinkValidationError) -> StoreError:
        return cls(kind="validation", code=error.code, message=error.message, field=error.field)

    @classmethod
    def write_failed(cls, key: str, label: str) -> StoreError:
        return cls(
            kind="persistence",
            code="write_failed",
            message=f"Could not save {label} (permission?)",
            field=key,
        )

    @classmethod
    def not_loaded(cls, key: str) -> StoreError:
        return cls(
            kind="persistence",
            code="not_loaded",
            message=f"Refusing to save {key}: it was not loaded in this session",
            field=key,
        )

    @classmethod
    def held_back(cls, key: str, waiting_for: str) -> StoreError:
        return cls(
            kind="persistence",
            code="held_back",
            message=f"Not saving {key} until {waiting_for} is saved",
            field=key,
        )


# --- Input Models ---


@dataclass(frozen=True)
class UpsertLinkInput:
    """User-authored draft for a new or edited link."""

    name: str
    url: str
    group: str = ""
    description: str = ""
    open_in_frame: bool = False
    layer: LinkLayer = "personal"


@dataclass(frozen=True)
class UpdateLinkInput:
    """Input for editing an existing link."""

    link_id: str
    draft: UpsertLinkInput


@dataclass(frozen=True)
class DuplicateLinkInput:
    """Input for duplicating a link."""

    link_id: str


@dataclass(frozen=True)
class DeleteLinkInput:
    """Input for deleting a link."""

    link_id: str


@dataclass(frozen=True)
class MoveLinkInput:
    """Input for reordering: from_id takes the position of to_id."""

    from_id: str
    to_id: str


@dataclass(frozen=True)
class ImportLinksInput:
    """Input for import: raw JSON text or an already-parsed payload."""

    payload: Any
    is_text: bool = False


@dataclass(frozen=True)
class FilterInput:
    """Text query and group filter over the merged view."""

    query: str = ""
    group: str = ""


# --- Output Models ---


@dataclass
class StoreOperationOutput:
    """Output from a single-link operation."""

    link: Link | None
    errors: list[StoreError] = field(default_factory=list)
    warnings: list[StoreError] = field(default_factory=list)
    success: bool = False
    refused: bool = False

    @property
    def persisted(self) -> bool:
        return self.success and not self.warnings

    @classmethod
    def refusal(cls) -> StoreOperationOutput:
        return cls(link=None, success=False, refused=True)

    @classmethod
    def not_found(cls, link_id: str) -> StoreOperationOutput:
        return cls(
            link=None,
            errors=[
                StoreError(
                    kind="validation",
                    code="link_not_found",
                    message=f"Link with ID {link_id} not found",
                )
            ],
        )


@dataclass
class MoveOutput:
    """Output from an in-memory reorder."""

    success: bool
    reason: str | None = None


@dataclass
class SaveOrderOutput:
    """Output from persisting dirty collections."""

    saved: list[str] = field(default_factory=list)
    warnings: list[StoreError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.warnings


@dataclass
class ImportOutput:
    """Output from importing a bundle."""

    global_count: int | None = None
    personal_counts: dict[str, int] = field(default_factory=dict)
    errors: list[StoreError] = field(default_factory=list)
    warnings: list[StoreError] = field(default_factory=list)
    success: bool = False
    refused: bool = False


@dataclass
class LoadOutput:
    """Output from loading collections."""

    global_count: int
    personal_counts: dict[str, int]
    from_cache: list[str] = field(default_factory=list)


@dataclass
class LinkListOutput:
    """Output from list operation."""

    links: list[Link]
    total: int


@dataclass(frozen=True)
class DirtyState:
    """Which collections hold unsaved changes."""

    global_dirty: bool
    personal: tuple[str, ...]

    @property
    def any(self) -> bool:
        return self.global_dirty or bool(self.personal)


@dataclass(frozen=True)
class ImportBundle:
    """A parsed import payload. None means the collection is untouched."""

    global_links: list[Any] | None
    personal_links: dict[str, list[Any]] | None
