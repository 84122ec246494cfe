from typing import Any

from pydantic import BaseModel

from linkdash.components.store import StoreError
from linkdash.domain.entities import Link, LinkLayer


# --- Links ---
class LinkDraftRequest(BaseModel):
    name: str
    url: str
    group: str = ""
    description: str = ""
    open_in_frame: bool = False
    layer: LinkLayer = "personal"


class LinkResponse(BaseModel):
    id: str
    name: str
    url: str
    group: str
    description: str
    open_in_frame: bool
    created_at: str
    updated_at: str
    layer: LinkLayer
    owner: str
    can_edit: bool

    @classmethod
    def from_link(cls, link: Link, can_edit: bool) -> "LinkResponse":
        return cls(**link.model_dump(), can_edit=can_edit)


class LinkListResponse(BaseModel):
    items: list[LinkResponse]
    total: int


# --- Errors / warnings ---
class ErrorDetail(BaseModel):
    kind: str
    code: str
    message: str
    field: str | None = None

    @classmethod
    def from_error(cls, error: StoreError) -> "ErrorDetail":
        return cls(kind=error.kind, code=error.code, message=error.message, field=error.field)


class LinkOperationResponse(BaseModel):
    link: LinkResponse | None
    warnings: list[ErrorDetail] = []
    persisted: bool


# --- Sessions ---
class SessionResponse(BaseModel):
    session_id: str
    username: str
    is_admin: bool
    global_count: int
    personal_counts: dict[str, int]
    from_cache: list[str] = []


# --- Ordering ---
class MoveRequest(BaseModel):
    from_id: str
    to_id: str


class MoveResponse(BaseModel):
    moved: bool
    reason: str | None = None


class DirtyResponse(BaseModel):
    global_dirty: bool
    personal: list[str]
    any: bool


class SaveOrderResponse(BaseModel):
    saved: list[str]
    warnings: list[ErrorDetail] = []
    success: bool


# --- Import / Export ---
class ImportResponse(BaseModel):
    global_count: int | None
    personal_counts: dict[str, int]
    warnings: list[ErrorDetail] = []


ExportBundle = dict[str, Any]
