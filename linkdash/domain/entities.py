from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, Field

# --- Enums / Literals ---
LinkLayer = Literal["global", "personal"]
ErrorKind = Literal["validation", "persistence", "format", "permission"]

# --- Defaults ---
DEFAULT_GROUP = "General"
ADMIN_EDITED_TAG = "(Admin Edited)"
COPY_SUFFIX = " (copy)"
DOCUMENT_VERSION = 2

# Fields written to disk; layer/owner are implied by the document a record lives in.
RECORD_FIELDS = (
    "id",
    "name",
    "url",
    "group",
    "description",
    "open_in_frame",
    "created_at",
    "updated_at",
)


def new_link_id() -> str:
    return str(uuid4())


# --- Links ---

class Link(BaseModel):
    id: str = Field(default_factory=new_link_id)
    name: str = ""
    url: str = ""
    group: str = DEFAULT_GROUP
    description: str = ""
    open_in_frame: bool = False
    created_at: str = ""
    updated_at: str = ""
    layer: LinkLayer = "personal"
    owner: str = ""

    @property
    def is_global(self) -> bool:
        return self.layer == "global"

    def same_collection(self, other: "Link") -> bool:
        return self.layer == other.layer and self.owner == other.owner
