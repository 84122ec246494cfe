"""
Records component - Link hydration and validation.

Functional Core - pure business logic, no I/O.

Key behaviors:
- hydrate_link is total: any input yields a structurally valid Link
- hydrate_link is idempotent: ids and timestamps never drift on re-hydration
- validate_link is never called during hydration, so malformed stored
  data still loads and can be fixed by the user
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import urlparse

from linkdash.adapters.clock import SystemClock
from linkdash.domain.entities import (
    DEFAULT_GROUP,
    RECORD_FIELDS,
    Link,
    LinkLayer,
    new_link_id,
)
from linkdash.ports.clock import ClockPort

from .models import LinkValidationError

_HTTP_PREFIX = re.compile(r"^https?://", re.IGNORECASE)
_SCHEME_PREFIX = re.compile(r"^[a-z][a-z0-9+.\-]*://", re.IGNORECASE)
_LAYERS: tuple[LinkLayer, ...] = ("global", "personal")


# --- URL Helpers ---


def normalize_url(raw: Any) -> str:
    """Trim, and prefix https:// unless an http/https scheme is present."""
    trimmed = _text(raw)
    if not trimmed:
        return ""
    if _HTTP_PREFIX.match(trimmed):
        return trimmed
    return f"https://{trimmed}"


def is_http_url(url: str) -> bool:
    """True for an absolute http/https URL with a host."""
    try:
        parsed = urlparse(url)
        parsed.port  # raises ValueError on a malformed port
    except ValueError:
        return False
    if parsed.scheme.lower() not in ("http", "https") or not parsed.hostname:
        return False
    # "https://ftp://host" is a foreign scheme that normalization prefixed
    rest = url.split("://", 1)[1]
    return not _SCHEME_PREFIX.match(rest)


# --- Hydration ---


def _text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return str(value).strip()


def _raw_mapping(raw: Any) -> Mapping[str, Any]:
    if isinstance(raw, Link):
        return raw.model_dump()
    if isinstance(raw, Mapping):
        return raw
    return {}


def hydrate_link(
    raw: Any,
    default_layer: LinkLayer | None = None,
    default_owner: str = "",
    *,
    default_group: str = DEFAULT_GROUP,
    clock: ClockPort | None = None,
) -> Link:
    """
    Normalize raw or untrusted input into a Link.

    Missing id/timestamps are generated; blank group becomes the default
    group. Layer/owner come from the input when present, else the defaults.

    A personal record must have an owner. Callers that build personal
    records pass a validated username as default_owner; an ownerless
    personal record is never editable by a non-administrator.
    """
    data = _raw_mapping(raw)

    created_at = _text(data.get("created_at"))
    if not created_at:
        created_at = (clock or SystemClock()).now_iso()

    layer = data.get("layer") or data.get("_layer") or default_layer or "personal"
    if layer not in _LAYERS:
        layer = default_layer or "personal"
    owner = _text(data.get("owner") or data.get("_owner")) or _text(default_owner)
    if layer == "global":
        owner = ""

    return Link(
        id=_text(data.get("id")) or new_link_id(),
        name=_text(data.get("name")),
        url=_text(data.get("url")),
        group=_text(data.get("group")) or default_group,
        description=_text(data.get("description")),
        open_in_frame=bool(data.get("open_in_frame")),
        created_at=created_at,
        updated_at=_text(data.get("updated_at")) or created_at,
        layer=layer,
        owner=owner,
    )


def to_record(link: Link) -> dict[str, Any]:
    """On-disk representation: layer and owner are implied by the document."""
    return link.model_dump(include=set(RECORD_FIELDS))


# --- Validation ---


def validate_link(link: Link) -> LinkValidationError | None:
    """Return the first violated rule, or None."""
    if not link.name.strip():
        return LinkValidationError(code="name_required", message="Name is required.", field="name")
    if not link.group.strip():
        return LinkValidationError(
            code="group_required", message="Group is required.", field="group"
        )
    if not link.url.strip():
        return LinkValidationError(code="url_required", message="URL is required.", field="url")
    if not is_http_url(normalize_url(link.url)):
        return LinkValidationError(
            code="url_invalid_scheme", message="URL must be http/https.", field="url"
        )
    return None


# --- Grouping ---


def unique_groups(groups: Iterable[str], default_group: str = DEFAULT_GROUP) -> list[str]:
    """Distinct non-blank group names, case-insensitively sorted, default included."""
    distinct = {g for g in [*groups, default_group] if g and g.strip()}
    return sorted(distinct, key=lambda g: (g.casefold(), g))
