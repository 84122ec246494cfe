"""
Persisted and exchanged JSON documents.

- Collection document: {"version": 2, "updated_at": ..., "links": [...]}
  (a bare array is accepted on read)
- Registry document: a bare array of usernames
- Import bundle: layered {"globalLinks", "personalLinks"} or legacy flat
  (bare array or {"links": [...]})
- Export bundle: {"version", "exported_at", "globalLinks", "personalLinks"}
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from linkdash.components.records import to_record
from linkdash.domain.entities import DOCUMENT_VERSION, Link

from .models import ImportBundle, StoreError

logger = logging.getLogger(__name__)

_RESERVED_NAMES = {".", ".."}


def is_valid_username(username: str) -> bool:
    """Usernames double as file names under the users directory."""
    return (
        bool(username)
        and username == username.strip()
        and username not in _RESERVED_NAMES
        and not any(c in username for c in "/\\\x00")
    )


# --- Collections ---


def encode_collection(links: Iterable[Link], updated_at: str) -> bytes:
    payload = {
        "version": DOCUMENT_VERSION,
        "updated_at": updated_at,
        "links": [to_record(link) for link in links],
    }
    return json.dumps(payload, indent=2).encode("utf-8")


def extract_links(parsed: Any) -> list[Any] | None:
    """Return the link array from a document or bare array, else None."""
    if isinstance(parsed, list):
        return parsed
    if isinstance(parsed, Mapping) and isinstance(parsed.get("links"), list):
        return parsed["links"]
    return None


def decode_collection(data: bytes | None, key: str) -> list[Any] | None:
    """Raw link entries, or None when the blob is absent or unparsable."""
    if data is None:
        return None
    try:
        parsed = json.loads(data)
    except ValueError as e:
        logger.warning("%s parse error: %s", key, e)
        return None
    links = extract_links(parsed)
    if links is None:
        logger.warning("%s has no link array", key)
        return []
    return links


def encode_cached_links(links: Iterable[Link]) -> str:
    return json.dumps([to_record(link) for link in links])


def decode_cached_links(value: str | None) -> list[Any] | None:
    if value is None:
        return None
    try:
        parsed = json.loads(value)
    except ValueError:
        return None
    return parsed if isinstance(parsed, list) else None


# --- Registry ---


def encode_registry(usernames: Iterable[str]) -> bytes:
    return json.dumps(list(usernames), indent=2).encode("utf-8")


def decode_registry(data: bytes | None) -> list[str]:
    if data is None:
        return []
    try:
        parsed = json.loads(data)
    except ValueError as e:
        logger.warning("User registry parse error: %s", e)
        return []
    if not isinstance(parsed, list):
        return []
    return [u for u in parsed if isinstance(u, str) and u.strip()]


# --- Import / Export ---


def parse_import_bundle(parsed: Any) -> ImportBundle | StoreError:
    """Recognize the layered or legacy flat shape."""
    if isinstance(parsed, Mapping) and ("globalLinks" in parsed or "personalLinks" in parsed):
        global_links = parsed.get("globalLinks")
        personal_raw = parsed.get("personalLinks")
        global_list = global_links if isinstance(global_links, list) else None
        personal: dict[str, list[Any]] | None = None
        if isinstance(personal_raw, Mapping):
            personal = {}
            for user, links in personal_raw.items():
                username = str(user)
                if not is_valid_username(username):
                    return StoreError(
                        kind="format",
                        code="invalid_username",
                        message=f"Invalid username in import: {username!r}",
                    )
                personal[username] = links if isinstance(links, list) else []
        if global_list is None and personal is None:
            return _format_error()
        return ImportBundle(global_links=global_list, personal_links=personal)

    links = extract_links(parsed)
    if links is None:
        return _format_error()
    return ImportBundle(global_links=links, personal_links=None)


def _format_error() -> StoreError:
    return StoreError(kind="format", code="invalid_format", message="Invalid JSON format.")


def build_export_bundle(
    global_links: Iterable[Link],
    personal_links: Mapping[str, Iterable[Link]],
    exported_at: str,
) -> dict[str, Any]:
    return {
        "version": DOCUMENT_VERSION,
        "exported_at": exported_at,
        "globalLinks": [to_record(link) for link in global_links],
        "personalLinks": {
            user: [to_record(link) for link in links] for user, links in personal_links.items()
        },
    }
