"""
Store component unit tests.

Tests the entry points that resolve link ids before delegating to the store.
"""

from __future__ import annotations

import json

import pytest

from linkdash.adapters.identity import StaticIdentityOracle
from linkdash.components.store import (
    DeleteLinkInput,
    DuplicateLinkInput,
    FilterInput,
    LayeredLinkStore,
    MoveLinkInput,
    UpdateLinkInput,
    UpsertLinkInput,
    run_create,
    run_delete,
    run_duplicate,
    run_list,
    run_load,
    run_move,
    run_save_order,
    run_update,
)

# --- Mock Blob Store ---


class MockBlobStore:
    """In-memory blob store for testing."""

    def __init__(self) -> None:
        self._blobs: dict[str, bytes] = {
            "global.json": json.dumps(
                {"links": [{"id": "g1", "name": "Wiki", "url": "https://wiki", "group": "Team"}]}
            ).encode(),
            "users/alice.json": json.dumps(
                {
                    "links": [
                        {"id": "a1", "name": "Mail", "url": "https://mail"},
                        {"id": "a2", "name": "Chat", "url": "https://chat"},
                    ]
                }
            ).encode(),
        }

    def read(self, key: str) -> bytes | None:
        return self._blobs.get(key)

    def write(self, key: str, data: bytes) -> bool:
        self._blobs[key] = data
        return True


@pytest.fixture
def blobs() -> MockBlobStore:
    return MockBlobStore()


@pytest.fixture
def store(blobs: MockBlobStore) -> LayeredLinkStore:
    store = LayeredLinkStore(blobs, StaticIdentityOracle("alice", False))
    run_load(store)
    return store


# --- Load / List ---


class TestLoadAndList:
    """Test loading and listing."""

    def test_load_counts(self, blobs: MockBlobStore) -> None:
        """Reports sizes of loaded collections."""
        store = LayeredLinkStore(blobs, StaticIdentityOracle("alice", False))
        result = run_load(store)

        assert result.global_count == 1
        assert result.personal_counts == {"alice": 2}
        assert result.from_cache == []

    def test_list_all(self, store: LayeredLinkStore) -> None:
        result = run_list(store)
        assert result.total == 3

    def test_list_by_group(self, store: LayeredLinkStore) -> None:
        result = run_list(store, FilterInput(group="team"))
        assert [link.id for link in result.links] == ["g1"]


# --- Create / Update ---


class TestCreateAndUpdate:
    """Test link creation and editing."""

    def test_create(self, store: LayeredLinkStore) -> None:
        """Creates link with valid data."""
        result = run_create(UpsertLinkInput(name="Docs", url="docs.example"), store)

        assert result.success
        assert result.link is not None
        assert result.link.group == "General"
        assert store.get(result.link.id) is not None

    def test_create_invalid(self, store: LayeredLinkStore) -> None:
        """Rejects a missing URL."""
        result = run_create(UpsertLinkInput(name="Docs", url=""), store)

        assert not result.success
        assert result.errors[0].code == "url_required"

    def test_update(self, store: LayeredLinkStore) -> None:
        """Edits by id."""
        draft = UpsertLinkInput(name="Webmail", url="https://mail")
        result = run_update(UpdateLinkInput(link_id="a1", draft=draft), store)

        assert result.success
        assert result.link is not None
        assert result.link.name == "Webmail"

    def test_update_not_found(self, store: LayeredLinkStore) -> None:
        """Returns error for unknown id."""
        draft = UpsertLinkInput(name="X", url="https://x")
        result = run_update(UpdateLinkInput(link_id="missing", draft=draft), store)

        assert not result.success
        assert result.errors[0].code == "link_not_found"


# --- Duplicate / Delete ---


class TestDuplicateAndDelete:
    """Test duplication and deletion."""

    def test_duplicate(self, store: LayeredLinkStore) -> None:
        result = run_duplicate(DuplicateLinkInput(link_id="a2"), store)
        assert result.link is not None
        assert result.link.name == "Chat (copy)"

    def test_duplicate_not_found(self, store: LayeredLinkStore) -> None:
        result = run_duplicate(DuplicateLinkInput(link_id="missing"), store)
        assert result.errors[0].code == "link_not_found"

    def test_delete(self, store: LayeredLinkStore) -> None:
        result = run_delete(DeleteLinkInput(link_id="a1"), store)
        assert result.success
        assert store.get("a1") is None

    def test_delete_refused(self, store: LayeredLinkStore) -> None:
        result = run_delete(DeleteLinkInput(link_id="g1"), store)
        assert result.refused
        assert store.get("g1") is not None


# --- Ordering ---


def test_move_and_save(store: LayeredLinkStore, blobs: MockBlobStore) -> None:
    moved = run_move(MoveLinkInput(from_id="a2", to_id="a1"), store)
    assert moved.success
    assert store.dirty_state().personal == ("alice",)

    saved = run_save_order(store)
    assert saved.saved == ["users/alice.json"]
    doc = json.loads(blobs.read("users/alice.json") or b"{}")
    assert [r["id"] for r in doc["links"]] == ["a2", "a1"]
