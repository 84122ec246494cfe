"""
Integration tests for the layered store on the real file system adapters.
"""

import json

import pytest

from linkdash.adapters.identity import StaticIdentityOracle
from linkdash.app_shell.context import StoreContext
from linkdash.components.store import UpsertLinkInput
from linkdash.rules.models import FallbackRules, IdentityRules, Rules, StorageRules


@pytest.fixture
def context(tmp_path):
    rules = Rules(
        storage=StorageRules(data_dir=str(tmp_path / "data")),
        fallback=FallbackRules(path=str(tmp_path / "cache.json")),
        identity=IdentityRules(admins=["root"]),
    )
    return StoreContext.create(rules)


def test_user_journey(context, tmp_path):
    # Admin seeds the global collection
    admin = context.open_store(StaticIdentityOracle("root", True))
    created = admin.upsert(UpsertLinkInput(name="Wiki", url="wiki.example", layer="global"))
    assert created.persisted

    # A user adds a personal link
    alice = context.open_store(StaticIdentityOracle("alice", False))
    mine = alice.upsert(UpsertLinkInput(name="Mail", url="https://mail.example"))
    assert mine.persisted
    assert [link.name for link in alice.links] == ["Wiki", "Mail"]

    # A fresh admin session sees alice through the registry
    admin = context.open_store(StaticIdentityOracle("root", True))
    assert admin.known_users == ["alice", "root"]
    assert mine.link is not None
    promoted = admin.upsert(
        UpsertLinkInput(name="Mail", url="https://mail.example", layer="global"),
        admin.get(mine.link.id),
    )
    assert promoted.persisted

    alice = context.open_store(StaticIdentityOracle("alice", False))
    assert [(link.name, link.layer) for link in alice.links] == [
        ("Wiki", "global"),
        ("Mail", "global"),
    ]
    registry = json.loads((tmp_path / "data" / "userlist.json").read_text())
    assert "alice" in registry


def test_cache_covers_unreadable_primary(context, tmp_path):
    alice = context.open_store(StaticIdentityOracle("alice", False))
    alice.upsert(UpsertLinkInput(name="Mail", url="https://mail.example"))

    (tmp_path / "data" / "users" / "alice.json").write_text("{corrupt")
    reopened = context.open_store(StaticIdentityOracle("alice", False), load=False)
    loaded = reopened.load_all()

    assert loaded.from_cache == ["users/alice.json"]
    assert [link.name for link in reopened.links] == ["Mail"]


def test_documents_are_versioned(context, tmp_path):
    alice = context.open_store(StaticIdentityOracle("alice", False))
    alice.upsert(UpsertLinkInput(name="Mail", url="https://mail.example"))

    doc = json.loads((tmp_path / "data" / "users" / "alice.json").read_text())
    assert doc["version"] == 2
    assert doc["updated_at"].endswith("Z")
    assert set(doc["links"][0]) == {
        "id", "name", "url", "group", "description", "open_in_frame", "created_at", "updated_at",
    }
