"""
Tests for the dashboard session and links API endpoints.

Runs the HTTP layer against a temporary data directory.
"""

import json
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from linkdash.adapters.session_store import InMemorySessionStore
from linkdash.api.deps import get_context, get_sessions
from linkdash.api.main import app
from linkdash.app_shell.context import StoreContext
from linkdash.rules.models import FallbackRules, IdentityRules, Rules, StorageRules

ADMIN = {"X-Remote-User": "root"}
ALICE = {"X-Remote-User": "alice"}


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    data = tmp_path / "data"
    (data / "users").mkdir(parents=True)
    (data / "global.json").write_text(
        json.dumps({"version": 2, "links": [{"id": "g1", "name": "Wiki", "url": "https://wiki"}]})
    )
    (data / "users" / "alice.json").write_text(
        json.dumps({"version": 2, "links": [{"id": "a1", "name": "Mail", "url": "https://mail"}]})
    )
    (data / "userlist.json").write_text(json.dumps(["alice"]))
    return data


@pytest.fixture
def client(data_dir: Path):
    rules = Rules(
        storage=StorageRules(data_dir=str(data_dir)),
        fallback=FallbackRules(enabled=False),
        identity=IdentityRules(admins=["root"]),
    )
    context = StoreContext.create(rules)
    sessions = InMemorySessionStore()
    app.dependency_overrides[get_context] = lambda: context
    app.dependency_overrides[get_sessions] = lambda: sessions
    yield TestClient(app)
    app.dependency_overrides.clear()
    sessions.clear()


def open_session(client: TestClient, headers: dict[str, str]) -> str:
    response = client.post("/api/sessions", headers=headers)
    assert response.status_code == 201
    return response.json()["session_id"]


def links_url(session_id: str, suffix: str = "") -> str:
    return f"/api/sessions/{session_id}/links{suffix}"


# --- Sessions ---


class TestSessions:
    def test_open_session_reports_load(self, client: TestClient) -> None:
        response = client.post("/api/sessions", headers=ADMIN)
        data = response.json()

        assert data["username"] == "root"
        assert data["is_admin"] is True
        assert data["global_count"] == 1
        assert data["personal_counts"] == {"alice": 1, "root": 0}

    def test_close_session(self, client: TestClient) -> None:
        sid = open_session(client, ALICE)
        assert client.delete(f"/api/sessions/{sid}", headers=ALICE).status_code == 204
        assert client.get(links_url(sid), headers=ALICE).status_code == 404
        assert client.delete(f"/api/sessions/{sid}", headers=ALICE).status_code == 404

    def test_unknown_session(self, client: TestClient) -> None:
        assert client.get(links_url("missing"), headers=ALICE).status_code == 404

    def test_health(self, client: TestClient) -> None:
        assert client.get("/health").json() == {"status": "ok", "service": "api"}


# --- Listing ---


class TestListLinks:
    def test_merged_view_with_permissions(self, client: TestClient) -> None:
        sid = open_session(client, ALICE)
        data = client.get(links_url(sid), headers=ALICE).json()

        assert data["total"] == 2
        assert [(i["id"], i["layer"], i["can_edit"]) for i in data["items"]] == [
            ("g1", "global", False),
            ("a1", "personal", True),
        ]

    def test_query_filter(self, client: TestClient) -> None:
        sid = open_session(client, ALICE)
        data = client.get(links_url(sid), params={"q": "mail"}, headers=ALICE).json()
        assert [i["id"] for i in data["items"]] == ["a1"]

    def test_groups(self, client: TestClient) -> None:
        sid = open_session(client, ALICE)
        assert client.get(f"/api/sessions/{sid}/groups", headers=ALICE).json() == ["General"]


# --- Mutations ---


class TestCreateAndEdit:
    def test_create_personal(self, client: TestClient, data_dir: Path) -> None:
        sid = open_session(client, ALICE)
        response = client.post(
            links_url(sid),
            json={"name": "Docs", "url": "example.com", "group": "Ref"},
            headers=ALICE,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["persisted"] is True
        assert body["link"]["url"] == "https://example.com"
        assert body["link"]["owner"] == "alice"
        saved = json.loads((data_dir / "users" / "alice.json").read_text())
        assert [r["name"] for r in saved["links"]] == ["Mail", "Docs"]

    def test_validation_error(self, client: TestClient) -> None:
        sid = open_session(client, ALICE)
        response = client.post(links_url(sid), json={"name": "", "url": "x.com"}, headers=ALICE)

        assert response.status_code == 400
        assert response.json()["detail"][0]["code"] == "name_required"

    def test_user_cannot_edit_global(self, client: TestClient) -> None:
        sid = open_session(client, ALICE)
        response = client.put(
            links_url(sid, "/g1"), json={"name": "X", "url": "https://x"}, headers=ALICE
        )
        assert response.status_code == 403

    def test_edit_unknown_link(self, client: TestClient) -> None:
        sid = open_session(client, ALICE)
        response = client.put(
            links_url(sid, "/nope"), json={"name": "X", "url": "https://x"}, headers=ALICE
        )
        assert response.status_code == 404

    def test_admin_promotes_personal_to_global(self, client: TestClient, data_dir: Path) -> None:
        sid = open_session(client, ADMIN)
        response = client.put(
            links_url(sid, "/a1"),
            json={"name": "Mail", "url": "https://mail", "layer": "global"},
            headers=ADMIN,
        )

        assert response.status_code == 200
        assert response.json()["link"]["layer"] == "global"
        global_doc = json.loads((data_dir / "global.json").read_text())
        alice_doc = json.loads((data_dir / "users" / "alice.json").read_text())
        assert [r["id"] for r in global_doc["links"]] == ["g1", "a1"]
        assert alice_doc["links"] == []

    def test_admin_edit_tags_description(self, client: TestClient) -> None:
        sid = open_session(client, ADMIN)
        response = client.put(
            links_url(sid, "/a1"), json={"name": "Mail", "url": "https://mail"}, headers=ADMIN
        )
        assert response.json()["link"]["description"] == "(Admin Edited)"


class TestDuplicateAndDelete:
    def test_duplicate(self, client: TestClient) -> None:
        sid = open_session(client, ALICE)
        response = client.post(links_url(sid, "/a1/duplicate"), headers=ALICE)

        assert response.status_code == 201
        assert response.json()["link"]["name"] == "Mail (copy)"

    def test_delete(self, client: TestClient) -> None:
        sid = open_session(client, ALICE)
        response = client.delete(links_url(sid, "/a1"), headers=ALICE)

        assert response.status_code == 200
        assert response.json()["link"]["id"] == "a1"
        assert client.get(links_url(sid), headers=ALICE).json()["total"] == 1

    def test_delete_global_forbidden(self, client: TestClient) -> None:
        sid = open_session(client, ALICE)
        assert client.delete(links_url(sid, "/g1"), headers=ALICE).status_code == 403


# --- Ordering ---


class TestOrdering:
    def test_move_then_save(self, client: TestClient, data_dir: Path) -> None:
        sid = open_session(client, ALICE)
        client.post(links_url(sid), json={"name": "Docs", "url": "https://docs"}, headers=ALICE)
        ids = [i["id"] for i in client.get(links_url(sid), headers=ALICE).json()["items"]]
        docs_id = ids[-1]

        moved = client.post(
            f"/api/sessions/{sid}/move", json={"from_id": docs_id, "to_id": "a1"}, headers=ALICE
        )
        assert moved.json() == {"moved": True, "reason": None}
        dirty = client.get(f"/api/sessions/{sid}/dirty", headers=ALICE).json()
        assert dirty == {"global_dirty": False, "personal": ["alice"], "any": True}

        saved = client.post(f"/api/sessions/{sid}/save-order", headers=ALICE).json()
        assert saved["success"] is True
        assert saved["saved"] == ["users/alice.json"]
        doc = json.loads((data_dir / "users" / "alice.json").read_text())
        assert [r["id"] for r in doc["links"]] == [docs_id, "a1"]

    def test_cross_layer_move_rejected(self, client: TestClient) -> None:
        sid = open_session(client, ADMIN)
        moved = client.post(
            f"/api/sessions/{sid}/move", json={"from_id": "g1", "to_id": "a1"}, headers=ADMIN
        )
        assert moved.json() == {"moved": False, "reason": "cross_layer"}


# --- Identity ---


def test_identity_change_applies_to_open_session(client: TestClient) -> None:
    sid = open_session(client, ADMIN)
    headers = {"X-Remote-User": "alice"}
    data = client.get(links_url(sid), headers=headers).json()

    assert all(not i["can_edit"] for i in data["items"] if i["layer"] == "global")


def test_other_user_on_open_session_keeps_their_links(client: TestClient, data_dir: Path) -> None:
    bob_file = data_dir / "users" / "bob.json"
    bob_file.write_text(
        json.dumps({"version": 2, "links": [{"id": "b1", "name": "Bob", "url": "https://bob"}]})
    )
    sid = open_session(client, ALICE)
    bob = {"X-Remote-User": "bob"}

    response = client.post(links_url(sid), json={"name": "New", "url": "https://new"}, headers=bob)

    assert response.status_code == 201
    assert [r["id"] for r in json.loads(bob_file.read_text())["links"]][0] == "b1"
    assert len(json.loads(bob_file.read_text())["links"]) == 2


# --- Import / Export ---


class TestImportExport:
    def test_admin_import_flat(self, client: TestClient) -> None:
        sid = open_session(client, ADMIN)
        response = client.post(
            f"/api/sessions/{sid}/import",
            json={"links": [{"name": "Docs", "url": "example.com", "group": "Ref"}]},
            headers=ADMIN,
        )

        assert response.status_code == 200
        assert response.json()["global_count"] == 1
        items = client.get(links_url(sid), params={"group": "ref"}, headers=ADMIN).json()["items"]
        assert [(i["name"], i["url"]) for i in items] == [("Docs", "https://example.com")]

    def test_import_bad_shape(self, client: TestClient) -> None:
        sid = open_session(client, ADMIN)
        response = client.post(f"/api/sessions/{sid}/import", json={"foo": 1}, headers=ADMIN)

        assert response.status_code == 400
        assert response.json()["detail"][0]["message"] == "Invalid JSON format."

    def test_user_import_forbidden(self, client: TestClient) -> None:
        sid = open_session(client, ALICE)
        response = client.post(f"/api/sessions/{sid}/import", json=[], headers=ALICE)
        assert response.status_code == 403

    def test_export(self, client: TestClient) -> None:
        sid = open_session(client, ALICE)
        bundle = client.get(f"/api/sessions/{sid}/export", headers=ALICE).json()

        assert bundle["version"] == 2
        assert [r["id"] for r in bundle["globalLinks"]] == ["g1"]
        assert list(bundle["personalLinks"]) == ["alice"]
