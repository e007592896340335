import os

os.environ["SKIP_DB_INIT"] = "1"

import pytest
from fastapi.testclient import TestClient

from mma_importer.api import dependencies
from mma_importer.api.dependencies import get_fight_store, get_fighter_store
from mma_importer.domain.imports.models import CommitMode
from mma_importer.main import app

client = TestClient(app)

FIGHTERS_CSV = b"first_name,last_name,wins,losses\nJon,Jones,28,1\nAlex,Pereira,12,2\n"


@pytest.fixture(autouse=True)
def override_stores(fighter_store, fight_store):
    """Route every session to the in-memory stores and start from an empty registry."""
    original_overrides = app.dependency_overrides.copy()
    app.dependency_overrides[get_fighter_store] = lambda: fighter_store
    app.dependency_overrides[get_fight_store] = lambda: fight_store
    dependencies.import_sessions.clear()
    yield
    dependencies.import_sessions.clear()
    app.dependency_overrides = original_overrides


def _create(content=FIGHTERS_CSV, data_type="fighters", filename="fighters.csv"):
    return client.post(
        "/imports",
        files={"file": (filename, content, "text/csv")},
        data={"data_type": data_type},
    )


def test_root():
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "MMA Importer API", "version": "1.0.0"}


def test_health():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_create_session_auto_maps_columns():
    response = _create()

    assert response.status_code == 200
    data = response.json()
    assert data["step"] == "mapping"
    assert data["data_type"] == "fighters"
    assert data["headers"] == ["first_name", "last_name", "wins", "losses"]
    assert [m["target_field"] for m in data["mappings"]] == ["first_name", "last_name", "wins", "losses"]
    assert data["validation"]["is_valid"] is True
    assert data["mapping_summary"]["mapped_count"] == 4
    assert data["field_groups"][0]["label"] == "Identity"


def test_get_unknown_session_is_404():
    response = client.get("/imports/does-not-exist")
    assert response.status_code == 404


def test_empty_upload_is_rejected():
    response = _create(content=b"")
    assert response.status_code == 400


def test_non_utf8_upload_is_rejected():
    response = _create(content=b"\xff\xfe\x00\x01")
    assert response.status_code == 400


def test_oversized_upload_is_rejected(monkeypatch):
    from mma_importer.api.routers import imports

    monkeypatch.setattr(imports, "MAX_UPLOAD_BYTES", 10)
    response = _create()

    assert response.status_code == 413


def test_incomplete_mapping_returns_missing_fields():
    session_id = _create().json()["session_id"]

    response = client.put(
        f"/imports/{session_id}/mappings",
        json={"source_column": "last_name", "target_field": None},
    )
    assert response.status_code == 200
    assert response.json()["validation"]["missing_fields"] == ["last_name"]

    response = client.post(f"/imports/{session_id}/preview")
    assert response.status_code == 422
    assert response.json()["detail"]["missing_fields"] == ["last_name"]


def test_mapping_to_unknown_field_is_400():
    session_id = _create().json()["session_id"]

    response = client.put(
        f"/imports/{session_id}/mappings",
        json={"source_column": "wins", "target_field": "walkout_song"},
    )

    assert response.status_code == 400


def test_schema_switch_remaps():
    session_id = _create().json()["session_id"]

    response = client.put(f"/imports/{session_id}/schema", json={"data_type": "fight_history"})

    assert response.status_code == 200
    data = response.json()
    assert data["data_type"] == "fight_history"
    assert data["validation"]["is_valid"] is False


def test_full_import_flow(fighter_store):
    session_id = _create().json()["session_id"]

    preview = client.post(f"/imports/{session_id}/preview")
    assert preview.status_code == 200
    data = preview.json()
    assert data["step"] == "preview"
    assert [r["status"] for r in data["rows"]] == ["duplicate", "ready"]
    assert data["summary"]["duplicate"] == 1

    action = client.post(f"/imports/{session_id}/rows/row-0/action", json={"action": "replace"})
    assert action.status_code == 200
    assert action.json()["summary"]["replacing"] == 1
    assert action.json()["rows"][0]["status"] == "ready"

    commit = client.post(f"/imports/{session_id}/commit")
    assert commit.status_code == 200
    body = commit.json()
    assert body["success"] is True
    assert body["result"]["added"] == 1
    assert body["result"]["replaced"] == 1
    assert body["session"]["step"] == "complete"
    assert [mode for mode, _ in fighter_store.calls] == [CommitMode.ADD, CommitMode.REPLACE]

    again = client.post(f"/imports/{session_id}/commit")
    assert again.status_code == 409

    restart = client.post(f"/imports/{session_id}/start-over")
    assert restart.status_code == 200
    assert restart.json()["step"] == "upload"

    reload = client.post(
        f"/imports/{session_id}/file",
        files={"file": ("more.csv", FIGHTERS_CSV, "text/csv")},
    )
    assert reload.status_code == 200
    assert reload.json()["step"] == "mapping"


def test_commit_failure_is_reported_and_session_stays_in_preview(fighter_store):
    fighter_store.fail_modes.add(CommitMode.ADD)
    session_id = _create().json()["session_id"]
    client.post(f"/imports/{session_id}/preview")

    response = client.post(f"/imports/{session_id}/commit")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["result"]["add_error"]
    assert body["session"]["step"] == "preview"


def test_invalid_row_action_is_400():
    session_id = _create().json()["session_id"]
    client.post(f"/imports/{session_id}/preview")

    response = client.post(f"/imports/{session_id}/rows/row-1/action", json={"action": "replace"})
    assert response.status_code == 400

    response = client.post(f"/imports/{session_id}/rows/row-9/action", json={"action": "skip"})
    assert response.status_code == 404


def test_row_action_during_commit_is_409(monkeypatch):
    session_id = _create().json()["session_id"]
    client.post(f"/imports/{session_id}/preview")
    session = dependencies.import_sessions[session_id]["session"]
    monkeypatch.setattr(session, "_committing", True)

    response = client.post(f"/imports/{session_id}/rows/row-0/action", json={"action": "replace"})

    assert response.status_code == 409
    assert session.get_row("row-0").action is None


def test_back_transitions():
    session_id = _create().json()["session_id"]

    assert client.post(f"/imports/{session_id}/cancel").status_code == 409

    client.post(f"/imports/{session_id}/preview")
    response = client.post(f"/imports/{session_id}/cancel")
    assert response.status_code == 200
    assert response.json()["step"] == "mapping"

    response = client.delete(f"/imports/{session_id}/file")
    assert response.status_code == 200
    assert response.json()["step"] == "upload"


def test_discard_session():
    session_id = _create().json()["session_id"]

    assert client.delete(f"/imports/{session_id}").status_code == 200
    assert client.get(f"/imports/{session_id}").status_code == 404


def test_expired_sessions_are_evicted():
    session_id = _create().json()["session_id"]
    dependencies.import_sessions[session_id]["timestamp"] -= dependencies.SESSION_TTL_SECONDS + 1

    assert dependencies.evict_expired_sessions() == 1
    assert client.get(f"/imports/{session_id}").status_code == 404


def test_active_session_limit(monkeypatch):
    monkeypatch.setattr(dependencies.settings, "import_session_max_active", 1)

    assert _create().status_code == 200
    assert _create().status_code == 429
