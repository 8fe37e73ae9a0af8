# tests/test_api.py

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from taskmaster.api.dependencies import (
    get_blob_store,
    get_database_health,
    get_session_registry,
    get_task_store,
)
from taskmaster.api.main import create_app
from taskmaster.application.use_cases.edit_task import EditSessionRegistry
from taskmaster.domain.entities.attachment_set import MAX_ATTACHMENTS
from taskmaster.domain.models import Task

from .fakes import OWNER, FakeBlobStore, FakeTaskStore, ref

HEADERS = {"x-owner-id": OWNER}


@pytest.fixture()
def client(blob_store: FakeBlobStore, task_store: FakeTaskStore) -> TestClient:
    app = create_app(with_lifespan=False)
    registry = EditSessionRegistry()
    app.dependency_overrides[get_task_store] = lambda: task_store
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_session_registry] = lambda: registry
    app.dependency_overrides[get_database_health] = lambda: {"status": "healthy"}
    return TestClient(app)


def png(name: str = "photo.png", data: bytes = b"\x89PNG data") -> dict:
    return {"file": (name, data, "image/png")}


def open_session(client: TestClient, task: Task) -> dict:
    resp = client.post(f"/tasks/{task.id}/edit-sessions", headers=HEADERS)
    assert resp.status_code == 201
    return resp.json()


def test_requests_without_owner_are_rejected(client: TestClient) -> None:
    assert client.get("/tasks").status_code == 401


def test_health_reports_database_status(client: TestClient) -> None:
    body = client.get("/health").json()
    assert body["status"] == "healthy"
    assert body["database"]["status"] == "healthy"


def test_health_is_degraded_without_database(client: TestClient) -> None:
    client.app.dependency_overrides[get_database_health] = lambda: {
        "status": "unhealthy",
        "error": "connection refused",
    }

    body = client.get("/health").json()

    assert body["status"] == "degraded"
    assert body["database"]["error"] == "connection refused"


def test_create_list_filter_and_stats(client: TestClient) -> None:
    resp = client.post(
        "/tasks",
        json={"title": "Buy groceries", "priority": "low", "category": "shopping"},
        headers=HEADERS,
    )
    assert resp.status_code == 201
    assert resp.json()["attachment_refs"] == []

    all_titles = [t["title"] for t in client.get("/tasks", headers=HEADERS).json()]
    assert set(all_titles) == {"Buy groceries", "Finish project proposal"}

    shopping = client.get("/tasks", params={"category": "shopping"}, headers=HEADERS).json()
    assert [t["title"] for t in shopping] == ["Buy groceries"]

    searched = client.get("/tasks", params={"search": "PROPOSAL"}, headers=HEADERS).json()
    assert [t["title"] for t in searched] == ["Finish project proposal"]

    stats = client.get("/tasks/stats", headers=HEADERS).json()
    assert stats == {"total": 2, "completed": 0, "pending": 2, "high_priority": 0, "progress": 0}


def test_other_owners_cannot_see_a_task(client: TestClient, task: Task) -> None:
    resp = client.get(f"/tasks/{task.id}", headers={"x-owner-id": "intruder"})
    assert resp.status_code == 404


def test_patch_updates_fields_only(client: TestClient, task: Task) -> None:
    resp = client.patch(f"/tasks/{task.id}", json={"completed": True}, headers=HEADERS)
    assert resp.status_code == 200
    body = resp.json()
    assert body["completed"] is True
    assert body["attachment_refs"] == [ref("a"), ref("b")]


def test_full_edit_session_flow(
    client: TestClient, task: Task, blob_store: FakeBlobStore, task_store: FakeTaskStore
) -> None:
    session = open_session(client, task)
    sid = session["session_id"]
    assert [s["identity"] for s in session["slots"]] == [ref("a"), ref("b")]

    added = client.post(f"/edit-sessions/{sid}/attachments", files=png(), headers=HEADERS)
    assert added.status_code == 201
    local_id = added.json()["identity"]
    assert added.json()["kind"] == "pending"

    resp = client.post(
        f"/edit-sessions/{sid}/attachments/remove", json={"identity": ref("a")}, headers=HEADERS
    )
    assert [s["identity"] for s in resp.json()["slots"]] == [ref("b"), local_id]

    resp = client.post(
        f"/edit-sessions/{sid}/attachments/reorder",
        json={"identity": local_id, "new_index": 0},
        headers=HEADERS,
    )
    assert [s["identity"] for s in resp.json()["slots"]] == [local_id, ref("b")]

    # Nothing touched the stores yet
    assert blob_store.upload_calls == []
    assert task_store.updates == []

    saved = client.post(f"/edit-sessions/{sid}/save", json={"title": "Proposal v2"}, headers=HEADERS)
    assert saved.status_code == 200
    body = saved.json()
    new_ref = blob_store.resolve_public_ref(f"{OWNER}/k1")
    assert body["attachment_refs"] == [new_ref, ref("b")]
    assert body["task"]["title"] == "Proposal v2"
    assert body["uploaded"] == 1
    assert body["deleted"] == 1
    assert body["warnings"] == []

    # Session is gone after save
    assert client.get(f"/edit-sessions/{sid}", headers=HEADERS).status_code == 404


def test_save_reports_upload_failures_as_warnings(
    client: TestClient, task: Task, blob_store: FakeBlobStore
) -> None:
    sid = open_session(client, task)["session_id"]
    blob_store.fail_uploads.add(b"broken")
    client.post(f"/edit-sessions/{sid}/attachments", files=png(data=b"broken"), headers=HEADERS)

    body = client.post(f"/edit-sessions/{sid}/save", headers=HEADERS).json()

    assert body["attachment_refs"] == [ref("a"), ref("b")]
    assert [w["operation"] for w in body["warnings"]] == ["upload"]


def test_save_with_record_failure_returns_orphans(
    client: TestClient, task: Task, blob_store: FakeBlobStore, task_store: FakeTaskStore
) -> None:
    sid = open_session(client, task)["session_id"]
    client.post(f"/edit-sessions/{sid}/attachments", files=png(), headers=HEADERS)
    task_store.fail_updates = True

    resp = client.post(f"/edit-sessions/{sid}/save", headers=HEADERS)

    assert resp.status_code == 502
    assert resp.json()["detail"]["orphaned_refs"] == [blob_store.resolve_public_ref(f"{OWNER}/k1")]


@pytest.mark.parametrize("body", [{"title": None}, {"completed": None}, {"priority": None}])
def test_patch_rejects_null_for_required_fields(
    client: TestClient, task: Task, task_store: FakeTaskStore, body: dict
) -> None:
    resp = client.patch(f"/tasks/{task.id}", json=body, headers=HEADERS)

    assert resp.status_code == 422
    assert task_store.updates == []
    assert task_store.tasks[task.id].title == "Finish project proposal"


def test_patch_may_clear_optional_fields(client: TestClient, task: Task) -> None:
    resp = client.patch(f"/tasks/{task.id}", json={"description": None}, headers=HEADERS)

    assert resp.status_code == 200
    assert resp.json()["description"] is None


def test_save_after_task_deleted_returns_orphans(
    client: TestClient, task: Task, blob_store: FakeBlobStore, task_store: FakeTaskStore
) -> None:
    sid = open_session(client, task)["session_id"]
    client.post(f"/edit-sessions/{sid}/attachments", files=png(), headers=HEADERS)
    del task_store.tasks[task.id]

    resp = client.post(f"/edit-sessions/{sid}/save", headers=HEADERS)

    assert resp.status_code == 404
    detail = resp.json()["detail"]
    assert detail["orphaned_refs"] == [blob_store.resolve_public_ref(f"{OWNER}/k1")]
    assert f"{OWNER}/k1" in blob_store.objects


def test_capacity_and_type_checks(client: TestClient, task: Task) -> None:
    sid = open_session(client, task)["session_id"]
    for i in range(MAX_ATTACHMENTS - len(task.attachment_refs)):
        resp = client.post(
            f"/edit-sessions/{sid}/attachments", files=png(f"{i}.png", bytes([i])), headers=HEADERS
        )
        assert resp.status_code == 201

    resp = client.post(f"/edit-sessions/{sid}/attachments", files=png(), headers=HEADERS)
    assert resp.status_code == 409
    assert len(client.get(f"/edit-sessions/{sid}", headers=HEADERS).json()["slots"]) == MAX_ATTACHMENTS

    resp = client.post(
        f"/edit-sessions/{sid}/attachments",
        files={"file": ("notes.txt", b"text", "text/plain")},
        headers=HEADERS,
    )
    assert resp.status_code == 415


def test_cancel_discards_session(
    client: TestClient, task: Task, blob_store: FakeBlobStore, task_store: FakeTaskStore
) -> None:
    sid = open_session(client, task)["session_id"]
    client.post(f"/edit-sessions/{sid}/attachments", files=png(), headers=HEADERS)

    assert client.delete(f"/edit-sessions/{sid}", headers=HEADERS).status_code == 204
    assert client.get(f"/edit-sessions/{sid}", headers=HEADERS).status_code == 404
    assert blob_store.upload_calls == []
    assert task_store.updates == []


def test_delete_task_removes_blobs(
    client: TestClient, task: Task, blob_store: FakeBlobStore, task_store: FakeTaskStore
) -> None:
    resp = client.delete(f"/tasks/{task.id}", headers=HEADERS)

    assert resp.status_code == 200
    assert resp.json()["warnings"] == []
    assert task.id not in task_store.tasks
    assert blob_store.objects == {}
    assert client.get(f"/tasks/{task.id}", headers=HEADERS).status_code == 404
