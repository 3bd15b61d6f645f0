"""
Tests for the board HTTP API (board_server.py).
"""
import pytest

import board_server
from pkg.taskboard.controller import BoardController
from pkg.taskboard.persistence import PersistenceSynchronizer

from conftest import RecordingBackend


@pytest.fixture
def backend():
    return RecordingBackend()


@pytest.fixture
def client(store, backend):
    board_server.init_board(BoardController(PersistenceSynchronizer(backend), store=store), load=False)
    board_server.app.config["TESTING"] = True
    with board_server.app.test_client() as c:
        yield c
    board_server._controller = None


def container_ids(board, key):
    for container in board["containers"]:
        if container["key"] == key:
            return [t["id"] for t in container["tasks"]]
    raise KeyError(key)


def test_get_board(client):
    r = client.get("/api/board")
    assert r.status_code == 200
    body = r.get_json()
    assert body["stats"]["total"] == 5
    assert container_ids(body, "to_do") == ["1", "5"]


def test_create_task(client, backend):
    r = client.post("/api/tasks", json={
        "title": "Write docs",
        "container": "in-progress-category",
        "priority": "medium",
        "subtasks": ["intro", "usage"],
        "assignees": [{"name": "Eva Lang", "color": "#00BEE8"}],
    })
    assert r.status_code == 201
    body = r.get_json()
    assert body["task"]["id"] == "6"
    assert body["task"]["progress"] == {"completed": 0, "total": 2, "percent": 0}
    assert body["persisted"] is True
    assert container_ids(body["board"], "in_progress") == ["2", "6"]
    assert len(backend.saved) == 1


def test_create_task_validation(client):
    assert client.post("/api/tasks", json={}).status_code == 400
    assert client.post("/api/tasks", json={"title": "x", "container": "bogus"}).status_code == 400
    assert client.post("/api/tasks", json={"title": "x", "id": "1"}).status_code == 409
    assert client.post("/api/tasks", json={"title": "x", "id": 1}).status_code == 409
    assert client.post("/api/tasks", json={"title": "x", "id": True}).status_code == 400
    assert client.post("/api/tasks", json={"title": "x", "id": {"n": 1}}).status_code == 400


@pytest.mark.parametrize("payload", [
    {"title": "x", "subtasks": 5},
    {"title": "x", "subtasks": "abc"},
    {"title": "x", "assignees": {}},
    {"title": "x", "assignees": "Eva"},
])
def test_create_task_rejects_non_list_fields(client, backend, payload):
    r = client.post("/api/tasks", json=payload)
    assert r.status_code == 400
    assert "must be a list" in r.get_json()["error"]
    assert backend.saved == []


def test_create_task_accepts_null_lists(client):
    r = client.post("/api/tasks", json={"title": "x", "subtasks": None, "assignees": None})
    assert r.status_code == 201
    assert r.get_json()["task"]["subtasks"] == []


def test_create_task_with_integer_id_is_addressable(client):
    r = client.post("/api/tasks", json={"title": "t", "id": 42})
    assert r.status_code == 201
    assert r.get_json()["task"]["id"] == "42"

    r = client.post("/api/tasks/42/drop", json={"target": "target-done-table"})
    assert r.status_code == 200
    assert r.get_json()["moved"] is True
    assert container_ids(r.get_json()["board"], "done") == ["4", "42"]
    assert client.delete("/api/tasks/42").status_code == 200


def test_drop(client):
    r = client.post("/api/tasks/1/drop", json={"target": "target-done-table"})
    assert r.status_code == 200
    body = r.get_json()
    assert body["moved"] is True
    assert container_ids(body["board"], "done") == ["4", "1"]


def test_drop_unknown_target_is_noop(client, backend):
    before = client.get("/api/board").get_json()
    r = client.post("/api/tasks/1/drop", json={"target": "bogus-container"})
    assert r.status_code == 200
    assert r.get_json()["moved"] is False
    assert r.get_json()["board"] == before
    assert backend.saved == []


@pytest.mark.parametrize("path,payload", [
    ("/api/tasks/1/drop", {"target": 7}),
    ("/api/tasks/1/drop", {"target": ["target-done-table"]}),
    ("/api/tasks/1/category", {"category": 7}),
])
def test_non_string_identifier_is_noop(client, backend, path, payload):
    r = client.post(path, json=payload)
    assert r.status_code == 200
    assert r.get_json()["moved"] is False
    assert container_ids(r.get_json()["board"], "to_do") == ["1", "5"]
    assert backend.saved == []


def test_drop_unknown_task(client):
    r = client.post("/api/tasks/99/drop", json={"target": "target-done-table"})
    assert r.status_code == 404
    assert "99" in r.get_json()["error"]


def test_category_move(client):
    r = client.post("/api/tasks/3/category", json={"category": "to-do-category"})
    assert r.status_code == 200
    assert container_ids(r.get_json()["board"], "to_do") == ["1", "5", "3"]
    assert client.post("/api/tasks/99/category", json={"category": "done-category"}).status_code == 404


def test_toggle_subtask(client):
    task = client.post("/api/tasks", json={"title": "Checklist", "subtasks": ["a"]}).get_json()["task"]
    subtask_id = task["subtasks"][0]["id"]

    r = client.post(f"/api/tasks/{task['id']}/subtasks/{subtask_id}/toggle")
    assert r.status_code == 200
    assert r.get_json()["done"] is True
    assert client.post(f"/api/tasks/{task['id']}/subtasks/nope/toggle").status_code == 404


def test_delete_task(client, backend):
    r = client.delete("/api/tasks/2")
    assert r.status_code == 200
    assert container_ids(r.get_json()["board"], "in_progress") == []
    assert client.delete("/api/tasks/2").status_code == 404
    assert len(backend.saved) == 1


def test_clear_all(client, backend):
    r = client.delete("/api/tasks")
    assert r.status_code == 200
    assert r.get_json()["board"]["stats"]["total"] == 0
    assert backend.saved[-1]["tasks"] == []


def test_health(client):
    body = client.get("/health").get_json()
    assert body["status"] == "ok"
    assert body["tasks"] == 5
    assert body["partition_errors"] == []


def test_lazy_controller_is_built_once(monkeypatch, tmp_path):
    monkeypatch.setenv("TASKBOARD_BACKEND", "memory")
    monkeypatch.setenv("TASKBOARD_CONFIG", str(tmp_path / "missing.yaml"))
    monkeypatch.setattr(board_server, "_controller", None)

    first = board_server.get_controller()
    assert board_server.get_controller() is first
    assert len(first.store) == 0
