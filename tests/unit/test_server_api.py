from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from docflow.server.app import create_app
from docflow.server.config import ServerSettings


@pytest.fixture
def client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DOCFLOW_DATABASE_PATH", str(tmp_path / "api.sqlite3"))
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    return TestClient(create_app(ServerSettings()))


def _seed(client: TestClient) -> int:
    wf = client.post(
        "/api/workflows", json={"name": "acme.invoice", "doc_type": 1, "begin_state": 10}
    )
    assert wf.status_code == 201
    wid = wf.json()["id"]
    node = client.post(
        f"/api/workflows/{wid}/nodes",
        json={
            "doc_type": 1,
            "state": 10,
            "name": "Draft",
            "type": "begin",
            "transitions": {"1": 20},
        },
    )
    assert node.status_code == 201
    assert node.json()["transitions"] == {"1": 20}
    return wid


def test_health(client: TestClient) -> None:
    health = client.get("/api/health").json()
    assert health["status"] == "ok"
    assert "version" in health


def test_apply_event_roundtrip(client: TestClient) -> None:
    wid = _seed(client)
    event = client.post("/api/events", json={"doc_type": 1, "state": 10, "action": 1}).json()

    applied = client.post(
        f"/api/workflows/{wid}/events/{event['id']}/apply", json={"recipients": [7]}
    )
    assert applied.status_code == 200
    assert applied.json() == {"event_id": event["id"], "from_state": 10, "to_state": 20}

    assert client.get(f"/api/events/{event['id']}").json()["status"] == "applied"
    intents = client.get(f"/api/events/{event['id']}/notifications").json()
    assert [i["group_id"] for i in intents] == [7]

    again = client.post(
        f"/api/workflows/{wid}/events/{event['id']}/apply", json={"recipients": [7]}
    )
    assert again.status_code == 409
    assert again.json()["error"] == "AlreadyAppliedError"


def test_error_mapping(client: TestClient) -> None:
    wid = _seed(client)

    dup = client.post(
        "/api/workflows", json={"name": "acme.invoice", "doc_type": 1, "begin_state": 10}
    )
    assert dup.status_code == 409

    blank = client.post("/api/workflows", json={"name": " ", "doc_type": 1, "begin_state": 10})
    assert blank.status_code == 400

    assert client.get("/api/workflows/999").status_code == 404
    assert client.get("/api/workflows", params={"offset": -1}).status_code == 400

    illegal = client.post("/api/events", json={"doc_type": 1, "state": 10, "action": 99}).json()
    resp = client.post(
        f"/api/workflows/{wid}/events/{illegal['id']}/apply", json={"recipients": [7]}
    )
    assert resp.status_code == 422
    assert resp.json()["error"] == "IllegalActionError"

    no_recipients = client.post(
        "/api/events", json={"doc_type": 1, "state": 10, "action": 1}
    ).json()
    resp = client.post(
        f"/api/workflows/{wid}/events/{no_recipients['id']}/apply", json={"recipients": []}
    )
    assert resp.status_code == 400


def test_list_workflows_pagination(client: TestClient) -> None:
    for i in range(1, 8):
        client.post("/api/workflows", json={"name": f"wf.{i}", "doc_type": i, "begin_state": 10})

    page = client.get("/api/workflows", params={"offset": 5, "limit": 2}).json()
    assert [w["id"] for w in page] == [5, 6]
    assert len(client.get("/api/workflows").json()) == 7
