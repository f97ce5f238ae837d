"""Unit tests for the command-line surface."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from docflow.engine.main import (
    EXIT_DUPLICATE,
    EXIT_INVALID,
    EXIT_NOT_FOUND,
    EXIT_OK,
    EXIT_REJECTED,
    main,
)


@pytest.fixture(autouse=True)
def _database(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    db = tmp_path / "cli.sqlite3"
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DOCFLOW_DATABASE_PATH", str(db))
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    return db


def _run(capsys: pytest.CaptureFixture[str], *argv: str) -> tuple[int, object]:
    code = main(list(argv))
    out = capsys.readouterr().out
    return code, json.loads(out) if out.strip() else None


def test_cli_end_to_end(capsys: pytest.CaptureFixture[str]) -> None:
    code, payload = _run(capsys, "init-db")
    assert code == EXIT_OK

    code, wf = _run(
        capsys, "new-workflow", "--name", "acme.invoice", "--doc-type", "1", "--begin-state", "10"
    )
    assert code == EXIT_OK
    assert isinstance(wf, dict) and wf["name"] == "acme.invoice"
    wid = str(wf["id"])

    code, node = _run(
        capsys,
        "add-node",
        "--workflow-id", wid,
        "--doc-type", "1",
        "--state", "10",
        "--name", "Draft",
        "--type", "begin",
        "--transitions", "1=20",
    )
    assert code == EXIT_OK

    code, details = _run(capsys, "get-workflow", wid)
    assert code == EXIT_OK
    assert isinstance(details, dict)
    assert details["nodes"][0]["transitions"] == {"1": 20}

    code, event = _run(capsys, "new-event", "--doc-type", "1", "--state", "10", "--action", "1")
    assert code == EXIT_OK
    assert isinstance(event, dict) and event["status"] == "created"
    eid = str(event["id"])

    code, applied = _run(
        capsys, "apply-event", "--workflow-id", wid, "--event-id", eid, "--recipients", "7"
    )
    assert code == EXIT_OK
    assert applied == {"event_id": int(eid), "from_state": 10, "to_state": 20}

    code, intents = _run(capsys, "notifications", eid)
    assert code == EXIT_OK
    assert isinstance(intents, list) and [i["group_id"] for i in intents] == [7]

    code, _ = _run(
        capsys, "apply-event", "--workflow-id", wid, "--event-id", eid, "--recipients", "7"
    )
    assert code == EXIT_REJECTED


def test_cli_error_exit_codes(capsys: pytest.CaptureFixture[str]) -> None:
    code, _ = _run(capsys, "new-workflow", "--name", "  ", "--doc-type", "1", "--begin-state", "10")
    assert code == EXIT_INVALID

    code, _ = _run(capsys, "new-workflow", "--name", "w", "--doc-type", "1", "--begin-state", "10")
    assert code == EXIT_OK
    code, _ = _run(capsys, "new-workflow", "--name", "w", "--doc-type", "1", "--begin-state", "10")
    assert code == EXIT_DUPLICATE

    code, _ = _run(capsys, "get-workflow", "999")
    assert code == EXIT_NOT_FOUND

    code, _ = _run(capsys, "list-workflows", "--offset", "-1")
    assert code == EXIT_INVALID

    code, listed = _run(capsys, "list-workflows")
    assert code == EXIT_OK
    assert isinstance(listed, list) and len(listed) == 1


def test_cli_rejects_malformed_transitions(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(
            [
                "add-node",
                "--workflow-id", "1",
                "--doc-type", "1",
                "--state", "10",
                "--name", "Draft",
                "--transitions", "1->20",
            ]
        )
    assert excinfo.value.code == 2
