"""Unit tests for the SQLite unit of work."""

from __future__ import annotations

from pathlib import Path

import pytest

from docflow.engine.errors import DuplicateError, StoreError
from docflow.engine.store import SQLiteStore, UnitOfWork, scoped_unit_of_work


def _names(store: SQLiteStore) -> list[str]:
    uow = store.begin(immediate=False)
    try:
        return [r["name"] for r in uow.query("SELECT name FROM wf_workflows ORDER BY id")]
    finally:
        uow.rollback()


def _insert(uow: UnitOfWork, name: str) -> None:
    uow.execute(
        "INSERT INTO wf_workflows(name, doctype_id, docstate_id) VALUES(?, ?, ?)", (name, 1, 10)
    )


def test_ensure_schema_is_idempotent(store: SQLiteStore) -> None:
    store.ensure_schema()
    assert _names(store) == []


def test_scope_commits_on_success(store: SQLiteStore) -> None:
    with scoped_unit_of_work(store) as uow:
        _insert(uow, "a")
    assert _names(store) == ["a"]


def test_scope_rolls_back_on_failure(store: SQLiteStore) -> None:
    with pytest.raises(RuntimeError):
        with scoped_unit_of_work(store) as uow:
            _insert(uow, "a")
            raise RuntimeError("boom")
    assert _names(store) == []


def test_scope_leaves_caller_unit_of_work_alone(store: SQLiteStore) -> None:
    outer = store.begin()
    with pytest.raises(RuntimeError):
        with scoped_unit_of_work(store, outer) as uow:
            assert uow is outer
            _insert(uow, "a")
            raise RuntimeError("boom")

    # Still open and usable: ownership stays with the caller.
    assert outer.is_open
    _insert(outer, "b")
    outer.commit()
    assert _names(store) == ["a", "b"]


def test_unique_violation_maps_to_duplicate(store: SQLiteStore) -> None:
    with scoped_unit_of_work(store) as uow:
        _insert(uow, "a")
    with pytest.raises(DuplicateError):
        with scoped_unit_of_work(store) as uow:
            _insert(uow, "a")


def test_sql_errors_map_to_store_error(store: SQLiteStore) -> None:
    with pytest.raises(StoreError):
        with scoped_unit_of_work(store) as uow:
            uow.query("SELECT * FROM no_such_table")


def test_finished_unit_of_work_cannot_be_reused(store: SQLiteStore) -> None:
    uow = store.begin()
    uow.commit()
    assert not uow.is_open
    with pytest.raises(StoreError):
        _insert(uow, "late")
    # Rolling back a finished unit of work is a no-op.
    uow.rollback()


def test_unusable_database_directory_surfaces_as_store_error(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("occupied")

    with pytest.raises(StoreError):
        SQLiteStore(blocker / "docflow.sqlite3").ensure_schema()


def test_missing_tables_surface_as_store_error(tmp_path: Path) -> None:
    bare = SQLiteStore(tmp_path / "bare.sqlite3")
    with pytest.raises(StoreError):
        with scoped_unit_of_work(bare) as uow:
            _insert(uow, "a")


def test_write_lock_timeout_surfaces_as_store_error(tmp_path: Path) -> None:
    path = tmp_path / "locked.sqlite3"
    holder = SQLiteStore(path)
    holder.ensure_schema()
    impatient = SQLiteStore(path, timeout=0.05)

    lock = holder.begin()
    try:
        with pytest.raises(StoreError):
            impatient.begin()
    finally:
        lock.rollback()
