"""Transactional store used by the workflow engine.

The engine only talks to storage through the :class:`UnitOfWork` protocol:
an atomic unit with ``execute``, ``query``, ``commit`` and ``rollback``.
:class:`SQLiteStore` is the concrete implementation; every unit of work owns
its own connection and starts with ``BEGIN IMMEDIATE`` so that concurrent
writers serialise on the database write lock.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from docflow.engine.errors import DuplicateError, StoreError

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS wf_workflows (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    doctype_id INTEGER NOT NULL,
    docstate_id INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS wf_workflow_nodes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    doctype_id INTEGER NOT NULL,
    docstate_id INTEGER NOT NULL,
    workflow_id INTEGER NOT NULL REFERENCES wf_workflows(id),
    name TEXT NOT NULL,
    type TEXT NOT NULL,
    UNIQUE (doctype_id, docstate_id)
);

CREATE TABLE IF NOT EXISTS wf_docstate_transitions (
    doctype_id INTEGER NOT NULL,
    from_state_id INTEGER NOT NULL,
    docaction_id INTEGER NOT NULL,
    to_state_id INTEGER NOT NULL,
    UNIQUE (doctype_id, from_state_id, docaction_id)
);

CREATE TABLE IF NOT EXISTS wf_docevents (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    doctype_id INTEGER NOT NULL,
    docstate_id INTEGER NOT NULL,
    docaction_id INTEGER NOT NULL,
    text TEXT NOT NULL DEFAULT '',
    status TEXT NOT NULL,
    ctime TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS wf_notifications (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    event_id INTEGER NOT NULL REFERENCES wf_docevents(id),
    group_id INTEGER NOT NULL,
    docstate_id INTEGER NOT NULL,
    ctime TEXT NOT NULL,
    UNIQUE (event_id, group_id)
);
"""


@dataclass(frozen=True, slots=True)
class ExecResult:
    lastrowid: int | None
    rowcount: int


class UnitOfWork(Protocol):
    """An atomic unit of work against the store."""

    def execute(self, sql: str, params: Sequence[Any] = ()) -> ExecResult: ...

    def query(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


def _translate(exc: sqlite3.Error) -> Exception:
    if isinstance(exc, sqlite3.IntegrityError) and "UNIQUE" in str(exc).upper():
        return DuplicateError(str(exc))
    return StoreError(str(exc))


class SQLiteUnitOfWork:
    """A single SQLite transaction.

    The unit of work is finished by exactly one of :meth:`commit` or
    :meth:`rollback`; both release the connection.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._open = True

    @property
    def is_open(self) -> bool:
        return self._open

    def _require_open(self) -> None:
        if not self._open:
            raise StoreError("Unit of work is already finished")

    def execute(self, sql: str, params: Sequence[Any] = ()) -> ExecResult:
        self._require_open()
        try:
            cursor = self._conn.execute(sql, tuple(params))
        except sqlite3.Error as e:
            raise _translate(e) from e
        return ExecResult(lastrowid=cursor.lastrowid, rowcount=cursor.rowcount)

    def query(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        self._require_open()
        try:
            rows = self._conn.execute(sql, tuple(params)).fetchall()
        except sqlite3.Error as e:
            raise _translate(e) from e
        return [dict(row) for row in rows]

    def commit(self) -> None:
        self._require_open()
        try:
            self._conn.execute("COMMIT")
        except sqlite3.Error as e:
            # A failed COMMIT may leave the transaction open.
            self._finish(rollback=True)
            raise StoreError(f"Commit failed: {e}") from e
        self._finish(rollback=False)

    def rollback(self) -> None:
        if not self._open:
            return
        self._finish(rollback=True)

    def _finish(self, *, rollback: bool) -> None:
        try:
            if rollback and self._conn.in_transaction:
                self._conn.execute("ROLLBACK")
        except sqlite3.Error as e:
            raise StoreError(f"Rollback failed: {e}") from e
        finally:
            self._open = False
            self._conn.close()


class SQLiteStore:
    """SQLite-backed transactional store.

    Args:
        db_path: Path to the database file. Each unit of work opens its own
            connection, so an in-memory database is not supported.
        timeout: Seconds to wait for the write lock before failing.
    """

    def __init__(self, db_path: str | Path, *, timeout: float = 5.0) -> None:
        self._db_path = Path(db_path)
        self._timeout = timeout

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(
                str(self._db_path),
                timeout=self._timeout,
                isolation_level=None,
                check_same_thread=False,
            )
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open database {self._db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def begin(self, *, immediate: bool = True) -> SQLiteUnitOfWork:
        """Open a new unit of work.

        ``immediate`` takes the write lock up front; read-only units of work
        use a deferred transaction instead.
        """

        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
        except sqlite3.Error as e:
            conn.close()
            raise StoreError(f"Cannot begin transaction: {e}") from e
        return SQLiteUnitOfWork(conn)

    def ensure_schema(self) -> None:
        """Create the engine tables if they do not exist yet."""

        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(f"Cannot create {self._db_path.parent}: {e}") from e
        conn = self._connect()
        try:
            conn.executescript(SCHEMA)
        except sqlite3.Error as e:
            raise StoreError(f"Schema provisioning failed: {e}") from e
        finally:
            conn.close()
        logger.info("Schema ready", extra={"db_path": str(self._db_path)})


@contextmanager
def scoped_unit_of_work(
    store: SQLiteStore, uow: UnitOfWork | None = None, *, immediate: bool = True
) -> Iterator[UnitOfWork]:
    """Yield the caller's unit of work, or a fresh one owned by this scope.

    A caller-supplied unit of work is never committed or rolled back here.
    A unit of work opened by this scope is committed when the block exits
    normally and rolled back when it raises.
    """

    if uow is not None:
        yield uow
        return

    own = store.begin(immediate=immediate)
    try:
        yield own
    except BaseException:
        own.rollback()
        raise
    own.commit()
