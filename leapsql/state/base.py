"""SQLite-backed state store: connection, schema, runs, dependencies, environments."""

from __future__ import annotations

import sqlite3
import uuid
from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

from leapsql.state.records import Environment, Run, RunStatus

MEMORY_PATH = ":memory:"

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS runs (
    id TEXT PRIMARY KEY,
    environment TEXT NOT NULL,
    status TEXT NOT NULL,
    started_at TEXT NOT NULL,
    completed_at TEXT,
    error TEXT
);
CREATE INDEX IF NOT EXISTS idx_runs_environment ON runs (environment, started_at);

CREATE TABLE IF NOT EXISTS models (
    id TEXT PRIMARY KEY,
    path TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    materialized TEXT NOT NULL DEFAULT 'table',
    unique_key TEXT,
    content_hash TEXT NOT NULL,
    owner TEXT,
    schema_name TEXT,
    tags TEXT,
    tests TEXT,
    meta TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_models_name ON models (name);

CREATE TABLE IF NOT EXISTS model_runs (
    id TEXT PRIMARY KEY,
    run_id TEXT NOT NULL REFERENCES runs (id),
    model_id TEXT NOT NULL REFERENCES models (id),
    status TEXT NOT NULL,
    rows_affected INTEGER NOT NULL DEFAULT 0,
    started_at TEXT NOT NULL,
    completed_at TEXT,
    error TEXT,
    execution_ms INTEGER NOT NULL DEFAULT 0
);
CREATE INDEX IF NOT EXISTS idx_model_runs_run ON model_runs (run_id);
CREATE INDEX IF NOT EXISTS idx_model_runs_model ON model_runs (model_id, started_at);

CREATE TABLE IF NOT EXISTS dependencies (
    model_id TEXT NOT NULL REFERENCES models (id),
    parent_id TEXT NOT NULL REFERENCES models (id),
    PRIMARY KEY (model_id, parent_id)
);
CREATE INDEX IF NOT EXISTS idx_dependencies_parent ON dependencies (parent_id);

CREATE TABLE IF NOT EXISTS environments (
    name TEXT PRIMARY KEY,
    commit_ref TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS model_columns (
    model_path TEXT NOT NULL REFERENCES models (path),
    column_name TEXT NOT NULL,
    column_index INTEGER NOT NULL,
    transform_type TEXT,
    function_name TEXT,
    PRIMARY KEY (model_path, column_name)
);

CREATE TABLE IF NOT EXISTS column_lineage (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    model_path TEXT NOT NULL,
    column_name TEXT NOT NULL,
    source_table TEXT NOT NULL,
    source_column TEXT NOT NULL,
    FOREIGN KEY (model_path, column_name)
        REFERENCES model_columns (model_path, column_name)
);
CREATE INDEX IF NOT EXISTS idx_column_lineage_model ON column_lineage (model_path, column_name);
CREATE INDEX IF NOT EXISTS idx_column_lineage_source ON column_lineage (source_table, source_column);

CREATE TABLE IF NOT EXISTS macro_namespaces (
    name TEXT PRIMARY KEY,
    file_path TEXT NOT NULL,
    package TEXT,
    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS macro_functions (
    namespace TEXT NOT NULL REFERENCES macro_namespaces (name) ON DELETE CASCADE,
    name TEXT NOT NULL,
    args TEXT NOT NULL DEFAULT '[]',
    docstring TEXT,
    line INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (namespace, name)
);
"""


class StateError(Exception):
    """Raised when a state store operation fails."""


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _to_db(value: datetime) -> str:
    """Return a sortable text form of a timestamp."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(sep=" ", timespec="microseconds")


def _from_db(value: str | None) -> datetime | None:
    if value is None:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _or_null(value: str) -> str | None:
    return value or None


class StoreBase:
    """Connection handling, schema and run, dependency and environment records."""

    def __init__(self) -> None:
        self._db: sqlite3.Connection | None = None
        self.path = ""

    def __enter__(self) -> StoreBase:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # --- connection ---

    def open(self, path: str) -> None:
        """Open the database at ``path``; use ``":memory:"`` for an in-memory one."""
        try:
            conn = sqlite3.connect(path, isolation_level=None, check_same_thread=False)
        except sqlite3.Error as exc:
            raise StateError(f"failed to open sqlite database: {exc}") from exc
        try:
            conn.execute("PRAGMA foreign_keys = ON")
            if path != MEMORY_PATH:
                conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("SELECT 1").fetchone()
        except sqlite3.Error as exc:
            conn.close()
            raise StateError(f"failed to ping sqlite database: {exc}") from exc
        self._db = conn
        self.path = path

    def close(self) -> None:
        """Close the connection; closing twice is harmless."""
        if self._db is not None:
            self._db.close()
            self._db = None

    def init_schema(self) -> None:
        """Create every table the store uses."""
        try:
            self._conn.executescript(SCHEMA_SQL)
        except sqlite3.Error as exc:
            raise StateError(f"failed to initialize schema: {exc}") from exc

    @property
    def _conn(self) -> sqlite3.Connection:
        if self._db is None:
            raise StateError("database not opened")
        return self._db

    def _execute(self, what: str, sql: str, params: Sequence[Any] = ()) -> int:
        """Run a statement and return the number of rows it changed."""
        try:
            return self._conn.execute(sql, params).rowcount
        except sqlite3.Error as exc:
            raise StateError(f"failed to {what}: {exc}") from exc

    def _fetch_one(self, what: str, sql: str, params: Sequence[Any] = ()) -> tuple | None:
        try:
            return self._conn.execute(sql, params).fetchone()
        except sqlite3.Error as exc:
            raise StateError(f"failed to {what}: {exc}") from exc

    def _fetch_all(self, what: str, sql: str, params: Sequence[Any] = ()) -> list[tuple]:
        try:
            return self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            raise StateError(f"failed to {what}: {exc}") from exc

    @contextmanager
    def _transaction(self, what: str) -> Iterator[sqlite3.Connection]:
        """Run the body in a transaction, rolling back on any error."""
        conn = self._conn
        try:
            conn.execute("BEGIN")
        except sqlite3.Error as exc:
            raise StateError(f"failed to begin transaction: {exc}") from exc
        try:
            yield conn
        except sqlite3.Error as exc:
            conn.execute("ROLLBACK")
            raise StateError(f"failed to {what}: {exc}") from exc
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        try:
            conn.execute("COMMIT")
        except sqlite3.Error as exc:
            conn.execute("ROLLBACK")
            raise StateError(f"failed to commit transaction: {exc}") from exc

    # --- runs ---

    @staticmethod
    def _run_from_row(row: tuple) -> Run:
        run_id, env, status, started_at, completed_at, error = row
        return Run(
            id=run_id,
            environment=env,
            status=RunStatus(status),
            started_at=_from_db(started_at),
            completed_at=_from_db(completed_at),
            error=error or "",
        )

    def create_run(self, env: str) -> Run:
        """Start a new pipeline run in ``env``."""
        run = Run(id=_new_id(), environment=env, status=RunStatus.RUNNING, started_at=_now())
        self._execute(
            "create run",
            "INSERT INTO runs (id, environment, status, started_at) VALUES (?, ?, ?, ?)",
            (run.id, run.environment, run.status.value, _to_db(run.started_at)),
        )
        return run

    def get_run(self, run_id: str) -> Run:
        """Return the run with ``run_id``; raise StateError if there is none."""
        row = self._fetch_one(
            "get run",
            "SELECT id, environment, status, started_at, completed_at, error "
            "FROM runs WHERE id = ?",
            (run_id,),
        )
        if row is None:
            raise StateError(f"run not found: {run_id}")
        return self._run_from_row(row)

    def complete_run(self, run_id: str, status: RunStatus, error: str = "") -> None:
        """Mark a run finished with ``status`` and an optional error message."""
        changed = self._execute(
            "complete run",
            "UPDATE runs SET status = ?, completed_at = ?, error = ? WHERE id = ?",
            (RunStatus(status).value, _to_db(_now()), _or_null(error), run_id),
        )
        if changed == 0:
            raise StateError(f"run not found: {run_id}")

    def get_latest_run(self, env: str) -> Run | None:
        """Return the most recent run of ``env``, or None."""
        row = self._fetch_one(
            "get latest run",
            "SELECT id, environment, status, started_at, completed_at, error "
            "FROM runs WHERE environment = ? ORDER BY started_at DESC LIMIT 1",
            (env,),
        )
        return None if row is None else self._run_from_row(row)

    # --- dependencies ---

    def set_dependencies(self, model_id: str, parent_ids: Iterable[str]) -> None:
        """Replace the parents of ``model_id`` with ``parent_ids``."""
        with self._transaction("set dependencies") as conn:
            conn.execute("DELETE FROM dependencies WHERE model_id = ?", (model_id,))
            conn.executemany(
                "INSERT INTO dependencies (model_id, parent_id) VALUES (?, ?)",
                [(model_id, parent_id) for parent_id in parent_ids],
            )

    def get_dependencies(self, model_id: str) -> list[str]:
        """Return the parent ids of a model."""
        rows = self._fetch_all(
            "get dependencies",
            "SELECT parent_id FROM dependencies WHERE model_id = ? ORDER BY rowid",
            (model_id,),
        )
        return [parent_id for (parent_id,) in rows]

    def get_dependents(self, model_id: str) -> list[str]:
        """Return the ids of models that depend on ``model_id``."""
        rows = self._fetch_all(
            "get dependents",
            "SELECT model_id FROM dependencies WHERE parent_id = ? ORDER BY rowid",
            (model_id,),
        )
        return [dependent for (dependent,) in rows]

    # --- environments ---

    def create_environment(self, name: str) -> Environment:
        """Create an environment named ``name``."""
        now = _now()
        env = Environment(name=name, created_at=now, updated_at=now)
        self._execute(
            "create environment",
            "INSERT INTO environments (name, created_at, updated_at) VALUES (?, ?, ?)",
            (name, _to_db(now), _to_db(now)),
        )
        return env

    def get_environment(self, name: str) -> Environment | None:
        """Return the environment named ``name``, or None."""
        row = self._fetch_one(
            "get environment",
            "SELECT name, commit_ref, created_at, updated_at FROM environments WHERE name = ?",
            (name,),
        )
        if row is None:
            return None
        env_name, commit_ref, created_at, updated_at = row
        return Environment(
            name=env_name,
            commit_ref=commit_ref or "",
            created_at=_from_db(created_at),
            updated_at=_from_db(updated_at),
        )

    def update_environment_ref(self, name: str, commit_ref: str) -> None:
        """Point an environment at ``commit_ref``."""
        changed = self._execute(
            "update environment ref",
            "UPDATE environments SET commit_ref = ?, updated_at = ? WHERE name = ?",
            (commit_ref, _to_db(_now()), name),
        )
        if changed == 0:
            raise StateError(f"environment not found: {name}")