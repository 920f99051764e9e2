"""State store operations for models and their executions."""

from __future__ import annotations

import json
from datetime import timedelta
from typing import Any

from leapsql.state.base import StateError, StoreBase, _from_db, _new_id, _now, _or_null, _to_db
from leapsql.state.records import Model, ModelRun, ModelRunStatus, ModelTestConfig

_MODEL_COLUMNS = (
    "id, path, name, materialized, unique_key, content_hash, "
    "owner, schema_name, tags, tests, meta, created_at, updated_at"
)

_MODEL_RUN_COLUMNS = (
    "id, run_id, model_id, status, rows_affected, started_at, completed_at, error, execution_ms"
)

DEFAULT_MATERIALIZED = "table"


def _serialize(what: str, value: Any) -> str | None:
    """Return JSON text for a value, or None when it is empty."""
    if not value:
        return None
    try:
        return json.dumps(value)
    except (TypeError, ValueError) as exc:
        raise StateError(f"failed to serialize {what}: {exc}") from exc


def _deserialize(what: str, text: str | None) -> Any:
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError as exc:
        raise StateError(f"failed to deserialize {what}: {exc}") from exc


def _model_from_row(row: tuple) -> Model:
    (
        model_id,
        path,
        name,
        materialized,
        unique_key,
        content_hash,
        owner,
        schema,
        tags,
        tests,
        meta,
        created_at,
        updated_at,
    ) = row
    return Model(
        id=model_id,
        path=path,
        name=name,
        materialized=materialized,
        unique_key=unique_key or "",
        content_hash=content_hash,
        owner=owner or "",
        schema=schema or "",
        tags=list(_deserialize("tags", tags) or []),
        tests=[ModelTestConfig.from_dict(item) for item in _deserialize("tests", tests) or []],
        meta=dict(_deserialize("meta", meta) or {}),
        created_at=_from_db(created_at),
        updated_at=_from_db(updated_at),
    )


def _model_run_from_row(row: tuple) -> ModelRun:
    (
        run_id,
        parent_run_id,
        model_id,
        status,
        rows_affected,
        started_at,
        completed_at,
        error,
        execution_ms,
    ) = row
    return ModelRun(
        id=run_id,
        run_id=parent_run_id,
        model_id=model_id,
        status=ModelRunStatus(status),
        rows_affected=rows_affected,
        started_at=_from_db(started_at),
        completed_at=_from_db(completed_at),
        error=error or "",
        execution_ms=execution_ms,
    )


class ModelStore(StoreBase):
    """State store with model registration and model execution history."""

    # --- models ---

    def register_model(self, model: Model) -> None:
        """Insert a model, or update the one already registered at its path.

        The model's ``id``, ``created_at`` and ``updated_at`` are filled in.
        """
        if not model.materialized:
            model.materialized = DEFAULT_MATERIALIZED

        tags = _serialize("tags", list(model.tags))
        tests = _serialize("tests", [test.to_dict() for test in model.tests])
        meta = _serialize("meta", dict(model.meta))
        now = _now()

        try:
            existing = self.get_model_by_path(model.path)
        except StateError as exc:
            raise StateError(f"failed to check existing model: {exc}") from exc

        if existing is not None:
            model.id = existing.id
            model.created_at = existing.created_at
            model.updated_at = now
            self._execute(
                "update model",
                "UPDATE models SET name = ?, materialized = ?, unique_key = ?, "
                "content_hash = ?, owner = ?, schema_name = ?, tags = ?, tests = ?, "
                "meta = ?, updated_at = ? WHERE id = ?",
                (
                    model.name,
                    model.materialized,
                    model.unique_key,
                    model.content_hash,
                    _or_null(model.owner),
                    _or_null(model.schema),
                    tags,
                    tests,
                    meta,
                    _to_db(now),
                    model.id,
                ),
            )
            return

        if not model.id:
            model.id = _new_id()
        model.created_at = now
        model.updated_at = now
        self._execute(
            "insert model",
            f"INSERT INTO models ({_MODEL_COLUMNS}) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                model.id,
                model.path,
                model.name,
                model.materialized,
                model.unique_key,
                model.content_hash,
                _or_null(model.owner),
                _or_null(model.schema),
                tags,
                tests,
                meta,
                _to_db(now),
                _to_db(now),
            ),
        )

    def get_model_by_id(self, model_id: str) -> Model:
        """Return the model with ``model_id``; raise StateError if there is none."""
        row = self._fetch_one(
            "get model", f"SELECT {_MODEL_COLUMNS} FROM models WHERE id = ?", (model_id,)
        )
        if row is None:
            raise StateError(f"model not found: {model_id}")
        return _model_from_row(row)

    def get_model_by_path(self, path: str) -> Model | None:
        """Return the model registered at ``path``, or None."""
        row = self._fetch_one(
            "get model", f"SELECT {_MODEL_COLUMNS} FROM models WHERE path = ?", (path,)
        )
        return None if row is None else _model_from_row(row)

    def update_model_hash(self, model_id: str, content_hash: str) -> None:
        """Set the content hash of a model."""
        changed = self._execute(
            "update model hash",
            "UPDATE models SET content_hash = ?, updated_at = ? WHERE id = ?",
            (content_hash, _to_db(_now()), model_id),
        )
        if changed == 0:
            raise StateError(f"model not found: {model_id}")

    def list_models(self) -> list[Model]:
        """Return every registered model, ordered by path."""
        rows = self._fetch_all(
            "list models", f"SELECT {_MODEL_COLUMNS} FROM models ORDER BY path"
        )
        return [_model_from_row(row) for row in rows]

    # --- model runs ---

    def record_model_run(self, model_run: ModelRun) -> None:
        """Store a new model execution; fills in its ``id`` and ``started_at``."""
        if not model_run.id:
            model_run.id = _new_id()
        model_run.started_at = _now()
        self._execute(
            "record model run",
            "INSERT INTO model_runs (id, run_id, model_id, status, rows_affected, "
            "started_at, error, execution_ms) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (
                model_run.id,
                model_run.run_id,
                model_run.model_id,
                ModelRunStatus(model_run.status).value,
                model_run.rows_affected,
                _to_db(model_run.started_at),
                model_run.error,
                model_run.execution_ms,
            ),
        )

    def update_model_run(
        self,
        model_run_id: str,
        status: ModelRunStatus,
        rows_affected: int,
        error: str = "",
    ) -> None:
        """Finish a model execution and record how long it took."""
        now = _now()
        row = self._fetch_one(
            "get model run start time",
            "SELECT started_at FROM model_runs WHERE id = ?",
            (model_run_id,),
        )
        if row is None:
            raise StateError(f"failed to get model run start time: no such model run: {model_run_id}")
        started_at = _from_db(row[0])
        execution_ms = (now - started_at) // timedelta(milliseconds=1)

        changed = self._execute(
            "update model run",
            "UPDATE model_runs SET status = ?, rows_affected = ?, completed_at = ?, "
            "error = ?, execution_ms = ? WHERE id = ?",
            (
                ModelRunStatus(status).value,
                rows_affected,
                _to_db(now),
                _or_null(error),
                execution_ms,
                model_run_id,
            ),
        )
        if changed == 0:
            raise StateError(f"model run not found: {model_run_id}")

    def get_model_runs_for_run(self, run_id: str) -> list[ModelRun]:
        """Return the model executions of a pipeline run, oldest first."""
        rows = self._fetch_all(
            "get model runs",
            f"SELECT {_MODEL_RUN_COLUMNS} FROM model_runs WHERE run_id = ? ORDER BY started_at",
            (run_id,),
        )
        return [_model_run_from_row(row) for row in rows]

    def get_latest_model_run(self, model_id: str) -> ModelRun | None:
        """Return the most recent execution of a model, or None."""
        row = self._fetch_one(
            "get latest model run",
            f"SELECT {_MODEL_RUN_COLUMNS} FROM model_runs WHERE model_id = ? "
            "ORDER BY started_at DESC LIMIT 1",
            (model_id,),
        )
        return None if row is None else _model_run_from_row(row)