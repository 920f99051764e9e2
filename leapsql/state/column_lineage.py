"""State store operations for column-level lineage."""

from __future__ import annotations

from collections.abc import Iterable

from leapsql.state.model_store import ModelStore
from leapsql.state.records import ColumnInfo, SourceRef, TraceResult

_MAX_TRACE_DEPTH = 20

_TRACE_BACKWARD_SQL = f"""
WITH RECURSIVE trace AS (
    SELECT
        cl.model_path,
        cl.column_name,
        cl.source_table,
        cl.source_column,
        1 AS depth
    FROM column_lineage cl
    WHERE cl.model_path = ? AND cl.column_name = ?

    UNION ALL

    SELECT
        cl.model_path,
        cl.column_name,
        cl.source_table,
        cl.source_column,
        t.depth + 1
    FROM trace t
    JOIN models m ON (m.name = t.source_table OR m.path = t.source_table)
    JOIN column_lineage cl ON cl.model_path = m.path AND cl.column_name = t.source_column
    WHERE t.depth < {_MAX_TRACE_DEPTH}
)
SELECT DISTINCT
    source_table,
    source_column,
    depth,
    CASE WHEN m.path IS NULL THEN 1 ELSE 0 END AS is_external
FROM trace t
LEFT JOIN models m ON (m.name = t.source_table OR m.path = t.source_table)
ORDER BY depth, source_table, source_column
"""

_TRACE_FORWARD_SQL = f"""
WITH RECURSIVE trace AS (
    SELECT
        cl.model_path,
        cl.column_name,
        cl.source_table,
        cl.source_column,
        1 AS depth
    FROM column_lineage cl
    JOIN models m ON (m.name = cl.source_table OR m.path = cl.source_table)
    WHERE m.path = ? AND cl.source_column = ?

    UNION ALL

    SELECT
        cl.model_path,
        cl.column_name,
        cl.source_table,
        cl.source_column,
        t.depth + 1
    FROM trace t
    JOIN models m ON m.path = t.model_path
    JOIN column_lineage cl ON (cl.source_table = m.name OR cl.source_table = m.path)
                          AND cl.source_column = t.column_name
    WHERE t.depth < {_MAX_TRACE_DEPTH}
)
SELECT DISTINCT model_path, column_name, depth
FROM trace
ORDER BY depth, model_path, column_name
"""


class ColumnLineageStore(ModelStore):
    """State store with per-column lineage of models."""

    def save_model_columns(self, model_path: str, columns: Iterable[ColumnInfo]) -> None:
        """Replace the column lineage stored for ``model_path``."""
        with self._transaction("save model columns") as conn:
            conn.execute("DELETE FROM column_lineage WHERE model_path = ?", (model_path,))
            conn.execute("DELETE FROM model_columns WHERE model_path = ?", (model_path,))
            for column in columns:
                conn.execute(
                    "INSERT INTO model_columns (model_path, column_name, column_index, "
                    "transform_type, function_name) VALUES (?, ?, ?, ?, ?)",
                    (
                        model_path,
                        column.name,
                        column.index,
                        column.transform_type,
                        column.function,
                    ),
                )
                conn.executemany(
                    "INSERT INTO column_lineage (model_path, column_name, source_table, "
                    "source_column) VALUES (?, ?, ?, ?)",
                    [
                        (model_path, column.name, source.table, source.column)
                        for source in column.sources
                        if source.table or source.column
                    ],
                )

    def get_model_columns(self, model_path: str) -> list[ColumnInfo]:
        """Return the columns of a model with their sources, ordered by index."""
        column_rows = self._fetch_all(
            "get columns",
            "SELECT column_name, column_index, transform_type, function_name "
            "FROM model_columns WHERE model_path = ? ORDER BY column_index",
            (model_path,),
        )
        columns = {
            name: ColumnInfo(
                name=name,
                index=index,
                transform_type=transform_type or "",
                function=function or "",
            )
            for name, index, transform_type, function in column_rows
        }
        lineage_rows = self._fetch_all(
            "get column lineage",
            "SELECT column_name, source_table, source_column "
            "FROM column_lineage WHERE model_path = ? ORDER BY id",
            (model_path,),
        )
        for name, table, column in lineage_rows:
            info = columns.get(name)
            if info is not None:
                info.sources.append(SourceRef(table=table, column=column))
        return list(columns.values())

    def delete_model_columns(self, model_path: str) -> None:
        """Remove every column and lineage entry of a model."""
        with self._transaction("delete model columns") as conn:
            conn.execute("DELETE FROM column_lineage WHERE model_path = ?", (model_path,))
            conn.execute("DELETE FROM model_columns WHERE model_path = ?", (model_path,))

    def trace_column_backward(self, model_path: str, column_name: str) -> list[TraceResult]:
        """Follow a column upstream to every source it comes from."""
        rows = self._fetch_all(
            "trace column backward", _TRACE_BACKWARD_SQL, (model_path, column_name)
        )
        return [
            TraceResult(
                model_path=table,
                column_name=column,
                depth=depth,
                is_external=is_external == 1,
            )
            for table, column, depth, is_external in rows
        ]

    def trace_column_forward(self, model_path: str, column_name: str) -> list[TraceResult]:
        """Follow a column downstream to every column that consumes it."""
        rows = self._fetch_all(
            "trace column forward", _TRACE_FORWARD_SQL, (model_path, column_name)
        )
        return [
            TraceResult(model_path=path, column_name=column, depth=depth)
            for path, column, depth in rows
        ]