"""State store operations for macro namespaces and their functions."""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any

from leapsql.state.base import StoreBase
from leapsql.state.records import MacroFunction, MacroNamespace

_NAMESPACE_COLUMNS = "name, file_path, package, updated_at"
_FUNCTION_COLUMNS = "namespace, name, args, docstring, line"


def _namespace_from_row(row: tuple) -> MacroNamespace:
    name, file_path, package, updated_at = row
    return MacroNamespace(
        name=name,
        file_path=file_path,
        package=package or "",
        updated_at=updated_at or "",
    )


def _parse_args(text: str | None) -> list[str]:
    """Decode the stored argument list; malformed data yields no arguments."""
    if not text:
        return []
    try:
        value: Any = json.loads(text)
    except ValueError:
        return []
    if not isinstance(value, list):
        return []
    return [str(item) for item in value]


def _function_from_row(row: tuple) -> MacroFunction:
    namespace, name, args, docstring, line = row
    return MacroFunction(
        namespace=namespace,
        name=name,
        args=_parse_args(args),
        docstring=docstring or "",
        line=line,
    )


class MacroStore(StoreBase):
    """State store with macro namespaces and the functions they export."""

    def save_macro_namespace(
        self, namespace: MacroNamespace, functions: Iterable[MacroFunction]
    ) -> None:
        """Store a namespace and replace all of its functions."""
        with self._transaction("save macro namespace") as conn:
            conn.execute(
                "INSERT INTO macro_namespaces (name, file_path, package, updated_at) "
                "VALUES (?, ?, ?, CURRENT_TIMESTAMP) "
                "ON CONFLICT(name) DO UPDATE SET "
                "file_path = excluded.file_path, "
                "package = excluded.package, "
                "updated_at = CURRENT_TIMESTAMP",
                (namespace.name, namespace.file_path, namespace.package),
            )
            conn.execute(
                "DELETE FROM macro_functions WHERE namespace = ?", (namespace.name,)
            )
            conn.executemany(
                "INSERT INTO macro_functions (namespace, name, args, docstring, line) "
                "VALUES (?, ?, ?, ?, ?)",
                [
                    (
                        namespace.name,
                        function.name,
                        json.dumps(list(function.args)),
                        function.docstring,
                        function.line,
                    )
                    for function in functions
                ],
            )

    def get_macro_namespaces(self) -> list[MacroNamespace]:
        """Return every namespace, ordered by name."""
        rows = self._fetch_all(
            "get namespaces",
            f"SELECT {_NAMESPACE_COLUMNS} FROM macro_namespaces ORDER BY name",
        )
        return [_namespace_from_row(row) for row in rows]

    def get_macro_namespace(self, name: str) -> MacroNamespace | None:
        """Return the namespace called ``name``, or None."""
        row = self._fetch_one(
            "get namespace",
            f"SELECT {_NAMESPACE_COLUMNS} FROM macro_namespaces WHERE name = ?",
            (name,),
        )
        return None if row is None else _namespace_from_row(row)

    def get_macro_functions(self, namespace: str) -> list[MacroFunction]:
        """Return the functions of a namespace, ordered by name."""
        rows = self._fetch_all(
            "get functions",
            f"SELECT {_FUNCTION_COLUMNS} FROM macro_functions "
            "WHERE namespace = ? ORDER BY name",
            (namespace,),
        )
        return [_function_from_row(row) for row in rows]

    def get_macro_function(self, namespace: str, name: str) -> MacroFunction | None:
        """Return one function of a namespace, or None."""
        row = self._fetch_one(
            "get function",
            f"SELECT {_FUNCTION_COLUMNS} FROM macro_functions "
            "WHERE namespace = ? AND name = ?",
            (namespace, name),
        )
        return None if row is None else _function_from_row(row)

    def macro_function_exists(self, namespace: str, name: str) -> bool:
        """Tell whether a namespace exports a function called ``name``."""
        row = self._fetch_one(
            "check function",
            "SELECT COUNT(*) FROM macro_functions WHERE namespace = ? AND name = ?",
            (namespace, name),
        )
        return bool(row and row[0] > 0)

    def search_macro_namespaces(self, prefix: str) -> list[MacroNamespace]:
        """Return the namespaces whose name starts with ``prefix``."""
        rows = self._fetch_all(
            "search namespaces",
            f"SELECT {_NAMESPACE_COLUMNS} FROM macro_namespaces "
            "WHERE name LIKE ? || '%' ORDER BY name",
            (prefix,),
        )
        return [_namespace_from_row(row) for row in rows]

    def search_macro_functions(self, namespace: str, prefix: str) -> list[MacroFunction]:
        """Return the functions of a namespace whose name starts with ``prefix``."""
        rows = self._fetch_all(
            "search functions",
            f"SELECT {_FUNCTION_COLUMNS} FROM macro_functions "
            "WHERE namespace = ? AND name LIKE ? || '%' ORDER BY name",
            (namespace, prefix),
        )
        return [_function_from_row(row) for row in rows]

    def delete_macro_namespace(self, name: str) -> None:
        """Delete a namespace; its functions go with it."""
        self._execute(
            "delete namespace", "DELETE FROM macro_namespaces WHERE name = ?", (name,)
        )