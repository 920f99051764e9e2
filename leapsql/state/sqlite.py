"""The complete SQLite state store."""

from __future__ import annotations

from leapsql.state.column_lineage import ColumnLineageStore
from leapsql.state.macro_store import MacroStore


class SQLiteStore(ColumnLineageStore, MacroStore):
    """State store holding runs, models, dependencies, environments, lineage and macros.

    Open it with :meth:`open` (``":memory:"`` for an in-memory database),
    create the tables with :meth:`init_schema` and close it with :meth:`close`
    or by using it as a context manager.
    """