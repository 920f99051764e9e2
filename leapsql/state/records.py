"""Records kept by the state store: runs, models, lineage and macros."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class RunStatus(str, Enum):
    """Status of a pipeline run."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    def __str__(self) -> str:
        return self.value


class ModelRunStatus(str, Enum):
    """Status of a single model execution."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"

    def __str__(self) -> str:
        return self.value


@dataclass
class Run:
    """A pipeline execution session."""

    id: str
    environment: str
    status: RunStatus
    started_at: datetime
    completed_at: datetime | None = None
    error: str = ""


@dataclass
class AcceptedValuesConfig:
    """Configuration of an accepted-values test."""

    column: str
    values: list[str] = field(default_factory=list)


@dataclass
class ModelTestConfig:
    """A test configured for a model."""

    unique: list[str] = field(default_factory=list)
    not_null: list[str] = field(default_factory=list)
    accepted_values: AcceptedValuesConfig | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready mapping, leaving out empty parts."""
        data: dict[str, Any] = {}
        if self.unique:
            data["unique"] = list(self.unique)
        if self.not_null:
            data["not_null"] = list(self.not_null)
        if self.accepted_values is not None:
            data["accepted_values"] = {
                "column": self.accepted_values.column,
                "values": list(self.accepted_values.values),
            }
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ModelTestConfig:
        """Build a configuration from a mapping made by :meth:`to_dict`."""
        accepted = data.get("accepted_values")
        return cls(
            unique=list(data.get("unique") or []),
            not_null=list(data.get("not_null") or []),
            accepted_values=(
                AcceptedValuesConfig(
                    column=accepted.get("column", ""),
                    values=list(accepted.get("values") or []),
                )
                if accepted is not None
                else None
            ),
        )


@dataclass
class Model:
    """A model registered in the state store."""

    id: str = ""
    path: str = ""
    name: str = ""
    materialized: str = ""
    unique_key: str = ""
    content_hash: str = ""
    owner: str = ""
    schema: str = ""
    tags: list[str] = field(default_factory=list)
    tests: list[ModelTestConfig] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class ModelRun:
    """One execution of a model within a run."""

    id: str = ""
    run_id: str = ""
    model_id: str = ""
    status: ModelRunStatus = ModelRunStatus.PENDING
    rows_affected: int = 0
    started_at: datetime | None = None
    completed_at: datetime | None = None
    error: str = ""
    execution_ms: int = 0


@dataclass(frozen=True)
class Dependency:
    """An edge in the model dependency graph."""

    model_id: str
    parent_id: str


@dataclass
class Environment:
    """A named environment pointer."""

    name: str
    commit_ref: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class SourceRef:
    """A source column a lineage entry points at."""

    table: str = ""
    column: str = ""


@dataclass
class ColumnInfo:
    """Lineage information about one output column of a model."""

    name: str
    index: int = 0
    transform_type: str = ""
    function: str = ""
    sources: list[SourceRef] = field(default_factory=list)


@dataclass
class TraceResult:
    """One node of a column lineage trace."""

    model_path: str
    column_name: str
    depth: int
    is_external: bool = False


@dataclass
class MacroNamespace:
    """A macro namespace loaded from a macro file."""

    name: str
    file_path: str
    package: str = ""
    updated_at: str = ""


@dataclass
class MacroFunction:
    """A function exported by a macro namespace."""

    namespace: str
    name: str
    args: list[str] = field(default_factory=list)
    docstring: str = ""
    line: int = 0