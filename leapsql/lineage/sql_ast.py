"""Syntax tree for SQL SELECT statements used by lineage analysis."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Statement:
    """Base class of SQL statements."""


class Expr:
    """Base class of SQL expressions."""


class TableRef:
    """Base class of table references in a FROM clause."""


class SetOpType(str, Enum):
    """Kind of set operation joining two SELECT bodies."""

    NONE = ""
    UNION = "UNION"
    UNION_ALL = "UNION ALL"
    INTERSECT = "INTERSECT"
    EXCEPT = "EXCEPT"


class JoinType(str, Enum):
    """Kind of JOIN."""

    INNER = "INNER"
    LEFT = "LEFT"
    RIGHT = "RIGHT"
    FULL = "FULL"
    CROSS = "CROSS"
    COMMA = ","


class LiteralType(Enum):
    """Kind of literal value."""

    NUMBER = 0
    STRING = 1
    BOOL = 2
    NULL = 3


class FrameType(str, Enum):
    """Kind of window frame."""

    ROWS = "ROWS"
    RANGE = "RANGE"
    GROUPS = "GROUPS"


class FrameBoundType(str, Enum):
    """Kind of window frame bound."""

    UNBOUNDED_PRECEDING = "UNBOUNDED PRECEDING"
    UNBOUNDED_FOLLOWING = "UNBOUNDED FOLLOWING"
    CURRENT_ROW = "CURRENT ROW"
    EXPR_PRECEDING = "EXPR PRECEDING"
    EXPR_FOLLOWING = "EXPR FOLLOWING"


@dataclass
class SelectStmt(Statement):
    """A complete SELECT statement with an optional WITH clause."""

    with_clause: WithClause | None = None
    body: SelectBody | None = None


@dataclass
class CTE:
    """A common table expression."""

    name: str
    select: SelectStmt | None = None


@dataclass
class WithClause:
    """A WITH clause and its CTEs."""

    recursive: bool = False
    ctes: list[CTE] = field(default_factory=list)


@dataclass
class OrderByItem:
    """An ORDER BY item; ``nulls_first`` is None for the default ordering."""

    expr: Expr | None = None
    desc: bool = False
    nulls_first: bool | None = None


@dataclass
class SelectItem:
    """An item of the SELECT list."""

    star: bool = False
    table_star: str = ""
    expr: Expr | None = None
    alias: str = ""


@dataclass
class Join:
    """A JOIN clause."""

    type: JoinType = JoinType.INNER
    right: TableRef | None = None
    condition: Expr | None = None


@dataclass
class FromClause:
    """A FROM clause with its joins."""

    source: TableRef | None = None
    joins: list[Join] = field(default_factory=list)


@dataclass
class SelectCore:
    """The core clauses of a SELECT."""

    distinct: bool = False
    columns: list[SelectItem] = field(default_factory=list)
    from_clause: FromClause | None = None
    where: Expr | None = None
    group_by: list[Expr] = field(default_factory=list)
    having: Expr | None = None
    qualify: Expr | None = None
    order_by: list[OrderByItem] = field(default_factory=list)
    limit: Expr | None = None
    offset: Expr | None = None


@dataclass
class SelectBody:
    """A SELECT body, possibly chained with set operations."""

    left: SelectCore | None = None
    op: SetOpType = SetOpType.NONE
    all: bool = False
    right: SelectBody | None = None


@dataclass
class TableName(TableRef):
    """A named table reference."""

    catalog: str = ""
    schema: str = ""
    name: str = ""
    alias: str = ""


@dataclass
class DerivedTable(TableRef):
    """A subquery in a FROM clause."""

    select: SelectStmt | None = None
    alias: str = ""


@dataclass
class LateralTable(TableRef):
    """A LATERAL subquery."""

    select: SelectStmt | None = None
    alias: str = ""


@dataclass
class ColumnRef(Expr):
    """A column reference, optionally qualified by a table or alias."""

    table: str = ""
    column: str = ""


@dataclass
class Literal(Expr):
    """A literal value."""

    type: LiteralType = LiteralType.NUMBER
    value: str = ""


@dataclass
class BinaryExpr(Expr):
    """A binary expression."""

    left: Expr | None = None
    op: str = ""
    right: Expr | None = None


@dataclass
class UnaryExpr(Expr):
    """A unary expression such as ``-x`` or ``NOT x``."""

    op: str = ""
    expr: Expr | None = None


@dataclass
class FrameBound:
    """A window frame bound; ``offset`` is set for N PRECEDING/FOLLOWING."""

    type: FrameBoundType = FrameBoundType.CURRENT_ROW
    offset: Expr | None = None


@dataclass
class FrameSpec:
    """A window frame specification."""

    type: FrameType = FrameType.ROWS
    start: FrameBound | None = None
    end: FrameBound | None = None


@dataclass
class WindowSpec:
    """An OVER clause."""

    name: str = ""
    partition_by: list[Expr] = field(default_factory=list)
    order_by: list[OrderByItem] = field(default_factory=list)
    frame: FrameSpec | None = None


@dataclass
class FuncCall(Expr):
    """A function call, with optional window and filter."""

    name: str = ""
    distinct: bool = False
    args: list[Expr] = field(default_factory=list)
    star: bool = False
    window: WindowSpec | None = None
    filter: Expr | None = None


@dataclass
class WhenClause:
    """A WHEN branch of a CASE expression."""

    condition: Expr | None = None
    result: Expr | None = None


@dataclass
class CaseExpr(Expr):
    """A CASE expression."""

    operand: Expr | None = None
    whens: list[WhenClause] = field(default_factory=list)
    else_: Expr | None = None


@dataclass
class CastExpr(Expr):
    """A CAST expression."""

    expr: Expr | None = None
    type_name: str = ""


@dataclass
class InExpr(Expr):
    """An IN expression over a value list or a subquery."""

    expr: Expr | None = None
    not_: bool = False
    values: list[Expr] = field(default_factory=list)
    query: SelectStmt | None = None


@dataclass
class BetweenExpr(Expr):
    """A BETWEEN expression."""

    expr: Expr | None = None
    not_: bool = False
    low: Expr | None = None
    high: Expr | None = None


@dataclass
class IsNullExpr(Expr):
    """An IS [NOT] NULL expression."""

    expr: Expr | None = None
    not_: bool = False


@dataclass
class LikeExpr(Expr):
    """A LIKE or ILIKE expression."""

    expr: Expr | None = None
    not_: bool = False
    pattern: Expr | None = None
    ilike: bool = False


@dataclass
class ParenExpr(Expr):
    """A parenthesized expression."""

    expr: Expr | None = None


@dataclass
class StarExpr(Expr):
    """A ``*`` or ``t.*`` expression."""

    table: str = ""


@dataclass
class SubqueryExpr(Expr):
    """A subquery used as an expression."""

    select: SelectStmt | None = None


@dataclass
class ExistsExpr(Expr):
    """An EXISTS expression."""

    not_: bool = False
    select: SelectStmt | None = None