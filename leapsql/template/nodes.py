"""Syntax tree for SQL templates with ``{{ expr }}`` and ``{* stmt *}`` parts."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class Position:
    """A location in a template source file."""

    file: str = ""
    line: int = 0
    column: int = 0


@dataclass
class Node:
    """Base class of every template node."""

    pos: Position


@dataclass
class TextNode(Node):
    """Literal SQL text, passed through unchanged."""

    text: str = ""


@dataclass
class ExprNode(Node):
    """A ``{{ expr }}`` expression; ``expr`` is the source without delimiters."""

    expr: str = ""


class StmtKind(Enum):
    """Kind of a control-flow statement."""

    UNKNOWN = 0
    FOR = 1
    END_FOR = 2
    IF = 3
    ELIF = 4
    ELSE = 5
    END_IF = 6

    def __str__(self) -> str:
        return _STMT_NAMES.get(self, "unknown")


_STMT_NAMES = {
    StmtKind.UNKNOWN: "unknown",
    StmtKind.FOR: "for",
    StmtKind.END_FOR: "endfor",
    StmtKind.IF: "if",
    StmtKind.ELIF: "elif",
    StmtKind.ELSE: "else",
    StmtKind.END_IF: "endif",
}


@dataclass
class StmtNode(Node):
    """A raw ``{* stmt *}`` statement before it is grouped into blocks."""

    kind: StmtKind = StmtKind.UNKNOWN
    expr: str = ""
    var_name: str = ""


@dataclass
class Branch:
    """An ``elif`` branch of a conditional."""

    condition: str
    body: list[Node] = field(default_factory=list)
    pos: Position = field(default_factory=Position)


@dataclass
class ForBlock(Node):
    """A complete ``for`` loop with its body."""

    var_name: str = ""
    iter_expr: str = ""
    body: list[Node] = field(default_factory=list)


@dataclass
class IfBlock(Node):
    """A complete ``if``/``elif``/``else`` conditional."""

    condition: str = ""
    body: list[Node] = field(default_factory=list)
    else_ifs: list[Branch] = field(default_factory=list)
    else_body: list[Node] | None = None


@dataclass
class Template:
    """A parsed template."""

    nodes: list[Node] = field(default_factory=list)
    file: str = ""