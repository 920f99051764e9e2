# leapsql

Building blocks for a SQL transformation tool. It uses only the standard
library.

- **Template syntax trees** in `leapsql.template.nodes`. They describe SQL
  templates where `{{ expr }}` inserts an expression and `{* ... *}` holds
  control flow (`for`/`endfor`, `if`/`elif`/`else`/`endif`).
- **SQL syntax trees** in `leapsql.lineage.sql_ast`. They describe `SELECT`
  statements for column-level lineage analysis.
- **A state store** backed by SQLite, in `leapsql.state`. It records pipeline
  runs, models, model executions, dependencies, environments, column lineage
  and macro namespaces.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Template nodes

`leapsql.template.nodes` defines these dataclasses:

- `Position` gives the file, line and column of a node.
- `TextNode` holds literal SQL text.
- `ExprNode` holds the source of an expression, without its delimiters.
- `StmtNode` holds a raw statement. Its `kind` is a `StmtKind`, for example
  `StmtKind.FOR` or `StmtKind.END_IF`. `str()` of a `StmtKind` gives the
  keyword, such as `"endfor"`.
- `ForBlock` has `var_name`, `iter_expr` and `body`.
- `IfBlock` has `condition`, `body`, `else_ifs` and `else_body`. Each entry
  of `else_ifs` is a `Branch`.
- `Template` holds the list of nodes and the file name.

```python
from leapsql.template.nodes import ExprNode, ForBlock, Position, Template, TextNode

pos = Position("model.sql", 1, 1)
template = Template(
    nodes=[
        TextNode(pos, "SELECT "),
        ForBlock(pos, var_name="c", iter_expr="cols", body=[ExprNode(pos, "c")]),
    ],
    file="model.sql",
)
```

## SQL syntax trees

`leapsql.lineage.sql_ast` models `SELECT` statements as dataclasses. The main
pieces are:

- Statement structure: `SelectStmt`, `WithClause`, `CTE`, `SelectBody` (set
  operations through `SetOpType`) and `SelectCore`.
- Select list and sources: `SelectItem`, `FromClause`, `Join` (with
  `JoinType`), `TableName`, `DerivedTable` and `LateralTable`.
- Expressions: `ColumnRef`, `Literal`, `BinaryExpr`, `UnaryExpr`, `FuncCall`,
  `CaseExpr`, `CastExpr`, `InExpr`, `BetweenExpr`, `IsNullExpr`, `LikeExpr`,
  `ParenExpr`, `StarExpr`, `SubqueryExpr` and `ExistsExpr`.
- Windows: `WindowSpec`, `FrameSpec` and `FrameBound`.

Expressions derive from `Expr`, and table references derive from `TableRef`.

## State store

```python
from leapsql.state.records import Model, RunStatus
from leapsql.state.sqlite import SQLiteStore

with SQLiteStore() as store:
    store.open(":memory:")
    store.init_schema()

    run = store.create_run("dev")
    store.register_model(Model(path="staging.stg_users", name="stg_users", content_hash="abc"))
    store.complete_run(run.id, RunStatus.COMPLETED)
    latest = store.get_latest_run("dev")
```

`SQLiteStore` combines several stores:

- `StoreBase` (`leapsql.state.base`) opens and closes the database and creates
  the schema. It handles runs (`create_run`, `get_run`, `complete_run`,
  `get_latest_run`), dependencies (`set_dependencies`, `get_dependencies`,
  `get_dependents`) and environments (`create_environment`,
  `get_environment`, `update_environment_ref`).
- `ModelStore` (`leapsql.state.model_store`) registers models.
  `register_model` updates the model already stored at the same path and
  sets `materialized` to `"table"` when it is empty. It also records model
  executions, and `update_model_run` computes `execution_ms`.
- `ColumnLineageStore` (`leapsql.state.column_lineage`) saves the columns of
  a model and where they come from. It traces a column backward to its
  sources and forward to its consumers, at most 20 levels deep.
- `MacroStore` (`leapsql.state.macro_store`) saves macro namespaces and their
  functions, and searches both by name prefix. Deleting a namespace also
  deletes its functions.

The records these stores take and return are dataclasses in
`leapsql.state.records`, such as `Run`, `Model`, `ModelRun`, `Environment`,
`ColumnInfo`, `TraceResult`, `MacroNamespace` and `MacroFunction`.

Lookups that find nothing return `None`. Two exceptions to this are
`get_run` and `get_model_by_id`, which raise `StateError`. Operations that
update a missing record also raise `StateError`, and so does any operation
on a store that has not been opened.

## What the package does not do

- It does not tokenize, parse or render template text. It only defines the
  nodes a parsed template is made of.
- It does not parse SQL. It only defines the syntax-tree classes.
- It has no command-line program.