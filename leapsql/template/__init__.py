"""Syntax-tree nodes for SQL templates with ``{{ expr }}`` and ``{* stmt *}`` parts."""