"""Syntax-tree structures for SQL SELECT statements used in column-level lineage."""