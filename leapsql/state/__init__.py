"""SQLite-backed state for runs, models, dependencies, environments, lineage and macros."""