[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "leapsql"
version = "0.1.0"
description = "SQL template and SELECT syntax trees, plus a SQLite-backed state store for data pipelines"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "sql",
    "template",
    "lineage",
    "data-pipeline",
    "sqlite",
    "state",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["leapsql"]

[tool.hatch.build.targets.sdist]
include = ["leapsql", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"
