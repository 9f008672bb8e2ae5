"""Benchmark recipes: schema scripts, load scripts and expected table files.

Each benchmark keeps its SQL under ``<sql dir>/<subdir>/``. Schema scripts
are sent to mclient verbatim; the load script is a Jinja2 template
rendered with the absolute data directory, since ``COPY INTO`` reads the
table files on the server side.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    TemplateError,
    TemplateNotFound,
)

from monetbench._resources import get_sql_dir
from monetbench.config.schema import Benchmark
from monetbench.errors import MonetbenchError

TPCH_TABLES = (
    "region",
    "nation",
    "supplier",
    "customer",
    "part",
    "partsupp",
    "orders",
    "lineitem",
)

IMDB_TABLES = (
    "aka_name",
    "aka_title",
    "cast_info",
    "char_name",
    "comp_cast_type",
    "company_name",
    "company_type",
    "complete_cast",
    "info_type",
    "keyword",
    "kind_type",
    "link_type",
    "movie_companies",
    "movie_info",
    "movie_info_idx",
    "movie_keyword",
    "movie_link",
    "name",
    "person_info",
    "role_type",
    "title",
)


class SqlScriptError(MonetbenchError):
    """Raised when a benchmark SQL script is missing or cannot be rendered."""

    pass


class MissingTableFileError(MonetbenchError):
    """Raised when generated table files needed for loading are absent."""

    def __init__(self, message: str, missing: list[Path]):
        super().__init__(message)
        self.missing = missing


@dataclass(frozen=True)
class BenchmarkRecipe:
    """Fixed schema/generation/load recipe for one benchmark."""

    benchmark: Benchmark
    sql_subdir: str
    schema_scripts: tuple[str, ...]
    load_template: str
    tables: tuple[str, ...]
    table_suffix: str

    def table_files(self, data_dir: Path) -> list[Path]:
        return [data_dir / f"{table}{self.table_suffix}" for table in self.tables]

    def missing_table_files(self, data_dir: Path) -> list[Path]:
        """Expected table files that are absent or unreadable."""
        return [
            p for p in self.table_files(data_dir) if not (p.is_file() and os.access(p, os.R_OK))
        ]


RECIPES: dict[Benchmark, BenchmarkRecipe] = {
    Benchmark.TPCH: BenchmarkRecipe(
        benchmark=Benchmark.TPCH,
        sql_subdir="tpch_setup",
        schema_scripts=("create_without_constraints.sql", "add_key_constraints.sql"),
        load_template="load_data.sql.j2",
        tables=TPCH_TABLES,
        table_suffix=".tbl",
    ),
    Benchmark.JCCH: BenchmarkRecipe(
        benchmark=Benchmark.JCCH,
        sql_subdir="jcch_setup",
        schema_scripts=("create_without_constraints.sql", "add_key_constraints.sql"),
        load_template="load_data.sql.j2",
        tables=TPCH_TABLES,
        table_suffix=".tbl",
    ),
    Benchmark.JOB: BenchmarkRecipe(
        benchmark=Benchmark.JOB,
        sql_subdir="imdb_setup",
        schema_scripts=("create_without_constraints.sql", "add_index.sql"),
        load_template="load_data.sql.j2",
        tables=IMDB_TABLES,
        table_suffix=".csv",
    ),
}


def get_recipe(benchmark: Benchmark | str) -> BenchmarkRecipe:
    return RECIPES[Benchmark(benchmark)]


class SqlScripts:
    """Reads and renders the SQL scripts of one benchmark recipe."""

    def __init__(self, recipe: BenchmarkRecipe, sql_dir: Path | None = None):
        self.recipe = recipe
        self.directory = (sql_dir or get_sql_dir()) / recipe.sql_subdir
        self.env = Environment(
            loader=FileSystemLoader(str(self.directory)),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            autoescape=False,
        )

    def read(self, name: str) -> str:
        path = self.directory / name
        try:
            return path.read_text()
        except OSError as e:
            raise SqlScriptError(f"Cannot read SQL script {path}: {e}")  # noqa: B904

    def schema(self) -> list[tuple[str, str]]:
        """(name, text) of each schema script, in application order."""
        return [(name, self.read(name)) for name in self.recipe.schema_scripts]

    def load_script(self, data_dir: Path) -> str:
        """Render the bulk-load script for table files in ``data_dir``."""
        path = self.directory / self.recipe.load_template
        try:
            template = self.env.get_template(self.recipe.load_template)
            return template.render(data_dir=str(data_dir), tables=self.recipe.tables)
        except TemplateNotFound:
            raise SqlScriptError(f"Cannot find load script {path}")  # noqa: B904
        except TemplateError as e:
            raise SqlScriptError(f"Cannot render load script {path}: {e}")  # noqa: B904
