"""Monetbench CLI."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from monetbench import __version__
from monetbench._constants import DEFAULT_CONFIG
from monetbench.config import (
    ConfigError,
    ConfigValidationError,
    ProvisionConfig,
    build_config,
    default_farm_path,
    generate_example_config_yaml,
)
from monetbench.errors import MonetbenchError

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="monetbench",
    help="Provision MonetDB databases loaded with TPC-H, JCC-H and JOB benchmark data",
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    epilog="[dim]Workflow: dbgen -> farm -> database -> schema -> generate -> load[/dim]",
)

console = Console()
err_console = Console(stderr=True)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


# =============================================================================
# Helper Functions
# =============================================================================


def resolve_config_path(config_file: Path | None) -> Path | None:
    """Resolve the optional config file, using ./monetbench.yaml if present."""
    if config_file is not None:
        return config_file
    default = Path(DEFAULT_CONFIG)
    if default.exists():
        return default
    return None


def configure_logging(verbose: bool, log_file: Path | None = None) -> None:
    """Route package logs to the console and, if given, to a log file.

    The log file receives everything at DEBUG level, including the
    messages printed by the ``print_*`` helpers. The console shows
    package debug output only when ``verbose`` is set.
    """
    pkg_logger = logging.getLogger("monetbench")
    for handler in list(pkg_logger.handlers):
        pkg_logger.removeHandler(handler)
        handler.close()
    pkg_logger.setLevel(logging.DEBUG)
    pkg_logger.propagate = False

    console_handler = RichHandler(
        console=err_console, show_time=False, show_path=False, markup=False
    )
    console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    # The print_* helpers already write these to the console
    console_handler.addFilter(lambda record: record.name != __name__)
    pkg_logger.addHandler(console_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, mode="w")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        file_handler.setLevel(logging.DEBUG)
        pkg_logger.addHandler(file_handler)


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]OK[/green] {escape(message)}")
    logger.info(message)


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    err_console.print(f"[red]ERROR[/red] {escape(message)}")
    logger.error(message)


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]WARN[/yellow] {escape(message)}")
    logger.warning(message)


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]...[/blue] {escape(message)}")
    logger.info(message)


def load_run_config(overrides: dict[str, Any], config_file: Path | None) -> ProvisionConfig:
    """Build the run config, exiting with a diagnostic if it is invalid."""
    try:
        return build_config(overrides, resolve_config_path(config_file))
    except ConfigValidationError as e:
        print_error("Invalid configuration:")
        for err in e.errors:
            loc = ".".join(str(x) for x in err["loc"]) or "config"
            err_console.print(f"  [red]*[/red] {escape(loc)}: {escape(err['msg'])}")
        raise typer.Exit(1)  # noqa: B904
    except ConfigError as e:
        print_error(f"Config error: {e}")
        raise typer.Exit(1)  # noqa: B904


# =============================================================================
# CLI Commands
# =============================================================================


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"Monetbench version {__version__}")


@app.command()
def init(
    output: Annotated[
        Path,
        typer.Option(
            "--output",
            "-o",
            help="Output file path for configuration",
        ),
    ] = Path(DEFAULT_CONFIG),
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            help="Overwrite existing file",
        ),
    ] = False,
) -> None:
    """Generate a starter configuration file.

    Every option is listed commented-out with its default; uncomment the
    ones to change. Command-line flags still override the file.
    """
    if output.exists() and not force:
        print_error(f"File already exists: {output}")
        print_info("Use --force to overwrite")
        raise typer.Exit(1)

    output.write_text(generate_example_config_yaml())
    print_success(f"Wrote {output}")


@app.command()
def setup(
    scale_factor: Annotated[
        int | None,
        typer.Option(
            "--scale-factor",
            "-s",
            "--sf",
            help="The amount of test data to generate, in GB",
        ),
    ] = None,
    benchmark: Annotated[
        str | None,
        typer.Option(
            "--benchmark",
            "-b",
            help="Name of the benchmark: TPC-H, JCC-H or JOB",
        ),
    ] = None,
    db_farm: Annotated[
        Path | None,
        typer.Option(
            "--db-farm",
            "-f",
            "--farm",
            help="Root directory of the DB farm (default: $DB_FARM or ~/db_farms/monetdb)",
        ),
    ] = None,
    db_name: Annotated[
        str | None,
        typer.Option(
            "--db-name",
            "-d",
            "--dbname",
            help="Name of the database holding the data (default: tpch-sf-<scale factor>)",
        ),
    ] = None,
    port: Annotated[
        int | None,
        typer.Option(
            "--port",
            "-P",
            help="Port for the daemon of a newly created DB farm",
        ),
    ] = None,
    platform: Annotated[
        str | None,
        typer.Option(
            "--platform",
            "-p",
            help=(
                "Platform for building dbgen (one of ATT DOS HP IBM ICL MVS SGI SUN U2200 "
                "VMS LINUX WIN32 MAC)"
            ),
        ),
    ] = None,
    dbgen_dir: Annotated[
        Path | None,
        typer.Option(
            "--dbgen-dir",
            "-g",
            help="Directory holding the dbgen sources or binary and dists.dss",
        ),
    ] = None,
    data_gen_dir: Annotated[
        Path | None,
        typer.Option(
            "--data-gen-dir",
            "-D",
            help="Directory in which to generate the table data",
        ),
    ] = None,
    sql_dir: Annotated[
        Path | None,
        typer.Option(
            "--sql-dir",
            help="Directory with <benchmark>_setup/ scripts replacing the bundled ones",
        ),
    ] = None,
    log_file: Annotated[
        Path | None,
        typer.Option(
            "--log-file",
            "-l",
            help="File to log output into",
        ),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help=f"YAML configuration file (default: ./{DEFAULT_CONFIG} if present)",
        ),
    ] = None,
    timeout: Annotated[
        int | None,
        typer.Option(
            "--timeout",
            help="Timeout in seconds for monetdbd/monetdb admin calls",
        ),
    ] = None,
    recreate: Annotated[
        bool,
        typer.Option(
            "--recreate",
            "-r",
            help="If the database exists, drop and recreate it (otherwise it must not exist)",
        ),
    ] = False,
    use_generated: Annotated[
        bool,
        typer.Option(
            "--use-generated",
            "-G",
            help="Load previously generated table files from the data generation directory",
        ),
    ] = False,
    keep_raw_tables: Annotated[
        bool,
        typer.Option(
            "--keep-raw-tables",
            "-k",
            "--keep-raw",
            help="Keep the raw generated table files after loading",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Be verbose",
        ),
    ] = False,
) -> None:
    """Generate benchmark data and load it into a MonetDB database.

    Builds dbgen if needed, generates the table files, creates the DB farm
    (if absent) and the database, applies the schema and loads the data.
    """
    from monetbench.provision import ProvisioningEngine, StepStatus

    overrides: dict[str, Any] = {
        "scale_factor": scale_factor,
        "benchmark": benchmark,
        "db_farm": db_farm,
        "db_name": db_name,
        "port": port,
        "platform": platform,
        "dbgen_dir": dbgen_dir,
        "data_gen_dir": data_gen_dir,
        "sql_dir": sql_dir,
        "log_file": log_file,
        "command_timeout": timeout,
        # Flags only override the config file when set
        "recreate": recreate or None,
        "use_generated": use_generated or None,
        "keep_raw_tables": keep_raw_tables or None,
        "verbose": verbose or None,
    }
    cfg = load_run_config(overrides, config_file)

    try:
        configure_logging(cfg.verbose, cfg.log_file)
    except OSError as e:
        print_error(f"Cannot open log file {cfg.log_file}: {e}")
        raise typer.Exit(1)  # noqa: B904

    console.print(
        Panel(
            f"Provisioning [bold]{escape(cfg.db_name)}[/bold] "
            f"({cfg.benchmark.value}, scale factor {cfg.scale_factor})",
            expand=False,
        )
    )
    console.print(f"DB farm: {escape(str(cfg.db_farm))}")
    console.print(f"Data directory: {escape(str(cfg.data_gen_dir))}")
    console.print()
    logger.info(
        "Provisioning %s (%s, scale factor %d)",
        cfg.db_name,
        cfg.benchmark.value,
        cfg.scale_factor,
    )
    logger.info("DB farm: %s", cfg.db_farm)
    logger.info("Data directory: %s", cfg.data_gen_dir)

    def on_progress(step: str, status: StepStatus, message: str) -> None:
        if status == StepStatus.IN_PROGRESS:
            print_info(message)
        elif status == StepStatus.SUCCESS:
            print_success(message)
        elif status == StepStatus.FAILED:
            print_error(message)
        elif status == StepStatus.SKIPPED:
            print_warning(message)

    engine = ProvisioningEngine(cfg)
    results = engine.provision_all(progress_callback=on_progress)

    console.print()
    elapsed = sum(r.elapsed_seconds for r in results)
    if not engine.succeeded:
        failed = next((r for r in results if r.status == StepStatus.FAILED), None)
        step = failed.step if failed else "unknown"
        print_error(f"Provisioning failed at step '{step}' after {elapsed:.1f}s")
        raise typer.Exit(1)

    print_success(
        f"Database {cfg.db_name} is ready on port {engine.port} ({elapsed:.1f}s)"
    )


@app.command()
def status(
    db_farm: Annotated[
        Path | None,
        typer.Option(
            "--db-farm",
            "-f",
            help="Root directory of the DB farm (default: $DB_FARM or ~/db_farms/monetdb)",
        ),
    ] = None,
    db_name: Annotated[
        str | None,
        typer.Option(
            "--db-name",
            "-d",
            help="Also report the state of this database",
        ),
    ] = None,
    timeout: Annotated[
        int,
        typer.Option(
            "--timeout",
            help="Timeout in seconds for monetdbd/monetdb calls",
        ),
    ] = 30,
) -> None:
    """Show the state of a DB farm and, optionally, one of its databases."""
    from monetbench.monetdb import FarmState, MonetDBAdmin, MonetDBDaemon

    farm_path = (db_farm or default_farm_path()).expanduser().resolve()

    try:
        farm = MonetDBDaemon(timeout=timeout).state(farm_path)
        table = Table(title="MonetDB", show_header=True)
        table.add_column("Resource")
        table.add_column("State")
        table.add_column("Port")
        table.add_row(f"farm {farm_path}", farm.state.value, str(farm.port or "-"))

        if db_name and farm.state == FarmState.RUNNING and farm.port:
            db_state = MonetDBAdmin(farm.port, farm=farm_path, timeout=timeout).state(db_name)
            table.add_row(f"database {db_name}", db_state.value, str(farm.port))
        elif db_name:
            table.add_row(f"database {db_name}", "unknown (farm not running)", "-")
    except MonetbenchError as e:
        print_error(str(e))
        raise typer.Exit(1)  # noqa: B904

    console.print(table)
