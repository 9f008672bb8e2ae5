"""Provisioning engine for monetbench."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from monetbench.benchmarks import MissingTableFileError, SqlScripts, get_recipe
from monetbench.config import ProvisionConfig
from monetbench.datagen import (
    DataGenerator,
    Dbgen,
    DbgenBuilder,
    check_generation_target,
    remove_data_dir,
    verify_pregenerated,
)
from monetbench.diskspace import check_free_space
from monetbench.errors import MonetbenchError
from monetbench.monetdb import (
    DatabaseState,
    FarmInfo,
    MClient,
    MonetDBAdmin,
    MonetDBDaemon,
    ensure_credentials_file,
)
from monetbench.shell import require_tool

logger = logging.getLogger(__name__)

MONETDB_TOOLS = ("monetdbd", "monetdb", "mclient")


class StepStatus(Enum):
    """Status of a provisioning step."""

    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class StepResult:
    """Result of a provisioning step."""

    step: str
    status: StepStatus
    message: str
    elapsed_seconds: float = 0.0
    details: dict[str, Any] = field(default_factory=dict)


ProgressCallback = Callable[[str, StepStatus, str], None]


class ProvisioningEngine:
    """Brings a MonetDB benchmark database into its provisioned state.

    Step order:
    1. Preflight (pre-generated data present, MonetDB tools on the PATH)
    2. dbgen resolved, built if needed, and validated
    3. Disk space for the data generation directory
    4. Client credentials file
    5. DB farm exists and is running
    6. Database absent (or destroyed on recreate), then created and released
    7. Schema scripts applied
    8. Table data generated (or pre-generated data verified)
    9. Table data loaded
    10. Raw table files removed (unless kept)

    The first failing step stops the run; nothing is rolled back.
    """

    def __init__(self, config: ProvisionConfig, daemon: MonetDBDaemon | None = None):
        """Initialize provisioning engine.

        Args:
            config: Validated run configuration
            daemon: monetdbd adapter (created if not provided)
        """
        self.config = config
        self.recipe = get_recipe(config.benchmark)
        self.scripts = SqlScripts(self.recipe, config.sql_dir)
        self.daemon = daemon or MonetDBDaemon(timeout=config.command_timeout)
        self.results: list[StepResult] = []

        # Filled in as the workflow progresses
        self.dbgen: Dbgen | None = None
        self.farm: FarmInfo | None = None
        self.port = config.port

    @property
    def admin(self) -> MonetDBAdmin:
        return MonetDBAdmin(
            self.port, farm=self.config.db_farm, timeout=self.config.command_timeout
        )

    @property
    def client(self) -> MClient:
        return MClient(
            self.config.db_name,
            self.port,
            credentials_file=self.config.get_credentials_file(),
        )

    def steps(self) -> list[tuple[str, str, Callable[[], StepResult]]]:
        return [
            ("preflight", "Checking prerequisites", self._preflight),
            ("dbgen", "Resolving the dbgen data generator", self._resolve_dbgen),
            ("disk-space", "Checking space for the generated data", self._check_generation_space),
            ("credentials", "Checking client credentials", self._ensure_credentials),
            ("farm", "Ensuring the DB farm is up", self._ensure_farm),
            ("database", "Creating the database", self._create_database),
            ("schema", "Creating the schema", self._apply_schema),
            ("generate", "Generating table data", self._generate_data),
            ("load", "Loading table data", self._load_data),
            ("cleanup", "Removing raw table files", self._cleanup),
        ]

    def provision_all(self, progress_callback: ProgressCallback | None = None) -> list[StepResult]:
        """Run all steps in order, stopping at the first failure.

        Args:
            progress_callback: Optional callback for progress updates
                               (step, status, message)

        Returns:
            List of step results, ending with the failed step if any
        """
        for step, description, step_fn in self.steps():
            if progress_callback:
                progress_callback(step, StepStatus.IN_PROGRESS, description)

            start = time.time()
            try:
                result = step_fn()
            except (MonetbenchError, OSError) as e:
                logger.debug("Step %s failed", step, exc_info=True)
                result = StepResult(step=step, status=StepStatus.FAILED, message=str(e))
            result.elapsed_seconds = time.time() - start
            self.results.append(result)

            if progress_callback:
                progress_callback(step, result.status, result.message)

            if result.status == StepStatus.FAILED:
                break

        return self.results

    @property
    def succeeded(self) -> bool:
        """Whether every step ran and none failed."""
        if len(self.results) != len(self.steps()):
            return False
        return not any(r.status == StepStatus.FAILED for r in self.results)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _preflight(self) -> StepResult:
        cfg = self.config
        if cfg.use_generated:
            verify_pregenerated(cfg.data_gen_dir)
        for tool in MONETDB_TOOLS:
            require_tool(tool, f"MonetDB binary {tool}")
        return StepResult(
            step="preflight",
            status=StepStatus.SUCCESS,
            message=f"{cfg.benchmark.value} at scale factor {cfg.scale_factor}",
        )

    def _resolve_dbgen(self) -> StepResult:
        cfg = self.config
        if cfg.use_generated:
            return StepResult(
                step="dbgen",
                status=StepStatus.SKIPPED,
                message="Using previously generated data, dbgen not needed",
            )

        builder = DbgenBuilder(cfg.dbgen_dir, cfg.platform, timeout=cfg.command_timeout)
        self.dbgen = builder.resolve()
        return StepResult(
            step="dbgen",
            status=StepStatus.SUCCESS,
            message=f"Using dbgen at {self.dbgen.binary}",
            details={"binary": str(self.dbgen.binary), "dists": str(self.dbgen.dists_file)},
        )

    def _check_generation_space(self) -> StepResult:
        cfg = self.config
        if cfg.use_generated:
            return StepResult(
                step="disk-space",
                status=StepStatus.SKIPPED,
                message="No data to generate",
            )

        check_generation_target(cfg.data_gen_dir)
        available = check_free_space(
            cfg.data_gen_dir, cfg.scale_factor, purpose="the generated table files"
        )
        return StepResult(
            step="disk-space",
            status=StepStatus.SUCCESS,
            message=f"{available} GiB available for {cfg.data_gen_dir}",
            details={"available_gib": available},
        )

    def _ensure_credentials(self) -> StepResult:
        path = self.config.get_credentials_file()
        if ensure_credentials_file(path):
            return StepResult(
                step="credentials",
                status=StepStatus.SUCCESS,
                message=f"Wrote default credentials to {path}",
            )
        return StepResult(
            step="credentials",
            status=StepStatus.SKIPPED,
            message=f"Using existing credentials in {path}",
        )

    def _ensure_farm(self) -> StepResult:
        cfg = self.config
        self.farm, created = self.daemon.ensure(cfg.db_farm, cfg.port)
        self.port = self.farm.port or cfg.port
        if not created and self.port != cfg.port:
            logger.info("Existing DB farm %s uses port %d", cfg.db_farm, self.port)

        verb = "Created" if created else "Using"
        return StepResult(
            step="farm",
            status=StepStatus.SUCCESS,
            message=f"{verb} DB farm at {cfg.db_farm} (port {self.port})",
            details={"created": created, "port": self.port},
        )

    def _create_database(self) -> StepResult:
        cfg = self.config
        admin = self.admin
        prior = admin.ensure_fresh(cfg.db_name, recreate=cfg.recreate)
        check_free_space(cfg.db_farm, cfg.scale_factor, purpose="the loaded database")
        admin.create_released(cfg.db_name)

        verb = "Created" if prior == DatabaseState.ABSENT else "Recreated"
        return StepResult(
            step="database",
            status=StepStatus.SUCCESS,
            message=f"{verb} database {cfg.db_name}",
            details={"prior_state": prior.value},
        )

    def _apply_schema(self) -> StepResult:
        client = self.client
        applied = []
        for name, sql in self.scripts.schema():
            logger.debug("%s:\n%s", name, sql.rstrip())
            client.execute(sql, description=name)
            applied.append(name)
        return StepResult(
            step="schema",
            status=StepStatus.SUCCESS,
            message=f"Applied {', '.join(applied)}",
            details={"scripts": applied},
        )

    def _generate_data(self) -> StepResult:
        cfg = self.config
        if cfg.use_generated:
            verify_pregenerated(cfg.data_gen_dir)
            return StepResult(
                step="generate",
                status=StepStatus.SKIPPED,
                message=f"Using previously generated data in {cfg.data_gen_dir}",
            )

        if self.dbgen is None:
            raise MonetbenchError("dbgen was not resolved before data generation")
        generator = DataGenerator(
            self.dbgen, cfg.data_gen_dir, cfg.scale_factor, verbose=cfg.verbose
        )
        generator.generate()
        return StepResult(
            step="generate",
            status=StepStatus.SUCCESS,
            message=f"Generated scale factor {cfg.scale_factor} data in {cfg.data_gen_dir}",
        )

    def _load_data(self) -> StepResult:
        cfg = self.config
        missing = self.recipe.missing_table_files(cfg.data_gen_dir)
        if missing:
            raise MissingTableFileError(
                f"Could not find the generated data file {missing[0]} - "
                "perhaps its generation failed?",
                missing=missing,
            )

        script = self.scripts.load_script(cfg.data_gen_dir)
        logger.debug("%s:\n%s", self.recipe.load_template, script.rstrip())
        output_format = "csv" if cfg.verbose else "trash"
        self.client.execute(script, output_format=output_format, description="the load script")
        return StepResult(
            step="load",
            status=StepStatus.SUCCESS,
            message=f"Loaded {len(self.recipe.tables)} tables into {cfg.db_name}",
            details={"tables": list(self.recipe.tables)},
        )

    def _cleanup(self) -> StepResult:
        cfg = self.config
        if cfg.keep_raw_tables:
            return StepResult(
                step="cleanup",
                status=StepStatus.SKIPPED,
                message=f"Keeping raw table files in {cfg.data_gen_dir}",
            )
        remove_data_dir(cfg.data_gen_dir)
        return StepResult(
            step="cleanup",
            status=StepStatus.SUCCESS,
            message=f"Removed {cfg.data_gen_dir}",
        )
