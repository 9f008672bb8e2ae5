"""Shared fixtures for the monetbench test suite."""

from __future__ import annotations

import subprocess
from collections import namedtuple
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from monetbench.config import ProvisionConfig
from monetbench.diskspace import GIB

DiskUsage = namedtuple("DiskUsage", "total used free")

DBGEN_BANNER = (
    "TPC-H Population Generator (Version 2.17.3)\n"
    "Copyright Transaction Processing Performance Council 1994 - 2010\n"
)

TPCH_TABLES = ("region", "nation", "supplier", "customer", "part", "partsupp", "orders", "lineitem")


def make_config(tmp_path: Path, **overrides) -> ProvisionConfig:
    """Create a ProvisionConfig whose paths all live under ``tmp_path``.

    This is the canonical config factory for tests. Prefer this over
    hand-building configs so environment-derived defaults never leak in.
    """
    base: dict = {
        "db_farm": tmp_path / "farm",
        "dbgen_dir": tmp_path / "dbgen",
        "data_gen_dir": tmp_path / "data",
        "log_file": tmp_path / "monetbench.log",
        "credentials_file": tmp_path / ".monetdb",
        "platform": "LINUX",
    }
    base.update(overrides)
    return ProvisionConfig(**base)


def make_dbgen_dir(path: Path) -> Path:
    """A dbgen directory with a (fake) executable binary and dists.dss."""
    path.mkdir(parents=True, exist_ok=True)
    (path / "dists.dss").write_text("# distributions\n")
    binary = path / "dbgen"
    binary.write_text("#!/bin/sh\n")
    binary.chmod(0o755)
    return path


class FakeMonetDB:
    """Stands in for monetdbd, monetdb, mclient, dbgen and the build tools.

    Installed as the side effect of a patched ``subprocess.run``; keeps the
    farm and database state the real daemons would hold and records every
    call.
    """

    def __init__(self):
        self.farms: dict[str, dict] = {}
        self.databases: dict[str, str] = {}
        self.calls: list[list[str]] = []
        self.sql: list[str] = []
        self.mclient_env: list[str | None] = []
        self.failures: dict[tuple[str, str], tuple[int, str]] = {}
        self.sql_stderr = ""
        self.start_works = True
        self.generated_tables: tuple[str, ...] = TPCH_TABLES

    # -- configuration helpers -------------------------------------------------

    def add_farm(self, path: Path, port: int = 50000, running: bool = True) -> None:
        self.farms[str(path)] = {"port": port, "running": running}

    def fail(self, tool: str, subcommand: str, returncode: int = 1, stderr: str = "boom") -> None:
        """Make ``tool subcommand ...`` exit with ``returncode``."""
        self.failures[(tool, subcommand)] = (returncode, stderr)

    def commands(self, tool: str) -> list[list[str]]:
        return [c for c in self.calls if Path(c[0]).name == tool]

    def subcommands(self, tool: str) -> list[str]:
        """First argument after the program (and ``-p PORT`` for monetdb)."""
        result = []
        for c in self.commands(tool):
            args = c[3:] if tool == "monetdb" else c[1:]
            result.append(args[0] if args else "")
        return result

    # -- dispatch ----------------------------------------------------------------

    def __call__(self, args, **kwargs):
        argv = [str(a) for a in args]
        self.calls.append(argv)
        tool = Path(argv[0]).name
        handler = getattr(self, f"_run_{tool}", None)
        if handler is None:
            subcommand = argv[1] if len(argv) > 1 else ""
            return self._failure(tool, subcommand, argv) or self._result(argv, 0)
        return handler(argv, **kwargs)

    @staticmethod
    def _result(argv, returncode, stdout="", stderr=""):
        return subprocess.CompletedProcess(argv, returncode, stdout=stdout, stderr=stderr)

    def _failure(self, tool: str, subcommand: str, argv):
        if (tool, subcommand) in self.failures:
            rc, err = self.failures[(tool, subcommand)]
            return self._result(argv, rc, stderr=err)
        return None

    def _run_monetdbd(self, argv, **kwargs):
        sub, rest = argv[1], argv[2:]
        failed = self._failure("monetdbd", sub, argv)
        if failed:
            return failed

        path = rest[-1]
        farm = self.farms.get(path)
        if sub == "get":
            name = rest[0]
            if farm is None:
                return self._result(argv, 1, stderr=f"monetdbd: {path} is not a dbfarm")
            if farm["running"]:
                status = "monetdbd[4242] 11.49.1 (Dec2023-SP1) is serving this dbfarm"
            else:
                status = "no monetdbd is serving this dbfarm"
            props = {"hostname": "bench01", "dbfarm": path, "status": status, "port": farm["port"]}
            header = "   property            value\n"
            if name == "all":
                return self._result(
                    argv, 0, header + "".join(f"{k:<20}{v}\n" for k, v in props.items())
                )
            return self._result(argv, 0, header + f"{name:<20}{props[name]}\n")
        if sub == "create":
            self.farms[path] = {"port": 50000, "running": False}
        elif sub == "set":
            key, _, value = rest[0].partition("=")
            farm[key] = int(value)
        elif sub == "start":
            farm["running"] = self.start_works
        return self._result(argv, 0)

    def _run_monetdb(self, argv, **kwargs):
        sub, rest = argv[3], argv[4:]
        failed = self._failure("monetdb", sub, argv)
        if failed:
            return failed

        name = rest[-1]
        if sub == "status":
            if name not in self.databases:
                return self._result(argv, 1, stderr=f"status: no such database: {name}")
            return self._result(argv, 0, f"{name}  {self.databases[name]}  2m  100%  3m\n")
        if sub == "create":
            self.databases[name] = "S"
        elif sub == "destroy":
            del self.databases[name]
        elif sub == "stop":
            self.databases[name] = "S"
        return self._result(argv, 0)

    def _run_mclient(self, argv, **kwargs):
        self.sql.append(kwargs.get("input") or "")
        env = kwargs.get("env")
        self.mclient_env.append(env.get("DOTMONETDBFILE") if env else None)
        failed = self._failure("mclient", "-lsql", argv)
        if failed:
            return failed
        return self._result(argv, 0, stderr=self.sql_stderr)

    def _run_dbgen(self, argv, **kwargs):
        if "-h" in argv:
            # dbgen prints its banner and exits non-zero for -h
            return self._result(argv, 1, DBGEN_BANNER)
        failed = self._failure("dbgen", "-b", argv)
        if failed:
            return failed
        cwd = Path(kwargs["cwd"])
        for table in self.generated_tables:
            (cwd / f"{table}.tbl").write_text("1|x|\n")
        return self._result(argv, 0)


@pytest.fixture
def fake_monetdb():
    """Patch subprocess.run with a FakeMonetDB and report every tool as installed."""
    fake = FakeMonetDB()
    with (
        patch("subprocess.run", side_effect=fake),
        patch("monetbench.shell.shutil.which", side_effect=lambda name: f"/usr/bin/{name}"),
    ):
        yield fake


@pytest.fixture
def mock_subprocess():
    """Mock subprocess.run for tests that check a single tool invocation."""
    with patch("subprocess.run") as m:
        m.return_value = MagicMock(
            returncode=0,
            stdout="",
            stderr="",
        )
        yield m


@pytest.fixture
def disk_space():
    """Patch the free space reported for paths; returns a setter taking GiB.

    ``set_free(gib)`` changes the default for every path and
    ``set_free(gib, under=directory)`` only for paths at or below ``directory``.
    """
    limits: dict[Path | None, int] = {None: 1000}

    def usage(path):
        path = Path(path)
        gib = next(
            (g for d, g in limits.items() if d is not None and (path == d or d in path.parents)),
            limits[None],
        )
        return DiskUsage(total=4096 * GIB, used=0, free=gib * GIB)

    def set_free(gib: int, under: Path | None = None) -> None:
        limits[under] = gib

    with patch("monetbench.diskspace.shutil.disk_usage", side_effect=usage):
        yield set_free


@pytest.fixture
def dbgen_dir(tmp_path) -> Path:
    return make_dbgen_dir(tmp_path / "dbgen")
