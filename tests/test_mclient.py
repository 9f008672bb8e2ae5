"""Tests for SQL execution through mclient and the credentials file."""

from __future__ import annotations

import pytest

from monetbench.monetdb import MClient, MClientError, ensure_credentials_file
from monetbench.monetdb.mclient import find_sql_errors


class TestCredentialsFile:
    def test_written_when_missing(self, tmp_path):
        path = tmp_path / ".monetdb"
        assert ensure_credentials_file(path) is True
        assert path.read_text() == "user=monetdb\npassword=monetdb\nlanguage=sql\n"

    def test_existing_file_kept(self, tmp_path):
        path = tmp_path / ".monetdb"
        path.write_text("user=alice\npassword=secret\n")
        assert ensure_credentials_file(path) is False
        assert "alice" in path.read_text()


class TestFindSqlErrors:
    def test_detects_error_lines(self):
        stderr = (
            "operation successful\n"
            "SQLException:sql.copy:42000!COPY INTO: file not found\n"
            "!ERROR: something\n"
        )
        assert len(find_sql_errors(stderr)) == 2

    def test_clean_output(self):
        assert find_sql_errors("") == []


class TestMClient:
    def test_command_line_and_stdin(self, fake_monetdb):
        MClient("tpch-sf-1", 50001).execute("CREATE TABLE t (a INT);", output_format="trash")
        assert fake_monetdb.commands("mclient")[0] == [
            "mclient",
            "-lsql",
            "-f",
            "trash",
            "-d",
            "tpch-sf-1",
            "-p",
            "50001",
        ]
        assert fake_monetdb.sql == ["CREATE TABLE t (a INT);"]

    def test_nonzero_exit(self, fake_monetdb):
        fake_monetdb.fail("mclient", "-lsql", stderr="connection refused")
        with pytest.raises(MClientError, match="connection refused"):
            MClient("db", 50000).execute("SELECT 1;", description="select_one.sql")

    def test_sql_error_with_zero_exit(self, fake_monetdb):
        fake_monetdb.sql_stderr = "ERROR = !relation already exists\n"
        with pytest.raises(MClientError, match="Failed running add_index.sql"):
            MClient("db", 50000).execute("CREATE INDEX i ON t (a);", description="add_index.sql")

    def test_inherits_environment_by_default(self, fake_monetdb):
        MClient("db", 50000).execute("SELECT 1;")
        assert fake_monetdb.mclient_env == [None]

    def test_credentials_file_passed_through_environment(self, fake_monetdb, tmp_path):
        creds = tmp_path / "custom" / "creds"
        MClient("db", 50000, credentials_file=creds).execute("SELECT 1;")
        assert fake_monetdb.mclient_env == [str(creds)]

    def test_environment_keeps_path(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PATH", "/opt/monetdb/bin")
        env = MClient("db", 50000, credentials_file=tmp_path / "creds").environment()
        assert env["PATH"] == "/opt/monetdb/bin"
        assert env["DOTMONETDBFILE"] == str(tmp_path / "creds")
