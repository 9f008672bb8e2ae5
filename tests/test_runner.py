"""Tests for dbgen data generation and the generation directory lifecycle."""

from __future__ import annotations

import pytest

from monetbench.datagen import (
    DataGenerator,
    Dbgen,
    DbgenRunError,
    check_generation_target,
    remove_data_dir,
    verify_pregenerated,
)
from monetbench.datagen.runner import removed_on_failure
from monetbench.errors import DataDirectoryError, InsufficientSpaceError


@pytest.fixture
def dbgen(dbgen_dir) -> Dbgen:
    return Dbgen(binary=dbgen_dir / "dbgen", dists_file=dbgen_dir / "dists.dss")


class TestGenerationTarget:
    def test_fresh_path(self, tmp_path):
        check_generation_target(tmp_path / "data")

    def test_existing_directory(self, tmp_path):
        with pytest.raises(DataDirectoryError, match="--use-generated"):
            check_generation_target(tmp_path)

    def test_existing_file(self, tmp_path):
        target = tmp_path / "data"
        target.write_text("")
        with pytest.raises(DataDirectoryError, match="non-directory"):
            check_generation_target(target)

    def test_verify_pregenerated(self, tmp_path):
        assert verify_pregenerated(tmp_path) == tmp_path

    def test_verify_pregenerated_missing(self, tmp_path):
        missing = tmp_path / "imdb"
        with pytest.raises(DataDirectoryError, match="directory for it is missing") as exc:
            verify_pregenerated(missing)
        assert str(missing) in str(exc.value)


class TestRemoval:
    def test_removed_on_failure(self, tmp_path):
        target = tmp_path / "data"
        target.mkdir()
        (target / "region.tbl").write_text("")
        with pytest.raises(RuntimeError):
            with removed_on_failure(target):
                raise RuntimeError("dbgen crashed")
        assert not target.exists()

    def test_kept_on_success(self, tmp_path):
        with removed_on_failure(tmp_path):
            pass
        assert tmp_path.exists()

    def test_remove_data_dir(self, tmp_path):
        target = tmp_path / "data"
        target.mkdir()
        assert remove_data_dir(target) is True
        assert not target.exists()
        assert remove_data_dir(target) is False


class TestDataGenerator:
    def test_command(self, dbgen, tmp_path):
        gen = DataGenerator(dbgen, tmp_path / "data", 10, verbose=True)
        assert gen.command() == [
            str(dbgen.binary),
            "-b",
            str(dbgen.dists_file),
            "-s",
            "10",
            "-v",
        ]

    def test_generate(self, fake_monetdb, disk_space, dbgen, tmp_path):
        target = tmp_path / "nested" / "data"
        assert DataGenerator(dbgen, target, 1).generate() == target
        assert (target / "lineitem.tbl").is_file()
        assert "-v" not in fake_monetdb.commands("dbgen")[0]

    def test_failure_removes_directory(self, fake_monetdb, disk_space, dbgen, tmp_path):
        fake_monetdb.fail("dbgen", "-b", stderr="dbgen: out of memory")
        target = tmp_path / "data"
        with pytest.raises(DbgenRunError, match="Failed generating data") as exc:
            DataGenerator(dbgen, target, 1).generate()
        assert not target.exists()
        assert exc.value.stderr == "dbgen: out of memory"

    def test_not_enough_space_leaves_nothing(self, fake_monetdb, disk_space, dbgen, tmp_path):
        disk_space(1)
        target = tmp_path / "data"
        with pytest.raises(InsufficientSpaceError):
            DataGenerator(dbgen, target, 1).generate()
        assert not target.exists()
        assert not fake_monetdb.commands("dbgen")

    def test_refuses_existing_directory(self, fake_monetdb, disk_space, dbgen, tmp_path):
        target = tmp_path / "data"
        target.mkdir()
        with pytest.raises(DataDirectoryError):
            DataGenerator(dbgen, target, 1).generate()
        assert target.exists()
