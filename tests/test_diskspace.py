"""Tests for the free disk space guard."""

from __future__ import annotations

import pytest

from monetbench.diskspace import (
    available_gib,
    check_free_space,
    nearest_existing_dir,
    required_gib,
)
from monetbench.errors import InsufficientSpaceError


class TestNearestExistingDir:
    def test_existing_path(self, tmp_path):
        assert nearest_existing_dir(tmp_path) == tmp_path

    def test_missing_path_uses_ancestor(self, tmp_path):
        assert nearest_existing_dir(tmp_path / "a" / "b" / "c") == tmp_path


class TestCheckFreeSpace:
    def test_required_is_twice_scale_factor(self):
        assert required_gib(1) == 2
        assert required_gib(30) == 60

    def test_enough_space(self, tmp_path, disk_space):
        disk_space(3)
        assert check_free_space(tmp_path / "data", 1) == 3

    def test_exactly_required_is_not_enough(self, tmp_path, disk_space):
        disk_space(2)
        with pytest.raises(InsufficientSpaceError) as exc:
            check_free_space(tmp_path / "data", 1)
        assert exc.value.needed_gib == 2
        assert exc.value.available_gib == 2
        assert "We need 2 GiB but only have 2 GiB" in str(exc.value)

    def test_purpose_in_message(self, tmp_path, disk_space):
        disk_space(0)
        with pytest.raises(InsufficientSpaceError, match="the loaded database"):
            check_free_space(tmp_path, 1, purpose="the loaded database")

    def test_real_filesystem(self, tmp_path):
        assert available_gib(tmp_path / "missing") >= 0
