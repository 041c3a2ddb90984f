"""
Tests for local command resolution.
"""

import os
from unittest.mock import patch

import pytest

from ryebox.errors import CommandNotFoundError
from ryebox.resolver import prepare_command, search_paths, which


@pytest.fixture
def bin_dirs(tmp_path):
    first = tmp_path / "first"
    second = tmp_path / "second"
    first.mkdir()
    second.mkdir()
    (second / "ls").write_text("#!/bin/sh\n")
    (second / "tool").write_text("#!/bin/sh\n")
    (first / "tool").write_text("#!/bin/sh\n")
    return first, second


class TestWhich:
    def test_first_match_in_path_order(self, bin_dirs):
        first, second = bin_dirs
        assert which("tool", [str(first), str(second)]) == os.path.join(str(first), "tool")
        assert which("tool", [str(second), str(first)]) == os.path.join(str(second), "tool")

    def test_skips_directories_without_entry(self, bin_dirs):
        first, second = bin_dirs
        assert which("ls", [str(first), str(second)]) == os.path.join(str(second), "ls")

    def test_missing_directories_are_skipped(self, bin_dirs, tmp_path):
        _, second = bin_dirs
        missing = str(tmp_path / "nope")
        assert which("ls", [missing, str(second)]) == os.path.join(str(second), "ls")

    def test_not_found(self, bin_dirs):
        first, second = bin_dirs
        assert which("nonexistent", [str(first), str(second)]) is None

    def test_uses_basename(self, bin_dirs):
        _, second = bin_dirs
        assert which("/usr/local/bin/ls", [str(second)]) == os.path.join(str(second), "ls")

    def test_invalid_input(self):
        assert which(None) is None
        assert which("") is None

    def test_reads_path_on_every_call(self, bin_dirs):
        first, second = bin_dirs
        with patch.dict(os.environ, {"PATH": str(first)}):
            assert which("ls") is None
        with patch.dict(os.environ, {"PATH": os.pathsep.join([str(first), str(second)])}):
            assert which("ls") == os.path.join(str(second), "ls")


class TestSearchPaths:
    def test_path_order_then_extra_paths(self):
        with patch.dict(os.environ, {"PATH": os.pathsep.join(["/a", "/b"])}), patch(
            "ryebox.config.config_manager.get", return_value=["/extra", "/a"]
        ):
            assert search_paths() == ["/a", "/b", "/extra"]


class TestPrepareCommand:
    def test_resolves_and_escapes(self, bin_dirs):
        _, second = bin_dirs
        with patch.dict(os.environ, {"PATH": str(second)}):
            command = prepare_command(True, "ls", "-l", "my dir")
        assert command == f"{os.path.join(str(second), 'ls')} -l 'my dir'"

    def test_unknown_command(self, bin_dirs):
        first, _ = bin_dirs
        with patch.dict(os.environ, {"PATH": str(first)}):
            with pytest.raises(CommandNotFoundError):
                prepare_command(True, "ls")
