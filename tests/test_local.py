"""
Tests for local command execution.
"""

import os
import stat
import sys
from unittest.mock import patch

import pytest

from ryebox.errors import CommandNotFoundError, CommandTimeoutError
from ryebox.local import shell

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="POSIX shell scripts")


@pytest.fixture
def script_dir(tmp_path):
    def make(name, body):
        path = tmp_path / name
        path.write_text(f"#!/bin/sh\n{body}\n")
        path.chmod(path.stat().st_mode | stat.S_IEXEC)
        return path

    make("say", 'printf "%s|" "$@"; echo; echo oops >&2; exit 3')
    make("nap", "exec sleep 5")
    with patch.dict(os.environ, {"PATH": os.pathsep.join([str(tmp_path), "/bin", "/usr/bin"])}):
        yield tmp_path


class TestShell:
    def test_captures_output(self, script_dir):
        response = shell("say", "a b", "$HOME", ["*"])

        assert response == "a b|$HOME|*|"
        assert response.stderr == "oops\n"
        assert response.exit_status == 3
        assert response.origin is None

    def test_unknown_command(self, script_dir):
        with pytest.raises(CommandNotFoundError):
            shell("definitely-not-here")

    def test_timeout(self, script_dir):
        with pytest.raises(CommandTimeoutError):
            shell("nap", timeout=0.1)
