"""
Shared fixtures for ryebox tests.

No test talks to a real SSH server: boxes are built with a fake transport
factory (which counts connection attempts) and a fake executor (which
records every command line and returns scripted results).
"""

from typing import Callable, Dict, List, Optional

import pytest

from ryebox.channel import ExecResult
from ryebox.keys import KeyRing
from ryebox.registry import CommandRegistry


class FakeConnection:
    def __init__(self, host: str, **options):
        self.host = host
        self.options = options
        self.closed = False
        self.busy = False
        self.close_calls = 0
        self.fail_on_close = False

    def wait_idle(self, interval: float = 0.1, limit: Optional[float] = None) -> bool:
        return True

    def close(self) -> None:
        self.close_calls += 1
        if self.fail_on_close:
            raise OSError("socket already gone")
        self.closed = True


class FakeTransportFactory:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.attempts = 0
        self.connections: List[FakeConnection] = []

    def __call__(self, host: str, **options) -> FakeConnection:
        self.attempts += 1
        if self.error is not None:
            raise self.error
        connection = FakeConnection(host, **options)
        self.connections.append(connection)
        return connection


class FakeExecutor:
    """Records command lines; answers with a handler or a fixed result."""

    def __init__(self, handler: Optional[Callable[[str, str], ExecResult]] = None):
        self.handler = handler
        self.commands: List[str] = []
        self.calls: List[Dict] = []

    def exec(self, connection, command: str, timeout=None) -> ExecResult:
        self.commands.append(command)
        self.calls.append({"host": connection.host, "command": command, "timeout": timeout})
        if self.handler is not None:
            return self.handler(connection.host, command)
        return ExecResult(stdout=f"{command}\n", stderr="", exit_status=0)


@pytest.fixture
def registry():
    return CommandRegistry(defaults=True)


@pytest.fixture
def keyring():
    return KeyRing()


@pytest.fixture
def transport():
    return FakeTransportFactory()


@pytest.fixture
def executor():
    return FakeExecutor()


@pytest.fixture
def box_options(registry, keyring, transport, executor):
    """Keyword arguments building a Box wired to the fakes."""
    return {
        "user": "rye",
        "registry": registry,
        "keyring": keyring,
        "transport_factory": transport,
        "executor": executor,
        "error": None,
    }
