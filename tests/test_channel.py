"""
Tests for the channel executor using scripted fake channels.
"""

from unittest.mock import Mock

import pytest

from ryebox.channel import ChannelExecutor, ExecResult
from ryebox.errors import CommandTimeoutError


class FakeChannel:
    """
    A channel that delivers scripted chunks.

    ``events`` is a list of ("out" | "err", bytes) tuples delivered one per
    poll; the exit status becomes ready once ``exit_after`` polls happened.
    """

    def __init__(self, events, exit_status=0, exit_after=None, late_stdout=b""):
        self.events = list(events)
        self.exit_status = exit_status
        self.exit_after = len(self.events) if exit_after is None else exit_after
        self.late_stdout = late_stdout
        self.polls = 0
        self.command = None
        self.closed = False

    def exec_command(self, command):
        self.command = command

    def _next(self, kind):
        return bool(self.events) and self.events[0][0] == kind

    def recv_ready(self):
        if self._next("out"):
            return True
        return self.exit_status_ready() and bool(self.late_stdout)

    def recv(self, size):
        if self._next("out"):
            return self.events.pop(0)[1]
        data, self.late_stdout = self.late_stdout, b""
        return data

    def recv_stderr_ready(self):
        return self._next("err")

    def recv_stderr(self, size):
        return self.events.pop(0)[1]

    def exit_status_ready(self):
        self.polls += 1
        return self.polls > self.exit_after and not self.events

    def recv_exit_status(self):
        return self.exit_status

    def close(self):
        self.closed = True


def make_connection(channel):
    connection = Mock()
    connection.open_channel.return_value = channel
    connection.release.side_effect = lambda ch: ch.close()
    return connection


class TestChannelExecutor:
    def test_collects_streams_separately(self):
        channel = FakeChannel(
            [("out", b"hello "), ("err", b"warning\n"), ("out", b"world\n")],
            exit_status=0,
        )
        connection = make_connection(channel)

        result = ChannelExecutor(poll_interval=0).exec(connection, "echo hello world")

        assert result == ExecResult(stdout="hello world\n", stderr="warning\n", exit_status=0)
        assert channel.command == "echo hello world"
        assert channel.closed is True
        connection.release.assert_called_once_with(channel)

    def test_exit_status(self):
        channel = FakeChannel([("err", b"ls: cannot access\n")], exit_status=2)
        result = ChannelExecutor(poll_interval=0).exec(make_connection(channel), "ls /nope")
        assert result.exit_status == 2
        assert result.stdout == ""

    def test_waits_until_exit(self):
        channel = FakeChannel([], exit_status=0, exit_after=5)
        ChannelExecutor(poll_interval=0).exec(make_connection(channel), "sleep 1")
        assert channel.polls > 5

    def test_drains_output_after_exit(self):
        channel = FakeChannel([("out", b"a")], late_stdout=b"b")
        result = ChannelExecutor(poll_interval=0).exec(make_connection(channel), "cat")
        assert result.stdout == "ab"

    def test_undecodable_bytes_are_replaced(self):
        channel = FakeChannel([("out", b"caf\xff")])
        result = ChannelExecutor(poll_interval=0).exec(make_connection(channel), "cat")
        assert result.stdout == "caf�"

    def test_timeout(self):
        channel = FakeChannel([], exit_after=10**9)
        connection = make_connection(channel)

        with pytest.raises(CommandTimeoutError) as excinfo:
            ChannelExecutor(poll_interval=0.001).exec(connection, "sleep 100", timeout=0.01)

        assert excinfo.value.command == "sleep 100"
        assert channel.closed is True

    def test_release_on_error(self):
        channel = FakeChannel([])
        channel.exec_command = Mock(side_effect=OSError("broken pipe"))
        connection = make_connection(channel)

        with pytest.raises(OSError):
            ChannelExecutor(poll_interval=0).exec(connection, "uname")

        connection.release.assert_called_once_with(channel)
