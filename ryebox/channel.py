"""
Synchronous command execution over an open connection.

Each call opens one session channel, runs the command and collects stdout
and stderr independently until the remote process exits and both streams
are drained. Without a timeout a hung remote command blocks the caller
indefinitely.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

from .errors import CommandTimeoutError

logger = logging.getLogger(__name__)

BUFFER_SIZE = 32768
POLL_INTERVAL = 0.01


@dataclass
class ExecResult:
    """Raw output of one remote command."""

    stdout: str
    stderr: str
    exit_status: int


class ChannelExecutor:
    """Runs one command per channel and captures both output streams."""

    def __init__(
        self,
        buffer_size: int = BUFFER_SIZE,
        poll_interval: float = POLL_INTERVAL,
        encoding: str = "utf-8",
    ):
        self.buffer_size = buffer_size
        self.poll_interval = poll_interval
        self.encoding = encoding

    def exec(self, connection, command: str, timeout: Optional[float] = None) -> ExecResult:
        """
        Execute ``command`` over ``connection`` and wait for it to finish.

        Args:
            connection: An open SSHConnection
            command: Complete command line for the remote shell
            timeout: Seconds to wait before giving up; None waits forever

        Returns:
            ExecResult with decoded stdout, stderr and the exit status

        Raises:
            CommandTimeoutError: If the deadline passes first
        """
        deadline = time.monotonic() + timeout if timeout is not None else None
        channel = connection.open_channel()
        try:
            channel.exec_command(command)
            stdout, stderr = self._collect(channel, command, timeout, deadline)
            exit_status = channel.recv_exit_status()
        finally:
            connection.release(channel)

        logger.debug(f"Command exited with status {exit_status}: {command}")
        return ExecResult(
            stdout=stdout.decode(self.encoding, errors="replace"),
            stderr=stderr.decode(self.encoding, errors="replace"),
            exit_status=exit_status,
        )

    def _collect(self, channel, command, timeout, deadline):
        stdout = bytearray()
        stderr = bytearray()

        while True:
            received = False
            if channel.recv_ready():
                stdout.extend(channel.recv(self.buffer_size))
                received = True
            if channel.recv_stderr_ready():
                stderr.extend(channel.recv_stderr(self.buffer_size))
                received = True
            if received:
                continue

            if channel.exit_status_ready():
                break

            if deadline is not None and time.monotonic() >= deadline:
                logger.warning(f"Command timed out after {timeout}s: {command}")
                raise CommandTimeoutError(command, timeout)

            time.sleep(self.poll_interval)

        # Output can still arrive after the exit status
        while channel.recv_ready():
            stdout.extend(channel.recv(self.buffer_size))
        while channel.recv_stderr_ready():
            stderr.extend(channel.recv_stderr(self.buffer_size))

        return bytes(stdout), bytes(stderr)
